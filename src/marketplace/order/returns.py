"""RequestReturn — file a return/refund request against a delivered order."""

import json

from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.backend import call_backend
from marketplace.domain import marketplace
from marketplace.order.order import ActorRole, Order, OrderStatus, ReturnReason, ReturnSolution
from marketplace.order.transition import receipt
from marketplace.seller_order.queries import projections_for_order


def refundable_total(order: Order) -> float | None:
    """Order total less the shares sellers cancelled before delivery."""
    projections = projections_for_order(order.id)
    if not projections:
        return None
    return sum(so.total for so in projections if so.status != OrderStatus.CANCELLED.value)


@marketplace.command(part_of="Order")
class RequestReturn:
    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    reason = String(choices=ReturnReason, required=True)
    solution = String(choices=ReturnSolution, required=True)
    comments = Text()
    evidence = Text()  # JSON array of file references


@marketplace.command_handler(part_of=Order)
class RequestReturnHandler:
    @handle(RequestReturn)
    def request_return(self, command: RequestReturn) -> dict:
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if str(order.buyer_id) != str(command.buyer_id):
            raise ValidationError({"buyer_id": ["Only the buyer can request a return for this order"]})

        request = order.request_return(
            reason=command.reason,
            solution=command.solution,
            comments=command.comments,
            evidence=json.loads(command.evidence) if command.evidence else [],
            actor_id=str(command.buyer_id),
            refundable_total=refundable_total(order),
        )
        repo.add(order)

        result = call_backend(
            "persist_order_status",
            str(order.id),
            order.status,
            command.comments or command.reason,
            str(command.buyer_id),
            ActorRole.BUYER.value,
        )
        return receipt(order, result, refund_amount=request.refund_amount)
