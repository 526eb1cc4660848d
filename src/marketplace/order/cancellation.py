"""CancelOrder — cancel a pending, confirmed or (admin only) shipped order.

A reason is mandatory. Restocking, seller-side sync and notifications follow
from the ``OrderStatusChanged`` the cancellation raises.
"""

from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.backend import call_backend
from marketplace.domain import marketplace
from marketplace.order.order import ActorRole, Order
from marketplace.order.transition import receipt


@marketplace.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = Text(required=True)
    cancelled_by = String(max_length=255)
    actor_role = String(choices=ActorRole, default=ActorRole.BUYER.value)


@marketplace.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command: CancelOrder) -> dict:
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(
            reason=command.reason,
            actor_id=command.cancelled_by,
            actor_role=command.actor_role,
        )
        repo.add(order)

        result = call_backend(
            "cancel_order",
            str(order.id),
            command.reason,
            command.cancelled_by,
            command.actor_role,
        )
        return receipt(order, result)
