"""TransitionOrder — move an order along one edge of the state machine.

Used for manual, admin-driven, simulated and seller-propagated changes alike.
The change is applied to the local Order first and then persisted. A
persistence outage does not undo the local change: the handler reports it in
the returned receipt and the backend drops to local-only mode.
"""

import structlog
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.backend import BackendResult, call_backend
from marketplace.domain import marketplace
from marketplace.order.order import ActorRole, Order, OrderStatus

logger = structlog.get_logger(__name__)


def receipt(order: Order, result: BackendResult, **extra) -> dict:
    """What a lifecycle command reports back to its caller."""
    if not result.synced:
        logger.warning(
            "Order change kept locally but not synced",
            order_id=str(order.id),
            status=order.status,
            mode=result.mode,
            error=result.error,
        )
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "synced": result.synced,
        "mode": result.mode,
        "error": result.error,
        **extra,
    }


@marketplace.command(part_of="Order")
class TransitionOrder:
    order_id = Identifier(required=True)
    target_status = String(choices=OrderStatus, required=True)
    actor_id = String(max_length=255)
    actor_role = String(choices=ActorRole, default=ActorRole.SYSTEM.value)
    note = Text()


@marketplace.command_handler(part_of=Order)
class TransitionOrderHandler:
    @handle(TransitionOrder)
    def transition_order(self, command: TransitionOrder) -> dict:
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.transition_to(
            command.target_status,
            actor_id=command.actor_id,
            actor_role=command.actor_role,
            note=command.note,
        )
        repo.add(order)

        result = call_backend(
            "persist_order_status",
            str(order.id),
            order.status,
            command.note,
            command.actor_id,
            command.actor_role,
        )
        return receipt(order, result)
