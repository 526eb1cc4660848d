"""Order timeline — append-only status history of an order.

One row per placement, status change, return and payment settlement, with
who did it and why.
"""

import uuid

from protean.core.projector import on
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.events import OrderPaymentSettled, OrderPlaced, OrderStatusChanged, ReturnRequested
from marketplace.order.order import Order


@marketplace.projection
class OrderTimeline:
    entry_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    event_type = String(required=True)
    status = String()
    actor_id = String()
    actor_role = String()
    description = String(required=True)
    note = Text()
    occurred_at = DateTime(required=True)


def _add_entry(order_id, event_type, description, occurred_at, status=None, actor_id=None, actor_role=None, note=None):
    current_domain.repository_for(OrderTimeline).add(
        OrderTimeline(
            entry_id=str(uuid.uuid4()),
            order_id=order_id,
            event_type=event_type,
            status=status,
            actor_id=actor_id,
            actor_role=actor_role,
            description=description,
            note=note,
            occurred_at=occurred_at,
        )
    )


def timeline_for(order_id) -> list[OrderTimeline]:
    entries = current_domain.repository_for(OrderTimeline)._dao.query.filter(order_id=str(order_id)).all().items
    return sorted(entries, key=lambda e: e.occurred_at)


@marketplace.projector(projector_for=OrderTimeline, aggregates=[Order])
class OrderTimelineProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced):
        _add_entry(
            event.order_id,
            "OrderPlaced",
            f"Order placed ({event.payment_type})",
            event.placed_at,
            status="pending",
            actor_id=str(event.buyer_id),
            actor_role="buyer",
        )

    @on(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged):
        _add_entry(
            event.order_id,
            "OrderStatusChanged",
            f"Status changed from {event.previous_status} to {event.new_status}",
            event.changed_at,
            status=event.new_status,
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            note=event.note,
        )

    @on(ReturnRequested)
    def on_return_requested(self, event: ReturnRequested):
        _add_entry(
            event.order_id,
            "ReturnRequested",
            f"Return requested: {event.reason}, {event.solution}",
            event.requested_at,
            status="returned",
            actor_id=str(event.buyer_id),
            actor_role="buyer",
            note=event.comments,
        )

    @on(OrderPaymentSettled)
    def on_payment_settled(self, event: OrderPaymentSettled):
        _add_entry(event.order_id, "OrderPaymentSettled", f"Payment of {event.amount:.2f} collected", event.settled_at)
