"""Notifications react to buyer-order events.

Each status change sends the buyer exactly one notice. A buyer cancellation
also warns every seller on the order. Returns are announced by
``ReturnRequested`` (which carries the refund), not by the status change.
"""

import json

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.notification.dispatch import dispatch_notification
from marketplace.notification.notification import Notification, NotificationType
from marketplace.notification.templates import type_for_status
from marketplace.order.events import OrderStatusChanged, ReturnRequested
from marketplace.order.order import ActorRole, Order, OrderStatus

logger = structlog.get_logger(__name__)


def _seller_ids(items: list[dict]) -> list[str]:
    return list(dict.fromkeys(str(item["seller_id"]) for item in items))


@marketplace.event_handler(part_of=Notification, stream_category="marketplace::order")
class OrderNotificationHandler:
    @handle(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        if event.new_status == OrderStatus.RETURNED.value:
            return

        context = {"status": event.new_status, "reason": event.note}
        if event.new_status == OrderStatus.SHIPPED.value:
            order = current_domain.repository_for(Order).get(str(event.order_id))
            context["tracking_number"] = order.tracking_number

        dispatch_notification(
            event.buyer_id,
            type_for_status(event.new_status),
            context,
            order_id=event.order_id,
            order_number=event.order_number,
        )

        if event.new_status == OrderStatus.CANCELLED.value and event.actor_role == ActorRole.BUYER.value:
            for seller_id in _seller_ids(json.loads(event.items)):
                dispatch_notification(
                    seller_id,
                    NotificationType.CANCELLATION_REQUEST.value,
                    {"reason": event.note},
                    order_id=event.order_id,
                    order_number=event.order_number,
                )

    @handle(ReturnRequested)
    def on_return_requested(self, event: ReturnRequested) -> None:
        dispatch_notification(
            event.buyer_id,
            NotificationType.RETURN_SUBMITTED.value,
            {"refund_amount": event.refund_amount},
            order_id=event.order_id,
            order_number=event.order_number,
        )

        order = current_domain.repository_for(Order).get(str(event.order_id))
        for seller_id in _seller_ids(order.items_snapshot()):
            dispatch_notification(
                seller_id,
                NotificationType.RETURN_REQUEST.value,
                {"reason": event.reason, "solution": event.solution},
                order_id=event.order_id,
                order_number=event.order_number,
            )
