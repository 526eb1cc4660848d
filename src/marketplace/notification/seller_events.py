"""Notifications react to seller-side events."""

from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.notification.dispatch import dispatch_notification
from marketplace.notification.notification import Notification, NotificationType
from marketplace.seller_order.events import SellerReturnResolved


@marketplace.event_handler(part_of=Notification, stream_category="marketplace::seller_order")
class SellerNotificationHandler:
    @handle(SellerReturnResolved)
    def on_return_resolved(self, event: SellerReturnResolved) -> None:
        notification_type = (
            NotificationType.RETURN_APPROVED.value if event.approved else NotificationType.RETURN_REJECTED.value
        )
        dispatch_notification(
            event.seller_id,
            notification_type,
            {"refund_amount": event.refund_amount, "note": event.note},
            order_id=event.order_id,
            order_number=event.order_number,
        )
