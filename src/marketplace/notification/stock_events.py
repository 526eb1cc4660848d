"""Low-stock alerts to the owning seller."""

from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.inventory.events import LowStockDetected
from marketplace.notification.dispatch import dispatch_notification
from marketplace.notification.notification import Notification, NotificationType


@marketplace.event_handler(part_of=Notification, stream_category="marketplace::stock_item")
class StockNotificationHandler:
    @handle(LowStockDetected)
    def on_low_stock(self, event: LowStockDetected) -> None:
        dispatch_notification(
            event.seller_id,
            NotificationType.LOW_STOCK.value,
            {"product_name": event.product_name, "current_quantity": event.current_quantity},
        )
