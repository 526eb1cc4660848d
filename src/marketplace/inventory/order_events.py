"""Inventory reacts to order lifecycle events.

Cancelled orders put their stock back (reason order cancellation); returned
orders too (reason return restock). A seller cancelling their own share
restocks only that seller's items. Restocks put back only what the order still
has out, so overlapping triggers never return a unit twice.
"""

import json

import structlog
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.inventory.ledger import restock_for_order
from marketplace.inventory.stock import LedgerReason, StockItem
from marketplace.order.events import OrderStatusChanged
from marketplace.order.order import OrderStatus
from marketplace.seller_order.events import SellerOrderStatusChanged
from marketplace.seller_order.seller_order import ChangeOrigin

logger = structlog.get_logger(__name__)

_RESTOCK_REASONS = {
    OrderStatus.CANCELLED.value: LedgerReason.ORDER_CANCELLATION.value,
    OrderStatus.RETURNED.value: LedgerReason.RETURN_RESTOCK.value,
}


@marketplace.event_handler(part_of=StockItem, stream_category="marketplace::order")
class OrderRestockHandler:
    @handle(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        reason = _RESTOCK_REASONS.get(event.new_status)
        if reason is None:
            return

        written = restock_for_order(str(event.order_id), json.loads(event.items), reason)
        logger.info("Order stock restocked", order_id=str(event.order_id), reason=reason, entries=written)


@marketplace.event_handler(part_of=StockItem, stream_category="marketplace::seller_order")
class SellerCancellationRestockHandler:
    @handle(SellerOrderStatusChanged)
    def on_seller_order_status_changed(self, event: SellerOrderStatusChanged) -> None:
        if event.new_status != OrderStatus.CANCELLED.value or event.origin != ChangeOrigin.SELLER.value:
            return

        written = restock_for_order(
            str(event.order_id),
            json.loads(event.items),
            LedgerReason.ORDER_CANCELLATION.value,
        )
        logger.info(
            "Seller cancellation restocked",
            order_id=str(event.order_id),
            seller_id=str(event.seller_id),
            entries=written,
        )
