"""Placement fan-out — what happens after a cart becomes a pending order.

Reacts to ``OrderPlaced``. Each step runs for every seller group even when
an earlier step or another seller's group failed; failures are logged and
never reach the buyer:

1. materialize one ``SellerOrder`` per seller group,
2. deduct stock for the group (reason online sale, reference = order id),
3. tell each seller about the new order,
4. schedule the demo progression.

The buyer gets an "order placed" notice last.
"""

import json

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.backend import call_backend
from marketplace.domain import marketplace
from marketplace.inventory.ledger import deduct_for_order
from marketplace.notification.dispatch import dispatch_notification
from marketplace.notification.notification import NotificationType
from marketplace.order.events import OrderPlaced
from marketplace.order.order import Order
from marketplace.progression.schedule import ScheduledTransition, schedule_progression
from marketplace.seller_order.seller_order import SellerOrder

logger = structlog.get_logger(__name__)


def _group_by_seller(items: list[dict]) -> dict[str, list[dict]]:
    groups: dict[str, list[dict]] = {}
    for item in items:
        groups.setdefault(str(item["seller_id"]), []).append(item)
    return groups


@marketplace.event_handler(part_of=Order, stream_category="marketplace::order")
class OrderPlacementHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        order = current_domain.repository_for(Order).get(str(event.order_id))
        groups = _group_by_seller(json.loads(event.items))

        for seller_id, items in groups.items():
            try:
                self._materialize(order, seller_id, items)
            except Exception as exc:
                logger.error(
                    "Failed to create seller projection",
                    order_id=str(order.id),
                    seller_id=seller_id,
                    error=str(exc),
                )

        for seller_id, items in groups.items():
            try:
                deduct_for_order(str(order.id), items)
            except Exception as exc:
                logger.error(
                    "Failed to deduct stock for seller group",
                    order_id=str(order.id),
                    seller_id=seller_id,
                    error=str(exc),
                )

        for seller_id, items in groups.items():
            try:
                self._notify_seller(order, seller_id, items)
            except Exception as exc:
                logger.error(
                    "Failed to notify seller of new order",
                    order_id=str(order.id),
                    seller_id=seller_id,
                    error=str(exc),
                )

        try:
            repo = current_domain.repository_for(ScheduledTransition)
            for scheduled in schedule_progression(str(order.id), event.placed_at):
                repo.add(scheduled)
        except Exception as exc:
            logger.error("Failed to schedule progression", order_id=str(order.id), error=str(exc))

        dispatch_notification(
            order.buyer_id,
            NotificationType.ORDER_PLACED.value,
            {"total": order.total},
            order_id=order.id,
            order_number=order.order_number,
        )
        logger.info("Order placed", order_id=str(order.id), sellers=len(groups), total=order.total)

    def _materialize(self, order: Order, seller_id: str, items: list[dict]) -> None:
        repo = current_domain.repository_for(SellerOrder)
        existing = repo._dao.query.filter(order_id=str(order.id), seller_id=seller_id).all()
        if existing.items:
            logger.warning("Seller projection already exists", order_id=str(order.id), seller_id=seller_id)
            return

        address = order.shipping_address
        seller_order = SellerOrder.create(
            order_id=str(order.id),
            order_number=order.order_number,
            seller_id=seller_id,
            seller_name=items[0].get("seller_name"),
            buyer_id=str(order.buyer_id),
            buyer_name=order.buyer_name,
            items=items,
            shipping_address={
                "full_name": address.full_name,
                "street": address.street,
                "city": address.city,
                "province": address.province,
                "postal_code": address.postal_code,
                "phone": address.phone,
            },
            payment_type=order.payment_method.type,
        )
        repo.add(seller_order)

    def _notify_seller(self, order: Order, seller_id: str, items: list[dict]) -> None:
        seller_total = round(sum(i["unit_price"] * i["quantity"] for i in items), 2)
        dispatch_notification(
            seller_id,
            NotificationType.NEW_ORDER.value,
            {"buyer_name": order.buyer_name, "total": seller_total},
            order_id=order.id,
            order_number=order.order_number,
        )
        call_backend(
            "notify_party_new_order",
            seller_id,
            str(order.id),
            order.order_number,
            order.buyer_name,
            seller_total,
        )
