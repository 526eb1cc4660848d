"""Cross-view synchronizer between the buyer order and its seller projections.

Buyer → seller: every ``OrderStatusChanged`` is followed by each projection
of the order. Following is idempotent and never propagates back.

Seller → buyer: a seller-driven ``SellerOrderStatusChanged`` moves the buyer
order only once every projection of the order has reached the same status,
and only along an edge the order's own state machine allows. A single seller
confirming a two-seller order therefore leaves the buyer order pending. A
projection its seller cancelled drops out of that count.
"""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.order.events import OrderStatusChanged, ReturnRequested
from marketplace.order.order import ActorRole, Order, OrderStatus, can_transition
from marketplace.order.transition import TransitionOrder
from marketplace.seller_order.events import SellerOrderStatusChanged
from marketplace.seller_order.queries import projections_for_order
from marketplace.seller_order.seller_order import ChangeOrigin, SellerOrder

logger = structlog.get_logger(__name__)


@marketplace.event_handler(part_of=SellerOrder, stream_category="marketplace::order")
class BuyerOrderSynchronizer:
    """Brings seller projections in line with the buyer order."""

    @handle(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        repo = current_domain.repository_for(SellerOrder)
        projections = projections_for_order(event.order_id)
        if not projections:
            logger.warning(
                "No seller projections for order, nothing to follow",
                order_id=str(event.order_id),
                new_status=event.new_status,
            )
            return

        for seller_order in projections:
            if seller_order.follow(event.new_status, note=event.note):
                repo.add(seller_order)

    @handle(ReturnRequested)
    def on_return_requested(self, event: ReturnRequested) -> None:
        repo = current_domain.repository_for(SellerOrder)
        for seller_order in projections_for_order(event.order_id):
            if seller_order.status == OrderStatus.CANCELLED.value:
                continue
            # Replacement returns carry no refund; otherwise each seller refunds its share
            refund = 0.0 if not event.refund_amount else seller_order.total
            seller_order.record_return_request(event.reason, refund)
            repo.add(seller_order)


@marketplace.event_handler(part_of=Order, stream_category="marketplace::seller_order")
class SellerOrderSynchronizer:
    """Propagates seller-driven changes to the buyer order."""

    @handle(SellerOrderStatusChanged)
    def on_seller_order_status_changed(self, event: SellerOrderStatusChanged) -> None:
        if event.origin != ChangeOrigin.SELLER.value:
            return

        try:
            order = current_domain.repository_for(Order).get(str(event.order_id))
        except ObjectNotFoundError:
            logger.error("Buyer order missing for seller projection", order_id=str(event.order_id))
            return

        if order.status == event.new_status:
            return

        pending = [
            so
            for so in projections_for_order(event.order_id)
            if so.status not in (event.new_status, OrderStatus.CANCELLED.value)
        ]
        if pending:
            logger.info(
                "Waiting for remaining sellers before updating buyer order",
                order_id=str(event.order_id),
                new_status=event.new_status,
                waiting_on=[str(so.seller_id) for so in pending],
            )
            return

        if not can_transition(order.status, event.new_status):
            logger.warning(
                "Seller change does not map onto the buyer order, not propagated",
                order_id=str(event.order_id),
                current=order.status,
                target=event.new_status,
            )
            return

        try:
            current_domain.process(
                TransitionOrder(
                    order_id=str(event.order_id),
                    target_status=event.new_status,
                    actor_id=event.actor_id,
                    actor_role=ActorRole.SELLER.value,
                    note=event.note,
                ),
                asynchronous=False,
            )
        except ValidationError as exc:
            logger.error(
                "Buyer order rejected seller propagation",
                order_id=str(event.order_id),
                target=event.new_status,
                error=str(exc),
            )
