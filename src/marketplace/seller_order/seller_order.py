"""SellerOrder aggregate (CQRS) — one seller's projection of a logical order.

Checkout fans a multi-seller order out into one SellerOrder per seller. Each
holds its own copies of the items and address; no two projections share
mutable state, so a seller changing their status never touches another
seller's projection.

Two kinds of change reach a projection:
- ``transition``: the seller drives fulfilment (confirm, ship, deliver,
  cancel before shipping). The synchronizer propagates it to the buyer order.
- ``follow``: the buyer order moved and the projection catches up.
  Idempotent, forward-only, never propagated back.
"""

import json
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from marketplace.domain import marketplace
from marketplace.errors import InvalidTransition
from marketplace.order.order import OrderStatus, PaymentType
from marketplace.seller_order.events import (
    SellerOrderCreated,
    SellerOrderStatusChanged,
    SellerPaymentSettled,
    SellerReturnResolved,
)

logger = structlog.get_logger(__name__)


class SellerPaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    SETTLED = "settled"
    REFUNDED = "refunded"


class ReturnStatus(Enum):
    NONE = "none"
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"


class ChangeOrigin(Enum):
    BUYER = "buyer"
    SELLER = "seller"


# Transitions a seller may drive on their own projection
_SELLER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
}

# Progress along the order lifecycle; a projection only ever moves forward
_PROGRESS = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.SHIPPED: 2,
    OrderStatus.DELIVERED: 3,
    OrderStatus.CANCELLED: 4,
    OrderStatus.RETURNED: 4,
    OrderStatus.REVIEWED: 4,
}


@marketplace.value_object(part_of="SellerOrder")
class ShipTo:
    full_name = String(required=True, max_length=255)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    province = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    phone = String(required=True, max_length=30)


@marketplace.entity(part_of="SellerOrder")
class SellerOrderItem:
    order_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    variant = String(max_length=255)


@marketplace.aggregate
class SellerOrder:
    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=32)
    seller_id = Identifier(required=True)
    seller_name = String(max_length=255)
    buyer_id = Identifier(required=True)
    buyer_name = String(max_length=255)
    items = HasMany(SellerOrderItem)
    total = Float(required=True, min_value=0.0)
    ship_to = ValueObject(ShipTo)
    payment_type = String(choices=PaymentType, required=True)
    payment_status = String(choices=SellerPaymentStatus, default=SellerPaymentStatus.PENDING.value)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    return_status = String(choices=ReturnStatus, default=ReturnStatus.NONE.value)
    return_reason = String(max_length=50)
    refund_amount = Float()
    cancellation_reason = Text()
    settled_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def return_handling_only_on_returned_orders(self):
        if self.return_status != ReturnStatus.NONE.value and self.status != OrderStatus.RETURNED.value:
            raise ValidationError({"return_status": ["Returns apply only to returned orders"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_id,
        order_number,
        seller_id,
        seller_name,
        buyer_id,
        buyer_name,
        items,
        shipping_address,
        payment_type,
    ):
        """Materialize a seller's share of an order from plain-dict copies."""
        now = datetime.now(UTC)
        seller_items = [
            SellerOrderItem(
                order_item_id=item["item_id"],
                product_id=item["product_id"],
                name=item["name"],
                unit_price=item["unit_price"],
                quantity=item["quantity"],
                variant=item.get("variant"),
            )
            for item in items
        ]
        total = round(sum(i.unit_price * i.quantity for i in seller_items), 2)
        payment_status = (
            SellerPaymentStatus.PENDING.value if payment_type == PaymentType.COD.value else SellerPaymentStatus.PAID.value
        )

        seller_order = cls(
            order_id=order_id,
            order_number=order_number,
            seller_id=seller_id,
            seller_name=seller_name,
            buyer_id=buyer_id,
            buyer_name=buyer_name,
            items=seller_items,
            total=total,
            ship_to=ShipTo(**shipping_address) if shipping_address else None,
            payment_type=payment_type,
            payment_status=payment_status,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        seller_order.raise_(
            SellerOrderCreated(
                seller_order_id=str(seller_order.id),
                order_id=str(order_id),
                order_number=order_number,
                seller_id=str(seller_id),
                buyer_id=str(buyer_id),
                total=total,
                created_at=now,
            )
        )
        return seller_order

    def items_snapshot(self) -> list[dict]:
        return [
            {
                "item_id": str(item.order_item_id),
                "product_id": str(item.product_id),
                "name": item.name,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "variant": item.variant,
                "seller_id": str(self.seller_id),
            }
            for item in self.items
        ]

    # -------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------
    def _change_status(self, target: OrderStatus, origin: ChangeOrigin, actor_id=None, note=None):
        now = datetime.now(UTC)
        previous = self.status
        self.status = target.value
        self.updated_at = now

        if target == OrderStatus.CANCELLED:
            self.cancellation_reason = note
        elif target == OrderStatus.RETURNED:
            self.return_status = ReturnStatus.REQUESTED.value

        self.raise_(
            SellerOrderStatusChanged(
                seller_order_id=str(self.id),
                order_id=str(self.order_id),
                order_number=self.order_number,
                seller_id=str(self.seller_id),
                buyer_id=str(self.buyer_id),
                previous_status=previous,
                new_status=target.value,
                origin=origin.value,
                actor_id=actor_id,
                note=note,
                items=json.dumps(self.items_snapshot()),
                changed_at=now,
            )
        )

        if target == OrderStatus.DELIVERED:
            self.settle_payment()

    def transition(self, target, actor_id=None, note=None):
        """Seller-driven status change on this projection only."""
        current = OrderStatus(self.status)
        target = OrderStatus(target)
        if target not in _SELLER_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"status": [f"Cannot transition order from {current.value} to {target.value}"]})
        if target == OrderStatus.CANCELLED and not (note and note.strip()):
            raise ValidationError({"cancellation_reason": ["Cancellation reason is required"]})

        self._change_status(target, ChangeOrigin.SELLER, actor_id=actor_id, note=note)

    def follow(self, target, note=None) -> bool:
        """Catch up with the buyer order. Returns False when nothing changed."""
        current = OrderStatus(self.status)
        target = OrderStatus(target)
        if current == target:
            return False
        if _PROGRESS[target] <= _PROGRESS[current]:
            logger.warning(
                "Seller projection is ahead of or diverged from the buyer order, not following",
                seller_order_id=str(self.id),
                order_id=str(self.order_id),
                current=current.value,
                target=target.value,
            )
            return False

        with atomic_change(self):
            self._change_status(target, ChangeOrigin.BUYER, note=note)
        return True

    # -------------------------------------------------------------------
    # Payment and returns
    # -------------------------------------------------------------------
    def settle_payment(self):
        """Payment collected on delivery, including cash-on-delivery."""
        if self.payment_status in (SellerPaymentStatus.SETTLED.value, SellerPaymentStatus.REFUNDED.value):
            return

        now = datetime.now(UTC)
        self.payment_status = SellerPaymentStatus.SETTLED.value
        self.settled_at = now
        self.raise_(
            SellerPaymentSettled(
                seller_order_id=str(self.id),
                order_id=str(self.order_id),
                seller_id=str(self.seller_id),
                amount=self.total,
                settled_at=now,
            )
        )

    def record_return_request(self, reason, refund_amount):
        self.return_reason = reason
        self.refund_amount = refund_amount
        self.updated_at = datetime.now(UTC)

    def resolve_return(self, approved: bool, note=None):
        if self.return_status != ReturnStatus.REQUESTED.value:
            raise ValidationError({"return_status": ["There is no pending return request for this order"]})

        now = datetime.now(UTC)
        self.return_status = ReturnStatus.APPROVED.value if approved else ReturnStatus.REJECTED.value
        if approved and self.refund_amount:
            self.payment_status = SellerPaymentStatus.REFUNDED.value
        self.updated_at = now

        self.raise_(
            SellerReturnResolved(
                seller_order_id=str(self.id),
                order_id=str(self.order_id),
                order_number=self.order_number,
                seller_id=str(self.seller_id),
                buyer_id=str(self.buyer_id),
                approved=approved,
                refund_amount=self.refund_amount if approved else 0.0,
                note=note,
                resolved_at=now,
            )
        )
