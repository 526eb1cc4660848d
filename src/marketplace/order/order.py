"""Order aggregate (CQRS) — the canonical record of one purchase.

The Order is the buyer-side projection of a logical order and the only place
its status may change. Every change goes through ``transition_to`` (or one of
the workflows built on it), which re-validates the current status against the
adjacency map immediately before applying. Stale callers, like a progression
timer firing after a cancellation, are therefore rejected rather than
resurrecting the order.

State Machine (7 states):
    pending → confirmed → shipped → delivered
    delivered → returned            (return/refund workflow only)
    delivered → reviewed            (review workflow only)
    pending | confirmed | shipped → cancelled   (shipped: admin only)
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.errors import AlreadyReviewed, InvalidTransition, ReturnWindowClosed
from marketplace.order.events import (
    OrderPaymentSettled,
    OrderPlaced,
    OrderReviewCompleted,
    OrderStatusChanged,
    ReturnRequested,
)

COD_DELIVERY_DAYS = 5
STANDARD_DELIVERY_DAYS = 3
RETURN_WINDOW_DAYS = 7
MAX_EVIDENCE_FILES = 5


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    REVIEWED = "reviewed"


class PaymentType(Enum):
    CARD = "card"
    GCASH = "gcash"
    PAYMAYA = "paymaya"
    COD = "cod"


class ActorRole(Enum):
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"
    SYSTEM = "system"


class ReturnReason(Enum):
    DAMAGED = "damaged"
    WRONG_ITEM = "wrong_item"
    MISSING_PARTS = "missing_parts"
    NOT_AS_DESCRIBED = "not_as_described"
    OTHER = "other"


class ReturnSolution(Enum):
    RETURN_REFUND = "return_refund"
    REPLACEMENT = "replacement"
    REFUND_ONLY = "refund_only"


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED, OrderStatus.REVIEWED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
    OrderStatus.REVIEWED: set(),  # Terminal
}

TERMINAL_STATES = frozenset(s for s, targets in _VALID_TRANSITIONS.items() if not targets)

# Reachable only through their workflows, which attach the sub-record
_WORKFLOW_STATES = {OrderStatus.RETURNED, OrderStatus.REVIEWED}

_SETTLED_STATES = {OrderStatus.DELIVERED, OrderStatus.RETURNED, OrderStatus.REVIEWED}


def can_transition(current: str, target: str) -> bool:
    """Is there an edge from ``current`` to ``target`` in the adjacency map?"""
    return OrderStatus(target) in _VALID_TRANSITIONS[OrderStatus(current)]


def is_within_return_window(delivered_at, created_at, now=None) -> bool:
    """Day-granular return window check.

    Measured from the delivery date when known, else from the creation date.
    Never from ``now``: an order with neither date is never eligible.
    """
    anchor = delivered_at or created_at
    if anchor is None:
        return False
    now = now or datetime.now(UTC)
    return (now.date() - anchor.date()).days <= RETURN_WINDOW_DAYS


def compute_refund(total: float, solution: str) -> float:
    if ReturnSolution(solution) == ReturnSolution.REPLACEMENT:
        return 0.0
    return total


def format_order_number(order_id: str, year: int) -> str:
    """User-facing order number, e.g. ``BZR-2026-9F3A1C``."""
    return f"BZR-{year}-{str(order_id).replace('-', '')[-6:].upper()}"


def generate_tracking_number(now: datetime) -> str:
    return f"BPH{now.year}{int(now.timestamp() * 1000) % 1_000_000:06d}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class ShippingAddress:
    """Delivery address copied onto the order at checkout.

    A snapshot, never a live join: later edits to the buyer's address book do
    not affect orders already placed.
    """

    full_name = String(required=True, max_length=255)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    province = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    phone = String(required=True, max_length=30)


@marketplace.value_object(part_of="Order")
class PaymentMethod:
    type = String(choices=PaymentType, required=True)
    masked_details = String(max_length=100)  # e.g. "**** 4242" or "0917 *** 1234"


@marketplace.value_object(part_of="Order")
class ReturnRequest:
    """A return/refund request. Created once, never edited in place."""

    reason = String(choices=ReturnReason, required=True)
    solution = String(choices=ReturnSolution, required=True)
    comments = Text()
    evidence = Text()  # JSON array of file references
    refund_amount = Float(required=True, min_value=0.0)
    submitted_at = DateTime(required=True)

    @invariant.post
    def evidence_cannot_exceed_maximum(self):
        if self.evidence and len(json.loads(self.evidence)) > MAX_EVIDENCE_FILES:
            raise ValidationError({"evidence": [f"Cannot attach more than {MAX_EVIDENCE_FILES} files"]})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    variant = String(max_length=255)
    seller_id = Identifier(required=True)
    seller_name = String(max_length=255)
    review_submitted = Boolean(default=False)

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


@marketplace.entity(part_of="Order")
class OrderReview:
    """A line item's review, materialized on the order once it is reviewed."""

    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    rating = Integer(required=True, min_value=1, max_value=5)
    comment = Text()
    images = Text()  # JSON array of image references
    submitted_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    order_number = String(required=True, max_length=32)
    buyer_id = Identifier(required=True)
    buyer_name = String(max_length=255)
    items = HasMany(OrderItem)
    total = Float(required=True, min_value=0.0)
    shipping_address = ValueObject(ShippingAddress, required=True)
    payment_method = ValueObject(PaymentMethod, required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    is_paid = Boolean(default=False)
    paid_at = DateTime()
    tracking_number = String(max_length=50)
    estimated_delivery = DateTime()
    delivered_at = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=255)
    return_request = ValueObject(ReturnRequest)
    reviews = HasMany(OrderReview)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def return_request_only_on_returned_orders(self):
        returned = self.status == OrderStatus.RETURNED.value
        if returned != (self.return_request is not None):
            raise ValidationError({"return_request": ["A return request is present exactly when the order is returned"]})

    @invariant.post
    def reviews_only_on_reviewed_orders(self):
        reviewed = self.status == OrderStatus.REVIEWED.value
        if reviewed != bool(self.reviews):
            raise ValidationError({"reviews": ["Reviews are present exactly when the order is reviewed"]})

    @invariant.post
    def cash_on_delivery_is_paid_only_after_delivery(self):
        if (
            self.is_paid
            and self.payment_method is not None
            and self.payment_method.type == PaymentType.COD.value
            and OrderStatus(self.status) not in _SETTLED_STATES
        ):
            raise ValidationError({"is_paid": ["Cash-on-delivery orders are paid only once delivered"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, buyer_id, buyer_name, items, shipping_address, payment_method, order_id=None, now=None):
        """Create a pending order from copied cart line items.

        Args:
            items: List of dicts with product_id, name, unit_price, quantity,
                variant, seller_id, seller_name. The dicts are read, never kept.
            shipping_address: Dict matching ``ShippingAddress``.
            payment_method: Dict matching ``PaymentMethod``.
        """
        if not items:
            raise ValidationError({"items": ["An order must contain at least one item"]})

        now = now or datetime.now(UTC)
        order_id = order_id or str(uuid4())
        payment_type = PaymentType(payment_method["type"])
        delivery_days = COD_DELIVERY_DAYS if payment_type == PaymentType.COD else STANDARD_DELIVERY_DAYS

        order_items = [
            OrderItem(
                product_id=item["product_id"],
                name=item["name"],
                unit_price=item["unit_price"],
                quantity=item["quantity"],
                variant=item.get("variant"),
                seller_id=item["seller_id"],
                seller_name=item.get("seller_name"),
            )
            for item in items
        ]
        total = round(sum(item.line_total for item in order_items), 2)
        is_paid = payment_type != PaymentType.COD

        order = cls(
            id=order_id,
            order_number=format_order_number(order_id, now.year),
            buyer_id=buyer_id,
            buyer_name=buyer_name,
            items=order_items,
            total=total,
            shipping_address=ShippingAddress(**shipping_address),
            payment_method=PaymentMethod(**payment_method),
            status=OrderStatus.PENDING.value,
            is_paid=is_paid,
            paid_at=now if is_paid else None,
            tracking_number=generate_tracking_number(now),
            estimated_delivery=now + timedelta(days=delivery_days),
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                buyer_id=str(buyer_id),
                buyer_name=buyer_name,
                items=json.dumps(order.items_snapshot()),
                total=total,
                payment_type=payment_type.value,
                is_paid=is_paid,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------
    def items_snapshot(self) -> list[dict]:
        """Plain-dict copies of the line items."""
        return [
            {
                "item_id": str(item.id),
                "product_id": str(item.product_id),
                "name": item.name,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "variant": item.variant,
                "seller_id": str(item.seller_id),
                "seller_name": item.seller_name,
            }
            for item in self.items
        ]

    def seller_groups(self) -> dict[str, list[dict]]:
        groups: dict[str, list[dict]] = {}
        for item in self.items_snapshot():
            groups.setdefault(item["seller_id"], []).append(item)
        return groups

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def _guard(self, target: OrderStatus, actor_role: str | None) -> None:
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition({"status": [f"Cannot transition order from {current.value} to {target.value}"]})
        if current == OrderStatus.SHIPPED and target == OrderStatus.CANCELLED and actor_role != ActorRole.ADMIN.value:
            raise InvalidTransition({"status": ["Only an admin can cancel a shipped order"]})

    def _change_status(self, target: OrderStatus, actor_id, actor_role, note, now) -> None:
        previous = self.status
        self.status = target.value
        self.updated_at = now

        if target == OrderStatus.DELIVERED:
            self.delivered_at = now
        elif target == OrderStatus.CANCELLED:
            self.cancellation_reason = note
            self.cancelled_by = actor_id

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                buyer_id=str(self.buyer_id),
                buyer_name=self.buyer_name,
                previous_status=previous,
                new_status=target.value,
                actor_id=actor_id,
                actor_role=actor_role,
                note=note,
                items=json.dumps(self.items_snapshot()),
                total=self.total,
                changed_at=now,
            )
        )

    def transition_to(self, target, actor_id=None, actor_role=ActorRole.SYSTEM.value, note=None):
        """Move the order along one edge of the state machine.

        Raises ``InvalidTransition`` without touching the order when the edge
        does not exist. Cancelling requires ``note`` as the reason.
        """
        target = OrderStatus(target)
        self._guard(target, actor_role)

        if target in _WORKFLOW_STATES:
            raise ValidationError(
                {"status": [f"Orders become {target.value} only through the {target.value} workflow"]}
            )
        if target == OrderStatus.CANCELLED and not (note and note.strip()):
            raise ValidationError({"cancellation_reason": ["Cancellation reason is required"]})

        self._change_status(target, actor_id, actor_role, note, datetime.now(UTC))

    def cancel(self, reason, actor_id=None, actor_role=ActorRole.BUYER.value):
        if not (reason and reason.strip()):
            raise ValidationError({"cancellation_reason": ["Cancellation reason is required"]})
        self.transition_to(OrderStatus.CANCELLED.value, actor_id=actor_id, actor_role=actor_role, note=reason)

    # -------------------------------------------------------------------
    # Return / refund workflow
    # -------------------------------------------------------------------
    def request_return(
        self, reason, solution, comments=None, evidence=None, actor_id=None, now=None, refundable_total=None
    ):
        """Attach a return request and move the order to ``returned``.

        ``refundable_total`` is the part of the total still owed back to the
        buyer, i.e. without the shares sellers cancelled. Defaults to the
        whole total.
        """
        if self.return_request is not None:
            raise ValidationError({"return_request": ["A return request already exists for this order"]})

        self._guard(OrderStatus.RETURNED, ActorRole.BUYER.value)

        now = now or datetime.now(UTC)
        if not is_within_return_window(self.delivered_at, self.created_at, now):
            raise ReturnWindowClosed(
                {"return_request": [f"Return window has expired ({RETURN_WINDOW_DAYS} days from delivery)"]}
            )

        request = ReturnRequest(
            reason=reason,
            solution=solution,
            comments=comments,
            evidence=json.dumps(evidence or []),
            refund_amount=compute_refund(self.total if refundable_total is None else refundable_total, solution),
            submitted_at=now,
        )

        with atomic_change(self):
            self.return_request = request
            self._change_status(OrderStatus.RETURNED, actor_id, ActorRole.BUYER.value, comments or reason, now)

        self.raise_(
            ReturnRequested(
                order_id=str(self.id),
                order_number=self.order_number,
                buyer_id=str(self.buyer_id),
                reason=reason,
                solution=solution,
                comments=comments,
                refund_amount=request.refund_amount,
                requested_at=now,
            )
        )
        return request

    # -------------------------------------------------------------------
    # Review workflow
    # -------------------------------------------------------------------
    def get_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in order"]})
        return item

    def mark_item_reviewed(self, item_id) -> bool:
        """Flag one line item as reviewed. Returns True once every item is."""
        if OrderStatus(self.status) != OrderStatus.DELIVERED:
            raise ValidationError({"status": ["Only delivered orders can be reviewed"]})

        item = self.get_item(item_id)
        if item.review_submitted:
            raise AlreadyReviewed({"review": ["This item has already been reviewed"]})

        item.review_submitted = True
        self.updated_at = datetime.now(UTC)
        return all(item.review_submitted for item in self.items)

    def complete_review(self, reviews, actor_id=None):
        """Materialize the per-item reviews and move the order to ``reviewed``.

        Args:
            reviews: List of dicts with item_id, product_id, rating, comment,
                images (list) and submitted_at.
        """
        self._guard(OrderStatus.REVIEWED, ActorRole.BUYER.value)
        if not all(item.review_submitted for item in self.items):
            raise ValidationError({"reviews": ["Every item must be reviewed first"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            for review in reviews:
                self.add_reviews(
                    OrderReview(
                        item_id=review["item_id"],
                        product_id=review["product_id"],
                        rating=review["rating"],
                        comment=review.get("comment"),
                        images=json.dumps(review.get("images") or []),
                        submitted_at=review["submitted_at"],
                    )
                )
            self._change_status(OrderStatus.REVIEWED, actor_id, ActorRole.BUYER.value, None, now)

        self.raise_(
            OrderReviewCompleted(
                order_id=str(self.id),
                order_number=self.order_number,
                buyer_id=str(self.buyer_id),
                reviews=json.dumps(reviews, default=str),
                completed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def settle_payment(self):
        """Record cash collected for a cash-on-delivery order."""
        if self.is_paid:
            raise ValidationError({"is_paid": ["Order is already paid"]})
        if OrderStatus(self.status) not in _SETTLED_STATES:
            raise ValidationError({"is_paid": ["Cash-on-delivery orders are paid only once delivered"]})

        now = datetime.now(UTC)
        self.is_paid = True
        self.paid_at = now
        self.updated_at = now

        self.raise_(
            OrderPaymentSettled(
                order_id=str(self.id),
                order_number=self.order_number,
                amount=self.total,
                settled_at=now,
            )
        )
