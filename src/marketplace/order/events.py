"""Domain events for the Order aggregate.

``OrderStatusChanged`` is the single fact every downstream concern listens
to: the seller-view synchronizer, the inventory ledger restock, the
notification dispatcher and the timeline projection. It carries the line
items so subscribers never reach back into the Order aggregate.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A cart was converted into a pending order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = Identifier(required=True)
    buyer_name = String()
    items = Text(required=True)  # JSON: list of line item dicts, with seller identity
    total = Float(required=True)
    payment_type = String(required=True)
    is_paid = Boolean(default=False)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along an edge of the state machine."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = Identifier(required=True)
    buyer_name = String()
    previous_status = String(required=True)
    new_status = String(required=True)
    actor_id = String()
    actor_role = String()
    note = Text()
    items = Text(required=True)  # JSON: list of line item dicts
    total = Float(required=True)
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class ReturnRequested:
    """A return/refund request was attached to a delivered order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = Identifier(required=True)
    reason = String(required=True)
    solution = String(required=True)
    comments = Text()
    refund_amount = Float(required=True)
    requested_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderReviewCompleted:
    """Every line item has a review; the order is now reviewed."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = Identifier(required=True)
    reviews = Text(required=True)  # JSON: list of review dicts
    completed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderPaymentSettled:
    """Payment for a cash-on-delivery order was collected."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount = Float(required=True)
    settled_at = DateTime(required=True)
