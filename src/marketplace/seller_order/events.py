"""Domain events for the SellerOrder aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="SellerOrder")
class SellerOrderCreated:
    __version__ = 1

    seller_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_number = String(required=True)
    seller_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    total = Float(required=True)
    created_at = DateTime(required=True)


@marketplace.event(part_of="SellerOrder")
class SellerOrderStatusChanged:
    """A seller's projection changed status.

    ``origin`` tells the synchronizer whether the seller drove the change
    (propagate to the buyer order) or it followed the buyer order (stop).
    """

    __version__ = 1

    seller_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_number = String(required=True)
    seller_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    origin = String(required=True)
    actor_id = String()
    note = Text()
    items = Text(required=True)  # JSON: the seller's line items
    changed_at = DateTime(required=True)


@marketplace.event(part_of="SellerOrder")
class SellerPaymentSettled:
    __version__ = 1

    seller_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    amount = Float(required=True)
    settled_at = DateTime(required=True)


@marketplace.event(part_of="SellerOrder")
class SellerReturnResolved:
    __version__ = 1

    seller_order_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_number = String(required=True)
    seller_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    approved = Boolean(required=True)
    refund_amount = Float()
    note = Text()
    resolved_at = DateTime(required=True)
