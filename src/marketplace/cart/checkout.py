"""Checkout — convert the buyer's cart into a pending Order.

The order is created from copies of the cart lines and the cart is cleared
in the same unit of work. Everything downstream (seller projections, stock
deduction, notifications, progression) is driven by ``OrderPlaced`` in
``marketplace.order.placement`` and is best-effort per seller group.
"""

import json

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.backend import call_backend
from marketplace.cart.cart import Cart
from marketplace.domain import marketplace
from marketplace.inventory.ledger import check_availability
from marketplace.order.order import Order
from marketplace.order.serialization import order_to_dict
from marketplace.order.transition import receipt


@marketplace.command(part_of="Cart")
class Checkout:
    buyer_id = Identifier(required=True)
    buyer_name = String(max_length=255)
    shipping_address = Text(required=True)  # JSON: ShippingAddress fields
    payment_method = Text(required=True)  # JSON: {"type": ..., "masked_details": ...}
    order_id = Identifier()  # Optional: caller-supplied id


@marketplace.command_handler(part_of=Cart)
class CheckoutHandler:
    @handle(Checkout)
    def checkout(self, command: Checkout) -> dict:
        cart_repo = current_domain.repository_for(Cart)
        try:
            cart = cart_repo.get(str(command.buyer_id))
        except ObjectNotFoundError:
            cart = None
        if cart is None or not cart.items:
            raise ValidationError({"cart": ["Cart is empty"]})

        items = cart.items_snapshot()
        check_availability(items)

        order = Order.place(
            buyer_id=str(command.buyer_id),
            buyer_name=command.buyer_name,
            items=items,
            shipping_address=json.loads(command.shipping_address),
            payment_method=json.loads(command.payment_method),
            order_id=command.order_id,
        )
        current_domain.repository_for(Order).add(order)

        cart.clear()
        cart_repo.add(cart)

        result = call_backend("persist_order_create", order_to_dict(order))
        return receipt(
            order,
            result,
            total=order.total,
            is_paid=order.is_paid,
            estimated_delivery=order.estimated_delivery.isoformat(),
            tracking_number=order.tracking_number,
        )
