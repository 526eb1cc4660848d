"""Cart item management — commands and handler."""

from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.cart.cart import Cart
from marketplace.domain import marketplace


@marketplace.command(part_of="Cart")
class AddToCart:
    buyer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Float(required=True)
    quantity = Integer(required=True, min_value=1)
    seller_id = Identifier(required=True)
    seller_name = String(max_length=255)
    variant = String(max_length=255)


@marketplace.command(part_of="Cart")
class UpdateCartQuantity:
    buyer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_quantity = Integer(required=True)


@marketplace.command(part_of="Cart")
class RemoveFromCart:
    buyer_id = Identifier(required=True)
    item_id = Identifier(required=True)


def load_cart(buyer_id) -> Cart:
    """The buyer's cart, or a new empty one."""
    try:
        return current_domain.repository_for(Cart).get(str(buyer_id))
    except ObjectNotFoundError:
        return Cart.create(str(buyer_id))


@marketplace.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command: AddToCart) -> str:
        cart = load_cart(command.buyer_id)
        item_id = cart.add_item(
            product_id=command.product_id,
            name=command.name,
            unit_price=command.unit_price,
            quantity=command.quantity,
            seller_id=command.seller_id,
            seller_name=command.seller_name,
            variant=command.variant,
        )
        current_domain.repository_for(Cart).add(cart)
        return item_id

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command: UpdateCartQuantity) -> None:
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.buyer_id)
        cart.update_quantity(command.item_id, command.new_quantity)
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command: RemoveFromCart) -> None:
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.buyer_id)
        cart.remove_item(command.item_id)
        repo.add(cart)
