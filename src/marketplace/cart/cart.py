"""Cart aggregate (CQRS) — the buyer's mutable collection of line items.

One cart per buyer, keyed by the buyer id. Line items copy the product's
name, price and seller at the time they were added; checkout copies them
again into the Order, so later cart edits never reach a placed order.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from marketplace.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from marketplace.domain import marketplace


@marketplace.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    variant = String(max_length=255)
    seller_id = Identifier(required=True)
    seller_name = String(max_length=255)
    added_at = DateTime()


@marketplace.aggregate
class Cart:
    buyer_id = Identifier(identifier=True, required=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, buyer_id):
        now = datetime.now(UTC)
        return cls(buyer_id=buyer_id, created_at=now, updated_at=now)

    @property
    def total(self) -> float:
        return round(sum(i.unit_price * i.quantity for i in self.items), 2)

    def _find(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, name, unit_price, quantity, seller_id, seller_name=None, variant=None):
        """Add an item, or increase the quantity of the same product and variant."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if unit_price <= 0:
            raise ValidationError({"unit_price": ["Price must be positive"]})

        existing = next(
            (i for i in self.items if str(i.product_id) == str(product_id) and (i.variant or None) == (variant or None)),
            None,
        )

        now = datetime.now(UTC)
        if existing:
            existing.quantity += quantity
            item_id = str(existing.id)
        else:
            item = CartItem(
                product_id=product_id,
                name=name,
                unit_price=unit_price,
                quantity=quantity,
                variant=variant,
                seller_id=seller_id,
                seller_name=seller_name,
                added_at=now,
            )
            self.add_items(item)
            item_id = str(item.id)

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                buyer_id=str(self.buyer_id),
                item_id=item_id,
                product_id=str(product_id),
                variant=variant,
                quantity=quantity,
            )
        )
        return item_id

    def update_quantity(self, item_id, new_quantity):
        """Set an item's quantity. Zero or less removes the item."""
        item = self._find(item_id)
        if new_quantity <= 0:
            self.remove_item(item_id)
            return

        previous = item.quantity
        item.quantity = new_quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartQuantityUpdated(
                buyer_id=str(self.buyer_id),
                item_id=str(item_id),
                previous_quantity=previous,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, item_id):
        item = self._find(item_id)
        self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartItemRemoved(buyer_id=str(self.buyer_id), item_id=str(item_id)))

    def clear(self):
        count = len(self.items)
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCleared(buyer_id=str(self.buyer_id), items_removed=count))

    def items_snapshot(self) -> list[dict]:
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
