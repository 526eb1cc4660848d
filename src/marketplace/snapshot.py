"""Local snapshot store — the buyer's cart and orders cached on disk.

One JSON document per buyer under ``BAZAAR_SNAPSHOT_DIR/<store name>/``,
shaped ``{"items": [...], "orders": [...]}``. Notifications are not part of
the snapshot: loading one reseeds the live feed, as a page reload would.

Rehydration is defensive. Cart lines without an id or name, or with a
non-positive price or quantity, are dropped; so are orders without items,
with a non-positive total or without a shipping address.
"""

import json
import os
from pathlib import Path

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.cart.cart import Cart
from marketplace.cart.items import load_cart
from marketplace.notification.live_feed import reset_live_feed
from marketplace.order.queries import fetch_buyer_orders

logger = structlog.get_logger(__name__)

STORE_NAME = "bazaar-cart-store"
DEFAULT_SNAPSHOT_DIR = ".bazaar"


def _valid_item(item: dict) -> bool:
    return bool(
        item.get("product_id")
        and item.get("name")
        and (item.get("unit_price") or 0) > 0
        and (item.get("quantity") or 0) > 0
    )


def _valid_order(order: dict) -> bool:
    return bool(order.get("items") and (order.get("total") or 0) > 0 and order.get("shipping_address"))


def rehydrate(data: dict) -> dict:
    items = [i for i in data.get("items") or [] if _valid_item(i)]
    orders = [o for o in data.get("orders") or [] if _valid_order(o)]
    dropped = len(data.get("items") or []) - len(items) + len(data.get("orders") or []) - len(orders)
    if dropped:
        logger.warning("Dropped invalid entries from snapshot", dropped=dropped)
    return {"items": items, "orders": orders}


class LocalSnapshotStore:
    def __init__(self, directory=None, store_name: str = STORE_NAME) -> None:
        base = Path(directory or os.getenv("BAZAAR_SNAPSHOT_DIR", DEFAULT_SNAPSHOT_DIR))
        self.path = base / store_name

    def _file(self, buyer_id) -> Path:
        return self.path / f"{buyer_id}.json"

    def save(self, buyer_id) -> dict:
        """Write the buyer's current cart and orders to disk."""
        try:
            cart = current_domain.repository_for(Cart).get(str(buyer_id))
            items = cart.items_snapshot()
        except ObjectNotFoundError:
            items = []

        data = {"items": items, "orders": fetch_buyer_orders(buyer_id)}
        self.path.mkdir(parents=True, exist_ok=True)
        self._file(buyer_id).write_text(json.dumps(data, default=str, indent=2))
        logger.debug("Snapshot saved", buyer_id=str(buyer_id), items=len(items), orders=len(data["orders"]))
        return data

    def load(self, buyer_id) -> dict:
        """Read and sanitize the buyer's snapshot. Missing or corrupt files read as empty."""
        reset_live_feed()

        file = self._file(buyer_id)
        if not file.exists():
            return {"items": [], "orders": []}
        try:
            data = json.loads(file.read_text())
        except json.JSONDecodeError as exc:
            logger.error("Snapshot is not valid JSON, ignoring it", buyer_id=str(buyer_id), error=str(exc))
            return {"items": [], "orders": []}
        return rehydrate(data)

    def restore(self, buyer_id) -> dict:
        """Rebuild the buyer's cart from one read of the snapshot.

        Returns the restored cart items and the snapshot's orders.
        """
        data = self.load(buyer_id)
        cart = self._rebuild_cart(buyer_id, data["items"])
        return {"items": cart.items_snapshot(), "orders": data["orders"]}

    def _rebuild_cart(self, buyer_id, items: list[dict]) -> Cart:
        cart = load_cart(buyer_id)
        if cart.items:
            cart.clear()
        for item in items:
            cart.add_item(
                product_id=item["product_id"],
                name=item["name"],
                unit_price=item["unit_price"],
                quantity=item["quantity"],
                seller_id=item["seller_id"],
                seller_name=item.get("seller_name"),
                variant=item.get("variant"),
            )
        current_domain.repository_for(Cart).add(cart)
        return cart
