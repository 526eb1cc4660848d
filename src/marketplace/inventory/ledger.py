"""Ledger operations on behalf of orders.

Order items reference products by id; products without a ``StockItem`` are
not stock-tracked and are skipped with a warning. Line items of the same
product (different variants) are combined so each (product, order) pair gets
a single entry. Each recorded entry is mirrored to the backend of record on a
best-effort basis.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.backend import call_backend
from marketplace.errors import InsufficientStock
from marketplace.inventory.stock import LedgerReason, StockItem

logger = structlog.get_logger(__name__)


def find_stock(product_id) -> StockItem | None:
    try:
        return current_domain.repository_for(StockItem).get(str(product_id))
    except ObjectNotFoundError:
        return None


def quantities_by_product(items: list[dict]) -> dict[str, dict]:
    totals: dict[str, dict] = {}
    for item in items:
        entry = totals.setdefault(str(item["product_id"]), {"name": item.get("name"), "quantity": 0})
        entry["quantity"] += item["quantity"]
    return totals


def check_availability(items: list[dict]) -> None:
    """Raise ``InsufficientStock`` for the first product the shelf cannot cover."""
    for product_id, wanted in quantities_by_product(items).items():
        stock = find_stock(product_id)
        if stock is None:
            continue
        if wanted["quantity"] > stock.quantity:
            raise InsufficientStock(
                {
                    "quantity": [
                        f"Insufficient stock for {wanted['name']}. "
                        f"Available: {stock.quantity}, Requested: {wanted['quantity']}"
                    ]
                }
            )


def mirror_entry(product_id, entry) -> None:
    call_backend("persist_ledger_entry", str(product_id), entry.quantity_change, entry.reason, entry.reference_id)


def deduct_for_order(order_id: str, items: list[dict]) -> int:
    """Deduct stock for an order's items with reason online sale.

    Returns the number of ledger entries written; products already deducted
    for this order count as zero.
    """
    repo = current_domain.repository_for(StockItem)
    written = 0
    for product_id, wanted in quantities_by_product(items).items():
        stock = find_stock(product_id)
        if stock is None:
            logger.warning("Product is not stock-tracked, skipping deduction", product_id=product_id)
            continue
        entry = stock.deduct(wanted["quantity"], reference_id=order_id, reason=LedgerReason.ONLINE_SALE.value)
        if entry is None:
            continue
        repo.add(stock)
        mirror_entry(product_id, entry)
        written += 1
    return written


def restock_for_order(order_id: str, items: list[dict], reason: str) -> int:
    """Return an order's items to stock.

    Only units still out for the order come back, whatever reason put the
    earlier ones back. A seller cancellation followed by a buyer return
    therefore restocks each unit once.
    """
    repo = current_domain.repository_for(StockItem)
    written = 0
    for product_id, wanted in quantities_by_product(items).items():
        stock = find_stock(product_id)
        if stock is None:
            logger.warning("Product is not stock-tracked, skipping restock", product_id=product_id)
            continue
        outstanding = stock.outstanding_for(order_id)
        if outstanding <= 0:
            logger.info("No stock out for order, nothing to restock", product_id=product_id, order_id=order_id)
            continue
        entry = stock.restock(min(wanted["quantity"], outstanding), reason=reason, reference_id=order_id)
        if entry is None:
            continue
        repo.add(stock)
        mirror_entry(product_id, entry)
        written += 1
    return written
