"""Domain events for the StockItem aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="StockItem")
class StockRegistered:
    __version__ = 1

    product_id = Identifier(required=True)
    product_name = String(required=True)
    seller_id = Identifier(required=True)
    initial_quantity = Integer(required=True)
    registered_at = DateTime(required=True)


@marketplace.event(part_of="StockItem")
class StockDeducted:
    """Stock left the shelf for a sale."""

    __version__ = 1

    product_id = Identifier(required=True)
    entry_id = Identifier(required=True)
    reason = String(required=True)
    reference_id = String()
    quantity = Integer(required=True)
    quantity_before = Integer(required=True)
    quantity_after = Integer(required=True)
    recorded_at = DateTime(required=True)


@marketplace.event(part_of="StockItem")
class StockRestocked:
    """Stock came back: cancellation, return or replenishment."""

    __version__ = 1

    product_id = Identifier(required=True)
    entry_id = Identifier(required=True)
    reason = String(required=True)
    reference_id = String()
    quantity = Integer(required=True)
    quantity_before = Integer(required=True)
    quantity_after = Integer(required=True)
    recorded_at = DateTime(required=True)


@marketplace.event(part_of="StockItem")
class StockAdjusted:
    __version__ = 1

    product_id = Identifier(required=True)
    entry_id = Identifier(required=True)
    quantity_change = Integer(required=True)
    quantity_before = Integer(required=True)
    quantity_after = Integer(required=True)
    actor_id = String(required=True)
    notes = Text(required=True)
    recorded_at = DateTime(required=True)


@marketplace.event(part_of="StockItem")
class LowStockDetected:
    __version__ = 1

    product_id = Identifier(required=True)
    product_name = String(required=True)
    seller_id = Identifier(required=True)
    current_quantity = Integer(required=True)
    threshold = Integer(required=True)
    detected_at = DateTime(required=True)
