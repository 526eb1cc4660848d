"""Seller-facing stock commands: register, adjust, replenish."""

from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.inventory.ledger import mirror_entry
from marketplace.inventory.stock import LedgerReason, StockItem


@marketplace.command(part_of="StockItem")
class RegisterStock:
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    seller_id = Identifier(required=True)
    initial_quantity = Integer(default=0)


@marketplace.command(part_of="StockItem")
class AdjustStock:
    product_id = Identifier(required=True)
    quantity_change = Integer(required=True)
    notes = Text(required=True)
    actor_id = String(required=True, max_length=255)


@marketplace.command(part_of="StockItem")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    actor_id = String(required=True, max_length=255)
    notes = Text()


@marketplace.command_handler(part_of=StockItem)
class StockManagementHandler:
    @handle(RegisterStock)
    def register_stock(self, command: RegisterStock) -> str:
        stock = StockItem.register(
            product_id=command.product_id,
            product_name=command.product_name,
            seller_id=command.seller_id,
            initial_quantity=command.initial_quantity,
        )
        current_domain.repository_for(StockItem).add(stock)
        return str(stock.product_id)

    @handle(AdjustStock)
    def adjust_stock(self, command: AdjustStock) -> int:
        repo = current_domain.repository_for(StockItem)
        stock = repo.get(command.product_id)
        entry = stock.adjust(command.quantity_change, notes=command.notes, actor_id=command.actor_id)
        repo.add(stock)
        mirror_entry(stock.product_id, entry)
        return stock.quantity

    @handle(RestockProduct)
    def restock_product(self, command: RestockProduct) -> int:
        repo = current_domain.repository_for(StockItem)
        stock = repo.get(command.product_id)
        entry = stock.restock(
            command.quantity,
            reason=LedgerReason.STOCK_REPLENISHMENT.value,
            actor_id=command.actor_id,
            notes=command.notes,
        )
        repo.add(stock)
        mirror_entry(stock.product_id, entry)
        return stock.quantity
