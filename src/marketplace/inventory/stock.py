"""StockItem aggregate (CQRS) — tracked stock of one product and its ledger.

Every quantity change appends a ``LedgerEntry``; entries are never edited or
removed. The ledger doubles as the idempotency record: a sale, a cancellation
restock or a return restock is keyed by (reason, reference id), and a second
attempt with the same key is a logged no-op. That is what keeps a retried
checkout from selling the same order's stock twice.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.errors import InsufficientStock
from marketplace.inventory.events import (
    LowStockDetected,
    StockAdjusted,
    StockDeducted,
    StockRegistered,
    StockRestocked,
)

logger = structlog.get_logger(__name__)

LOW_STOCK_THRESHOLD = 10
SYSTEM_ACTOR = "SYSTEM"


class LedgerChangeType(Enum):
    DEDUCTION = "deduction"
    ADDITION = "addition"
    ADJUSTMENT = "adjustment"


class LedgerReason(Enum):
    ONLINE_SALE = "online_sale"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    STOCK_REPLENISHMENT = "stock_replenishment"
    ORDER_CANCELLATION = "order_cancellation"
    RETURN_RESTOCK = "return_restock"


# Reasons that must occur at most once per reference id
_IDEMPOTENT_REASONS = {
    LedgerReason.ONLINE_SALE,
    LedgerReason.ORDER_CANCELLATION,
    LedgerReason.RETURN_RESTOCK,
}


@marketplace.entity(part_of="StockItem")
class LedgerEntry:
    change_type = String(choices=LedgerChangeType, required=True)
    reason = String(choices=LedgerReason, required=True)
    quantity_before = Integer(required=True)
    quantity_change = Integer(required=True)  # signed
    quantity_after = Integer(required=True)
    reference_id = String(max_length=255)
    actor_id = String(max_length=255, default=SYSTEM_ACTOR)
    notes = Text()
    recorded_at = DateTime(required=True)


@marketplace.aggregate
class StockItem:
    product_id = Identifier(identifier=True, required=True)
    product_name = String(required=True, max_length=255)
    seller_id = Identifier(required=True)
    quantity = Integer(default=0)
    low_stock_threshold = Integer(default=LOW_STOCK_THRESHOLD, min_value=1)
    ledger = HasMany(LedgerEntry)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def quantity_cannot_be_negative(self):
        if self.quantity is not None and self.quantity < 0:
            raise ValidationError({"quantity": ["Stock cannot go negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, product_id, product_name, seller_id, initial_quantity=0):
        if initial_quantity < 0:
            raise ValidationError({"initial_quantity": ["Initial quantity cannot be negative"]})

        now = datetime.now(UTC)
        item = cls(
            product_id=product_id,
            product_name=product_name,
            seller_id=seller_id,
            quantity=initial_quantity,
            created_at=now,
            updated_at=now,
        )
        item.raise_(
            StockRegistered(
                product_id=str(product_id),
                product_name=product_name,
                seller_id=str(seller_id),
                initial_quantity=initial_quantity,
                registered_at=now,
            )
        )
        return item

    # -------------------------------------------------------------------
    # Ledger helpers
    # -------------------------------------------------------------------
    def find_entry(self, reason, reference_id):
        return next(
            (e for e in self.ledger if e.reason == LedgerReason(reason).value and e.reference_id == reference_id),
            None,
        )

    def outstanding_for(self, reference_id) -> int:
        """Units taken for ``reference_id`` and not yet put back."""
        return -sum(e.quantity_change for e in self.ledger if e.reference_id == reference_id)

    def _append(self, change_type, reason, quantity_change, reference_id=None, actor_id=SYSTEM_ACTOR, notes=None):
        now = datetime.now(UTC)
        before = self.quantity
        entry = LedgerEntry(
            change_type=change_type.value,
            reason=reason.value,
            quantity_before=before,
            quantity_change=quantity_change,
            quantity_after=before + quantity_change,
            reference_id=reference_id,
            actor_id=actor_id,
            notes=notes,
            recorded_at=now,
        )
        self.add_ledger(entry)
        self.quantity = entry.quantity_after
        self.updated_at = now
        return entry

    def _is_duplicate(self, reason: LedgerReason, reference_id) -> bool:
        if reason not in _IDEMPOTENT_REASONS or reference_id is None:
            return False
        if self.find_entry(reason.value, reference_id) is None:
            return False
        logger.warning(
            "Ledger entry already recorded for reference, skipping",
            product_id=str(self.product_id),
            reason=reason.value,
            reference_id=reference_id,
        )
        return True

    def _check_low_stock(self):
        """Raise LowStockDetected when stock is running out but not gone."""
        if 0 < self.quantity < self.low_stock_threshold:
            self.raise_(
                LowStockDetected(
                    product_id=str(self.product_id),
                    product_name=self.product_name,
                    seller_id=str(self.seller_id),
                    current_quantity=self.quantity,
                    threshold=self.low_stock_threshold,
                    detected_at=datetime.now(UTC),
                )
            )

    # -------------------------------------------------------------------
    # Movements
    # -------------------------------------------------------------------
    def deduct(self, quantity, reference_id, reason=LedgerReason.ONLINE_SALE.value):
        """Take stock for a sale. Returns the new entry, or None if already taken."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        reason = LedgerReason(reason)
        if self._is_duplicate(reason, reference_id):
            return None

        if quantity > self.quantity:
            raise InsufficientStock(
                {
                    "quantity": [
                        f"Insufficient stock for {self.product_name}. "
                        f"Available: {self.quantity}, Requested: {quantity}"
                    ]
                }
            )

        entry = self._append(LedgerChangeType.DEDUCTION, reason, -quantity, reference_id=reference_id)
        self.raise_(
            StockDeducted(
                product_id=str(self.product_id),
                entry_id=str(entry.id),
                reason=reason.value,
                reference_id=reference_id,
                quantity=quantity,
                quantity_before=entry.quantity_before,
                quantity_after=entry.quantity_after,
                recorded_at=entry.recorded_at,
            )
        )
        self._check_low_stock()
        return entry

    def restock(self, quantity, reason, reference_id=None, actor_id=SYSTEM_ACTOR, notes=None):
        """Put stock back. Returns the new entry, or None if already restocked."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        reason = LedgerReason(reason)
        if self._is_duplicate(reason, reference_id):
            return None

        entry = self._append(
            LedgerChangeType.ADDITION,
            reason,
            quantity,
            reference_id=reference_id,
            actor_id=actor_id,
            notes=notes,
        )
        self.raise_(
            StockRestocked(
                product_id=str(self.product_id),
                entry_id=str(entry.id),
                reason=reason.value,
                reference_id=reference_id,
                quantity=quantity,
                quantity_before=entry.quantity_before,
                quantity_after=entry.quantity_after,
                recorded_at=entry.recorded_at,
            )
        )
        return entry

    def adjust(self, quantity_change, notes, actor_id):
        """Manual correction by the seller. Notes are mandatory."""
        if not (notes and notes.strip()):
            raise ValidationError({"notes": ["Notes are required for manual stock adjustments"]})
        if quantity_change == 0:
            raise ValidationError({"quantity_change": ["Adjustment must change the quantity"]})
        if self.quantity + quantity_change < 0:
            raise ValidationError(
                {"quantity_change": [f"Adjustment would result in negative stock: {self.quantity + quantity_change}"]}
            )

        entry = self._append(
            LedgerChangeType.ADJUSTMENT,
            LedgerReason.MANUAL_ADJUSTMENT,
            quantity_change,
            actor_id=actor_id,
            notes=notes,
        )
        self.raise_(
            StockAdjusted(
                product_id=str(self.product_id),
                entry_id=str(entry.id),
                quantity_change=quantity_change,
                quantity_before=entry.quantity_before,
                quantity_after=entry.quantity_after,
                actor_id=actor_id,
                notes=notes,
                recorded_at=entry.recorded_at,
            )
        )
        self._check_low_stock()
        return entry
