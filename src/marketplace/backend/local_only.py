"""Local-only fallback backend.

Engaged once the backend of record is unreachable. Writes are accepted and
dropped (the local repositories keep the optimistic state); reads return
nothing so callers fall back to local queries.
"""

import structlog

from marketplace.backend.port import OrderBackend

logger = structlog.get_logger(__name__)


class LocalOnlyBackend(OrderBackend):
    def __init__(self, reason: str = "") -> None:
        self.reason = reason

    def _skip(self, operation: str, **context) -> None:
        logger.debug("Local-only mode, skipping backend call", operation=operation, **context)

    def persist_order_create(self, order):
        self._skip("persist_order_create", order_id=order.get("id"))
        return None

    def persist_order_status(self, order_id, status, note, actor_id, actor_role):
        self._skip("persist_order_status", order_id=order_id, status=status)
        return False

    def persist_ledger_entry(self, product_id, delta_qty, reason, reference_id):
        self._skip("persist_ledger_entry", product_id=product_id, reference_id=reference_id)
        return False

    def fetch_buyer_orders(self, buyer_id):
        return []

    def fetch_seller_orders(self, seller_id):
        return []

    def fetch_order_detail(self, order_id_or_number, buyer_id=None):
        return None

    def notify_party_new_order(self, seller_id, order_id, order_number, buyer_name, total):
        self._skip("notify_party_new_order", seller_id=seller_id, order_id=order_id)
        return False

    def notify_seller_verification(self, seller_id, approved, note=None):
        self._skip("notify_seller_verification", seller_id=seller_id)
        return False

    def submit_review(self, order_id, buyer_id, reviews):
        self._skip("submit_review", order_id=order_id)
        return False

    def cancel_order(self, order_id, reason, cancelled_by, changed_by_role):
        self._skip("cancel_order", order_id=order_id)
        return False
