"""In-memory order backend for development and testing.

Keeps everything in dicts and records every call. Can be switched
unavailable at runtime to exercise the local-only fallback path.
"""

from marketplace.backend.port import OrderBackend, OrderDetailSnapshot, OrderSnapshot
from marketplace.errors import PersistenceUnavailable


def _summary(order: dict, seller_id: str | None = None) -> OrderSnapshot:
    items = order.get("items", [])
    if seller_id is not None:
        items = [i for i in items if i.get("seller_id") == seller_id]
    return OrderSnapshot(
        order_id=order["id"],
        order_number=order["order_number"],
        buyer_id=order["buyer_id"],
        status=order["status"],
        total=round(sum(i["unit_price"] * i["quantity"] for i in items), 2) if seller_id else order["total"],
        is_paid=order.get("is_paid", False),
        created_at=order.get("created_at"),
        seller_id=seller_id,
        items=tuple(items),
    )


class InMemoryBackend(OrderBackend):
    """Configurable in-memory backend of record."""

    def __init__(self) -> None:
        self.available: bool = True
        self.failure_reason: str = "Backend unreachable"
        self.orders: dict[str, dict] = {}
        self.ledger: list[dict] = []
        self.notices: list[dict] = []
        self.reviews: dict[str, list[dict]] = {}
        self.calls: list[dict] = []

    def configure(self, available: bool, failure_reason: str = "Backend unreachable") -> None:
        """Configure backend availability at runtime."""
        self.available = available
        self.failure_reason = failure_reason

    def reset(self) -> None:
        self.__init__()

    def _record(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if not self.available:
            raise PersistenceUnavailable(method, self.failure_reason)

    def calls_for(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def persist_order_create(self, order: dict) -> str | None:
        self._record("persist_order_create", order_id=order["id"])
        self.orders[order["id"]] = dict(order)
        return order["id"]

    def persist_order_status(self, order_id, status, note, actor_id, actor_role) -> bool:
        self._record(
            "persist_order_status",
            order_id=order_id,
            status=status,
            note=note,
            actor_id=actor_id,
            actor_role=actor_role,
        )
        if order_id not in self.orders:
            return False
        self.orders[order_id]["status"] = status
        return True

    def persist_ledger_entry(self, product_id, delta_qty, reason, reference_id) -> bool:
        self._record(
            "persist_ledger_entry",
            product_id=product_id,
            delta_qty=delta_qty,
            reason=reason,
            reference_id=reference_id,
        )
        self.ledger.append(
            {"product_id": product_id, "delta_qty": delta_qty, "reason": reason, "reference_id": reference_id}
        )
        return True

    def notify_party_new_order(self, seller_id, order_id, order_number, buyer_name, total) -> bool:
        self._record(
            "notify_party_new_order",
            seller_id=seller_id,
            order_id=order_id,
            order_number=order_number,
            buyer_name=buyer_name,
            total=total,
        )
        self.notices.append({"kind": "new_order", "seller_id": seller_id, "order_id": order_id})
        return True

    def notify_seller_verification(self, seller_id, approved, note=None) -> bool:
        self._record("notify_seller_verification", seller_id=seller_id, approved=approved, note=note)
        self.notices.append({"kind": "verification", "seller_id": seller_id, "approved": approved})
        return True

    def submit_review(self, order_id, buyer_id, reviews) -> bool:
        self._record("submit_review", order_id=order_id, buyer_id=buyer_id, count=len(reviews))
        self.reviews.setdefault(order_id, []).extend(reviews)
        return True

    def cancel_order(self, order_id, reason, cancelled_by, changed_by_role) -> bool:
        self._record(
            "cancel_order",
            order_id=order_id,
            reason=reason,
            cancelled_by=cancelled_by,
            changed_by_role=changed_by_role,
        )
        if order_id not in self.orders:
            return False
        self.orders[order_id].update(status="cancelled", cancellation_reason=reason)
        return True

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def fetch_buyer_orders(self, buyer_id) -> list[OrderSnapshot]:
        self._record("fetch_buyer_orders", buyer_id=buyer_id)
        return [_summary(o) for o in self.orders.values() if o["buyer_id"] == buyer_id]

    def fetch_seller_orders(self, seller_id) -> list[OrderSnapshot]:
        self._record("fetch_seller_orders", seller_id=seller_id)
        return [
            _summary(o, seller_id)
            for o in self.orders.values()
            if any(i.get("seller_id") == seller_id for i in o.get("items", []))
        ]

    def fetch_order_detail(self, order_id_or_number, buyer_id=None) -> OrderDetailSnapshot | None:
        self._record("fetch_order_detail", order_id_or_number=order_id_or_number, buyer_id=buyer_id)
        order = self.orders.get(order_id_or_number) or next(
            (o for o in self.orders.values() if o["order_number"] == order_id_or_number), None
        )
        if order is None or (buyer_id is not None and order["buyer_id"] != buyer_id):
            return None
        summary = _summary(order)
        return OrderDetailSnapshot(
            **summary.__dict__,
            shipping_address=order.get("shipping_address") or {},
            payment_method=order.get("payment_method") or {},
            tracking_number=order.get("tracking_number"),
            estimated_delivery=order.get("estimated_delivery"),
            delivered_at=order.get("delivered_at"),
            return_request=order.get("return_request"),
            reviews=tuple(self.reviews.get(order["id"], [])),
        )
