"""REST adapter for the hosted backend of record.

Speaks JSON over HTTP through a shared ``httpx.Client``. Transport failures
and 5xx responses mean the store is unreachable and raise
``PersistenceUnavailable``; a 4xx response is a rejected write and comes back
as ``False`` (or ``None`` for lookups).
"""

import httpx
import structlog

from marketplace.backend.port import OrderBackend, OrderDetailSnapshot, OrderSnapshot
from marketplace.errors import PersistenceUnavailable

logger = structlog.get_logger(__name__)

_SNAPSHOT_FIELDS = ("order_id", "order_number", "buyer_id", "status", "total", "is_paid", "created_at", "seller_id")


def _to_snapshot(payload: dict, cls=OrderSnapshot):
    data = {k: payload.get(k) for k in _SNAPSHOT_FIELDS}
    data["is_paid"] = bool(data["is_paid"])
    data["items"] = tuple(payload.get("items") or ())
    if cls is OrderDetailSnapshot:
        data.update(
            shipping_address=payload.get("shipping_address") or {},
            payment_method=payload.get("payment_method") or {},
            tracking_number=payload.get("tracking_number"),
            estimated_delivery=payload.get("estimated_delivery"),
            delivered_at=payload.get("delivered_at"),
            return_request=payload.get("return_request"),
            reviews=tuple(payload.get("reviews") or ()),
        )
    return cls(**data)


class RestBackend(OrderBackend):
    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, operation: str, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Backend request failed", operation=operation, path=path, error=str(exc))
            raise PersistenceUnavailable(operation, str(exc)) from exc

        if response.status_code >= 500:
            logger.warning("Backend returned server error", operation=operation, status=response.status_code)
            raise PersistenceUnavailable(operation, f"HTTP {response.status_code}")
        return response

    def _write(self, operation: str, method: str, path: str, payload: dict) -> bool:
        response = self._request(operation, method, path, json=payload)
        if response.is_success:
            return True
        logger.warning(
            "Backend rejected write",
            operation=operation,
            status=response.status_code,
            body=response.text[:200],
        )
        return False

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def persist_order_create(self, order: dict) -> str | None:
        response = self._request("persist_order_create", "POST", "/orders", json=order)
        if not response.is_success:
            logger.warning("Backend rejected order", order_id=order.get("id"), status=response.status_code)
            return None
        return str(response.json().get("id", order.get("id")))

    def persist_order_status(self, order_id, status, note, actor_id, actor_role) -> bool:
        return self._write(
            "persist_order_status",
            "PATCH",
            f"/orders/{order_id}/status",
            {"status": status, "note": note, "changed_by": actor_id, "changed_by_role": actor_role},
        )

    def persist_ledger_entry(self, product_id, delta_qty, reason, reference_id) -> bool:
        return self._write(
            "persist_ledger_entry",
            "POST",
            "/inventory/ledger",
            {"product_id": product_id, "quantity_change": delta_qty, "reason": reason, "reference_id": reference_id},
        )

    def notify_party_new_order(self, seller_id, order_id, order_number, buyer_name, total) -> bool:
        return self._write(
            "notify_party_new_order",
            "POST",
            "/notifications/new-order",
            {
                "seller_id": seller_id,
                "order_id": order_id,
                "order_number": order_number,
                "buyer_name": buyer_name,
                "total": total,
            },
        )

    def notify_seller_verification(self, seller_id, approved, note=None) -> bool:
        return self._write(
            "notify_seller_verification",
            "POST",
            "/notifications/seller-verification",
            {"seller_id": seller_id, "approved": approved, "note": note},
        )

    def submit_review(self, order_id, buyer_id, reviews) -> bool:
        return self._write(
            "submit_review",
            "POST",
            f"/orders/{order_id}/reviews",
            {"buyer_id": buyer_id, "reviews": reviews},
        )

    def cancel_order(self, order_id, reason, cancelled_by, changed_by_role) -> bool:
        return self._write(
            "cancel_order",
            "POST",
            f"/orders/{order_id}/cancel",
            {"reason": reason, "cancelled_by": cancelled_by, "changed_by_role": changed_by_role},
        )

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def fetch_buyer_orders(self, buyer_id) -> list[OrderSnapshot]:
        response = self._request("fetch_buyer_orders", "GET", f"/buyers/{buyer_id}/orders")
        if not response.is_success:
            return []
        return [_to_snapshot(o) for o in response.json()]

    def fetch_seller_orders(self, seller_id) -> list[OrderSnapshot]:
        response = self._request("fetch_seller_orders", "GET", f"/sellers/{seller_id}/orders")
        if not response.is_success:
            return []
        return [_to_snapshot(o) for o in response.json()]

    def fetch_order_detail(self, order_id_or_number, buyer_id=None) -> OrderDetailSnapshot | None:
        params = {"buyer_id": buyer_id} if buyer_id else None
        response = self._request("fetch_order_detail", "GET", f"/orders/{order_id_or_number}", params=params)
        if response.status_code == 404 or not response.is_success:
            return None
        return _to_snapshot(response.json(), OrderDetailSnapshot)
