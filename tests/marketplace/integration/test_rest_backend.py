"""RestBackend against a mocked HTTP transport."""

import json

import httpx
import pytest
from marketplace.backend import call_backend, is_local_only, set_backend
from marketplace.backend.port import OrderDetailSnapshot
from marketplace.backend.rest import RestBackend
from marketplace.errors import PersistenceUnavailable


def _backend(handler):
    return RestBackend("https://store.example.test/api", api_key="key-123", transport=httpx.MockTransport(handler))


class TestWrites:
    def test_status_update(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"ok": True})

        assert _backend(handler).persist_order_status("o-1", "confirmed", "Packed", "ops", "system") is True
        assert seen["method"] == "PATCH"
        assert seen["path"] == "/api/orders/o-1/status"
        assert seen["body"]["status"] == "confirmed"
        assert seen["auth"] == "Bearer key-123"

    def test_rejected_write_is_false(self):
        backend = _backend(lambda request: httpx.Response(409, json={"error": "conflict"}))
        assert backend.persist_order_status("o-1", "confirmed", None, None, None) is False

    @pytest.mark.parametrize("status", [500, 502, 503])
    def test_server_error_is_unavailable(self, status):
        backend = _backend(lambda request: httpx.Response(status))
        with pytest.raises(PersistenceUnavailable):
            backend.persist_ledger_entry("prod-1", -1, "online_sale", "o-1")

    def test_transport_error_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PersistenceUnavailable) as exc:
            _backend(handler).cancel_order("o-1", "Duplicate", "buyer-1", "buyer")
        assert exc.value.operation == "cancel_order"


class TestReads:
    def test_order_detail(self):
        payload = {
            "order_id": "o-1",
            "order_number": "BZR-2026-000001",
            "buyer_id": "buyer-1",
            "status": "delivered",
            "total": 250.0,
            "is_paid": 1,
            "items": [{"product_id": "p"}],
            "tracking_number": "BPH2026000001",
        }
        detail = _backend(lambda request: httpx.Response(200, json=payload)).fetch_order_detail("o-1")

        assert isinstance(detail, OrderDetailSnapshot)
        assert detail.is_paid is True
        assert detail.tracking_number == "BPH2026000001"
        assert detail.items == ({"product_id": "p"},)

    def test_missing_order_detail(self):
        assert _backend(lambda request: httpx.Response(404)).fetch_order_detail("nope") is None


def test_outage_engages_local_only_mode():
    set_backend(_backend(lambda request: httpx.Response(503)))

    result = call_backend("persist_order_status", "o-1", "shipped", None, None, None)

    assert result.synced is False
    assert result.mode == "local_only"
    assert "HTTP 503" in result.error
    assert is_local_only()
