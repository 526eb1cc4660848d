"""Tests for the return window, refund computation and the return workflow."""

from datetime import UTC, datetime, timedelta

import pytest
from marketplace.errors import ReturnWindowClosed
from marketplace.order.events import ReturnRequested
from marketplace.order.order import Order, OrderStatus, compute_refund, is_within_return_window
from protean.exceptions import ValidationError

ADDRESS = {
    "full_name": "Maria Santos",
    "street": "12 Mabini St",
    "city": "Quezon City",
    "province": "Metro Manila",
    "postal_code": "1100",
    "phone": "+63 917 555 0101",
}


def _delivered_order(total=2900.0):
    order = Order.place(
        buyer_id="buyer-001",
        buyer_name="Maria Santos",
        items=[
            {
                "product_id": "prod-001",
                "name": "Capiz Lamp",
                "unit_price": total,
                "quantity": 1,
                "seller_id": "seller-001",
            }
        ],
        shipping_address=ADDRESS,
        payment_method={"type": "card"},
    )
    for status in ("confirmed", "shipped", "delivered"):
        order.transition_to(status)
    order._events.clear()
    return order


class TestReturnWindow:
    def test_seven_days_after_delivery_is_inside(self):
        delivered = datetime(2026, 3, 1, 23, 59, tzinfo=UTC)
        assert is_within_return_window(delivered, None, now=datetime(2026, 3, 8, 0, 1, tzinfo=UTC))

    def test_eight_days_after_delivery_is_outside(self):
        delivered = datetime(2026, 3, 1, 0, 1, tzinfo=UTC)
        assert not is_within_return_window(delivered, None, now=datetime(2026, 3, 9, 0, 0, tzinfo=UTC))

    def test_creation_date_is_the_fallback_anchor(self):
        created = datetime(2026, 3, 1, tzinfo=UTC)
        assert is_within_return_window(None, created, now=datetime(2026, 3, 5, tzinfo=UTC))
        assert not is_within_return_window(None, created, now=datetime(2026, 3, 10, tzinfo=UTC))

    def test_no_anchor_means_not_eligible(self):
        assert not is_within_return_window(None, None, now=datetime(2026, 3, 1, tzinfo=UTC))


class TestRefund:
    def test_return_refund_refunds_total(self):
        assert compute_refund(2900.0, "return_refund") == 2900.0

    def test_refund_only_refunds_total(self):
        assert compute_refund(2900.0, "refund_only") == 2900.0

    def test_replacement_refunds_nothing(self):
        assert compute_refund(2900.0, "replacement") == 0.0


class TestRequestReturn:
    def test_return_moves_order_to_returned(self):
        order = _delivered_order()
        request = order.request_return("damaged", "return_refund", comments="Cracked shade", evidence=["a.jpg"])

        assert order.status == OrderStatus.RETURNED.value
        assert request.refund_amount == 2900.0
        assert order.return_request.reason == "damaged"
        assert any(isinstance(e, ReturnRequested) for e in order._events)

    def test_replacement_has_zero_refund(self):
        order = _delivered_order()
        request = order.request_return("wrong_item", "replacement")
        assert request.refund_amount == 0.0

    def test_expired_window_rejects_without_change(self):
        order = _delivered_order()
        later = order.delivered_at + timedelta(days=8)

        with pytest.raises(ReturnWindowClosed) as exc:
            order.request_return("damaged", "return_refund", now=later)

        assert "Return window has expired (7 days from delivery)" in str(exc.value.messages)
        assert order.status == OrderStatus.DELIVERED.value
        assert order.return_request is None

    def test_last_day_of_window_is_accepted(self):
        order = _delivered_order()
        order.request_return("damaged", "return_refund", now=order.delivered_at + timedelta(days=7))
        assert order.status == OrderStatus.RETURNED.value

    def test_second_return_request_is_rejected(self):
        order = _delivered_order()
        order.request_return("damaged", "return_refund")
        with pytest.raises(ValidationError) as exc:
            order.request_return("other", "refund_only")
        assert "A return request already exists for this order" in str(exc.value.messages)

    def test_return_requires_delivered_order(self):
        order = Order.place(
            buyer_id="buyer-001",
            buyer_name="Maria",
            items=[{"product_id": "p", "name": "P", "unit_price": 10.0, "quantity": 1, "seller_id": "s"}],
            shipping_address=ADDRESS,
            payment_method={"type": "card"},
        )
        with pytest.raises(ValidationError):
            order.request_return("damaged", "return_refund")
        assert order.status == OrderStatus.PENDING.value

    def test_evidence_is_capped_at_five_files(self):
        order = _delivered_order()
        with pytest.raises(ValidationError):
            order.request_return("damaged", "return_refund", evidence=[f"{i}.jpg" for i in range(6)])
