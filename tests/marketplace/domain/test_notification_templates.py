"""Tests for notification templates, message rendering and the live feed."""

import pytest
from marketplace.notification.dispatch import render_message
from marketplace.notification.live_feed import LIVE_FEED_CAPACITY, LiveFeed, LiveNotification
from marketplace.notification.templates import get_template, type_for_status
from marketplace.notification.templates.buyer import format_peso


class TestBuyerMessages:
    @pytest.mark.parametrize(
        "status,expected",
        [
            ("confirmed", "Your order #BZR-1 has been confirmed and is being prepared."),
            ("shipped", "Your order #BZR-1 has been shipped and is on its way!"),
            ("delivered", "Your order #BZR-1 has been delivered. Enjoy your purchase!"),
            ("cancelled", "Your order #BZR-1 has been cancelled."),
        ],
    )
    def test_status_messages(self, status, expected):
        message = render_message(type_for_status(status), {"order_number": "BZR-1"})["message"]
        assert message == expected

    def test_unknown_status_falls_back_to_update(self):
        content = render_message(type_for_status("on_hold"), {"order_number": "BZR-1", "status": "on_hold"})
        assert content["message"] == "Order #BZR-1 status updated to on_hold"

    def test_shipped_message_includes_tracking_number(self):
        content = render_message("shipped", {"order_number": "BZR-1", "tracking_number": "BPH2026000123"})
        assert "BPH2026000123" in content["message"]

    def test_cancel_message_includes_reason(self):
        content = render_message("cancelled", {"order_number": "BZR-1", "reason": "Out of stock"})
        assert content["message"].endswith("Reason: Out of stock")


class TestSellerMessages:
    def test_new_order(self):
        content = render_message("new_order", {"order_number": "BZR-1", "buyer_name": "Maria", "total": 1250})
        assert content["title"] == "New Order Received"
        assert content["message"] == "New order #BZR-1 from Maria. Total: ₱1,250.00"

    def test_audiences(self):
        assert get_template("new_order").audience == "seller"
        assert get_template("low_stock").audience == "seller"
        assert get_template("delivered").audience == "buyer"

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            get_template("carrier_pigeon")


def test_format_peso():
    assert format_peso(2900) == "₱2,900.00"
    assert format_peso(None) == "₱0.00"


class TestLiveFeed:
    def test_seeded_with_three_demo_entries(self):
        feed = LiveFeed()
        ids = [n.id for n in feed.entries()]
        assert ids == ["notif-1", "notif-2", "notif-3"]
        assert feed.unread_count() == 2

    def test_newest_first_and_capped(self):
        feed = LiveFeed()
        for i in range(LIVE_FEED_CAPACITY + 5):
            feed.push(LiveNotification(id=f"n-{i}", order_id=None, type="shipped", message="m", timestamp=None))

        entries = feed.entries()
        assert len(entries) == LIVE_FEED_CAPACITY
        assert entries[0].id == f"n-{LIVE_FEED_CAPACITY + 4}"

    def test_mark_read(self):
        feed = LiveFeed()
        assert feed.mark_read("notif-1") is True
        assert feed.unread_count() == 1
        assert feed.mark_read("missing") is False

    def test_entries_scoped_to_recipient(self):
        feed = LiveFeed()
        feed.push(LiveNotification(id="x", order_id=None, type="shipped", message="m", timestamp=None, recipient_id="a"))
        feed.push(LiveNotification(id="y", order_id=None, type="shipped", message="m", timestamp=None, recipient_id="b"))
        ids = [n.id for n in feed.entries("a")]
        assert "x" in ids and "y" not in ids
