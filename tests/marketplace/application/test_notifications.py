"""Notifications fanned out from order, seller and stock events."""

import pytest
from marketplace.notification.management import MarkNotificationRead
from marketplace.notification.notification import Notification
from marketplace.order.cancellation import CancelOrder
from marketplace.order.returns import RequestReturn
from marketplace.seller_order.fulfilment import ResolveReturn
from marketplace.seller_order.queries import projections_for_order
from protean import current_domain


def _notifications(recipient_id, notification_type=None):
    filters = {"recipient_id": recipient_id}
    if notification_type:
        filters["notification_type"] = notification_type
    return current_domain.repository_for(Notification)._dao.query.filter(**filters).all().items


@pytest.fixture()
def order_id(buyer_id, add_to_cart, checkout):
    add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=2, unit_price=625.0)
    return checkout(buyer_id)["order_id"]


def test_placement_notifies_buyer_and_seller(order_id, buyer_id):
    (buyer_notice,) = _notifications(buyer_id, "order_placed")
    assert buyer_notice.recipient_role == "buyer"
    assert buyer_notice.order_id == order_id
    assert buyer_notice.message.endswith("Total: ₱1,250.00")

    (seller_notice,) = _notifications("seller-a", "new_order")
    assert seller_notice.recipient_role == "seller"
    assert seller_notice.message.endswith("from Maria Santos. Total: ₱1,250.00")


def test_status_changes_notify_buyer(order_id, buyer_id, transition):
    transition(order_id, "confirmed")
    transition(order_id, "shipped")

    assert len(_notifications(buyer_id, "seller_confirmed")) == 1
    (shipped,) = _notifications(buyer_id, "shipped")
    assert "Tracking number: BPH" in shipped.message


def test_buyer_cancellation_alerts_seller(order_id, buyer_id):
    current_domain.process(
        CancelOrder(order_id=order_id, reason="Wrong size", cancelled_by=buyer_id),
        asynchronous=False,
    )

    (cancelled,) = _notifications(buyer_id, "cancelled")
    assert cancelled.message.endswith("Reason: Wrong size")
    assert len(_notifications("seller-a", "cancellation_request")) == 1


def test_return_notifies_both_parties_and_resolution_reaches_seller(order_id, buyer_id, deliver):
    deliver(order_id)
    current_domain.process(
        RequestReturn(order_id=order_id, buyer_id=buyer_id, reason="wrong_item", solution="refund_only"),
        asynchronous=False,
    )

    assert len(_notifications(buyer_id, "return_submitted")) == 1
    assert len(_notifications("seller-a", "return_request")) == 1

    (projection,) = projections_for_order(order_id)
    current_domain.process(ResolveReturn(seller_order_id=str(projection.id), approved=False), asynchronous=False)
    assert len(_notifications("seller-a", "return_rejected")) == 1


def test_live_feed_receives_dispatched_notifications(order_id, buyer_id, live_feed):
    newest = live_feed.entries(buyer_id)[0]
    assert newest.type == "order_placed"
    assert newest.order_id == order_id


def test_mark_read_updates_store_and_feed(order_id, buyer_id, live_feed):
    (notice,) = _notifications(buyer_id, "order_placed")

    current_domain.process(MarkNotificationRead(notification_id=str(notice.id)), asynchronous=False)

    assert current_domain.repository_for(Notification).get(str(notice.id)).read is True
    assert next(n for n in live_feed.entries() if n.id == str(notice.id)).read is True
