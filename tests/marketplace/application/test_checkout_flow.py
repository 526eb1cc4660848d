"""Checkout through delivery: the buyer order, its seller projections and stock."""

from datetime import UTC, datetime

import pytest
from marketplace.cart.cart import Cart
from marketplace.errors import InsufficientStock, InvalidTransition
from marketplace.inventory.ledger import find_stock
from marketplace.order.cancellation import CancelOrder
from marketplace.order.order import Order
from marketplace.order.payment import SettlePayment
from marketplace.seller_order.queries import projections_for_order
from protean import current_domain
from protean.exceptions import ValidationError


class TestCashOnDelivery:
    def test_checkout_creates_unpaid_pending_order(self, buyer_id, add_to_cart, checkout):
        add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=2, unit_price=100.0)

        receipt = checkout(buyer_id, payment_type="cod")

        assert receipt["status"] == "pending"
        assert receipt["total"] == 200.0
        assert receipt["is_paid"] is False
        assert receipt["synced"] is True
        assert receipt["order_number"].startswith("BZR-")

        estimated = datetime.fromisoformat(receipt["estimated_delivery"])
        assert (estimated.date() - datetime.now(UTC).date()).days == 5

    def test_prepaid_order_is_paid_at_placement(self, buyer_id, add_to_cart, checkout):
        add_to_cart(buyer_id, "prod-bag", "seller-a")

        receipt = checkout(buyer_id, payment_type="gcash")

        assert receipt["is_paid"] is True
        estimated = datetime.fromisoformat(receipt["estimated_delivery"])
        assert (estimated.date() - datetime.now(UTC).date()).days == 3

    def test_delivery_settles_seller_payment_and_freezes_order(self, buyer_id, add_to_cart, checkout, deliver):
        add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=2)
        order_id = checkout(buyer_id, payment_type="cod")["order_id"]

        deliver(order_id)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == "delivered"
        assert order.delivered_at is not None
        assert order.is_paid is False

        (seller_order,) = projections_for_order(order_id)
        assert seller_order.status == "delivered"
        assert seller_order.payment_status == "settled"

        with pytest.raises(InvalidTransition):
            current_domain.process(
                CancelOrder(order_id=order_id, reason="Changed my mind", cancelled_by=buyer_id),
                asynchronous=False,
            )

    def test_cash_collected_after_delivery(self, buyer_id, add_to_cart, checkout, deliver):
        add_to_cart(buyer_id, "prod-bag", "seller-a")
        order_id = checkout(buyer_id, payment_type="cod")["order_id"]

        with pytest.raises(ValidationError):
            current_domain.process(SettlePayment(order_id=order_id), asynchronous=False)

        deliver(order_id)
        current_domain.process(SettlePayment(order_id=order_id), asynchronous=False)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.is_paid is True
        assert order.paid_at is not None


class TestCheckoutGuards:
    def test_empty_cart_is_rejected(self, buyer_id, checkout):
        with pytest.raises(ValidationError) as exc:
            checkout(buyer_id)
        assert exc.value.messages == {"cart": ["Cart is empty"]}

    def test_cart_is_cleared_after_checkout(self, buyer_id, add_to_cart, checkout):
        add_to_cart(buyer_id, "prod-bag", "seller-a")
        checkout(buyer_id)

        cart = current_domain.repository_for(Cart).get(buyer_id)
        assert len(cart.items) == 0

    def test_insufficient_stock_blocks_checkout(self, buyer_id, register_stock, add_to_cart, checkout):
        register_stock("prod-bag", "seller-a", 2, name="Rattan Bag")
        add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=3, name="Rattan Bag")

        with pytest.raises(InsufficientStock) as exc:
            checkout(buyer_id)

        assert exc.value.messages["quantity"] == ["Insufficient stock for Rattan Bag. Available: 2, Requested: 3"]
        assert len(current_domain.repository_for(Cart).get(buyer_id).items) == 1

    def test_order_items_are_copies_of_cart_lines(self, buyer_id, add_to_cart, checkout):
        add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=1, unit_price=250.0)
        order_id = checkout(buyer_id)["order_id"]

        add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=4, unit_price=999.0)

        order = current_domain.repository_for(Order).get(order_id)
        assert [(i.quantity, i.unit_price) for i in order.items] == [(1, 250.0)]


class TestStock:
    def test_placement_deducts_and_cancellation_restocks(self, buyer_id, register_stock, add_to_cart, checkout):
        register_stock("prod-bag", "seller-a", 50)
        add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=3)

        order_id = checkout(buyer_id)["order_id"]
        assert find_stock("prod-bag").quantity == 47

        current_domain.process(
            CancelOrder(order_id=order_id, reason="Ordered by mistake", cancelled_by=buyer_id),
            asynchronous=False,
        )

        stock = find_stock("prod-bag")
        assert stock.quantity == 50
        reasons = [entry.reason for entry in stock.ledger]
        assert reasons.count("online_sale") == 1
        assert reasons.count("order_cancellation") == 1

    def test_variants_of_one_product_are_deducted_together(self, buyer_id, register_stock, add_to_cart, checkout):
        register_stock("prod-bag", "seller-a", 20)
        add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=2, variant="Natural")
        add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=3, variant="Black")

        checkout(buyer_id)

        stock = find_stock("prod-bag")
        assert stock.quantity == 15
        assert len([e for e in stock.ledger if e.reason == "online_sale"]) == 1

    def test_untracked_products_are_not_deducted(self, buyer_id, add_to_cart, checkout):
        add_to_cart(buyer_id, "prod-untracked", "seller-a")
        receipt = checkout(buyer_id)
        assert receipt["status"] == "pending"
        assert find_stock("prod-untracked") is None

    def test_low_stock_alerts_the_seller(self, buyer_id, register_stock, add_to_cart, checkout):
        from marketplace.notification.notification import Notification

        register_stock("prod-bag", "seller-a", 12)
        add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=5)
        checkout(buyer_id)

        notices = (
            current_domain.repository_for(Notification)
            ._dao.query.filter(recipient_id="seller-a", notification_type="low_stock")
            .all()
            .items
        )
        assert len(notices) == 1
        assert notices[0].message == "Product prod-bag is running low: only 7 left in stock."


def test_backend_mirrors_order_and_ledger(buyer_id, register_stock, add_to_cart, checkout, backend):
    register_stock("prod-bag", "seller-a", 10)
    add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=2)

    order_id = checkout(buyer_id)["order_id"]

    assert order_id in backend.orders
    assert backend.ledger == [
        {"product_id": "prod-bag", "delta_qty": -2, "reason": "online_sale", "reference_id": order_id}
    ]
    assert [c["seller_id"] for c in backend.calls_for("notify_party_new_order")] == ["seller-a"]



def test_retried_deduction_for_the_same_order_is_a_no_op(register_stock):
    from marketplace.inventory.ledger import deduct_for_order

    register_stock("prod-bag", "seller-a", 10)
    items = [{"product_id": "prod-bag", "name": "Rattan Bag", "quantity": 4}]

    assert deduct_for_order("order-1", items) == 1
    assert deduct_for_order("order-1", items) == 0

    stock = find_stock("prod-bag")
    assert stock.quantity == 6
    assert len(stock.ledger) == 1
