"""Return/refund and review workflows on delivered orders."""

import json

import pytest
from marketplace.errors import AlreadyReviewed, InvalidTransition
from marketplace.inventory.ledger import find_stock
from marketplace.order.order import Order
from marketplace.order.returns import RequestReturn
from marketplace.order.reviews import ItemReview, ReviewOrderItem
from marketplace.seller_order.fulfilment import ResolveReturn
from marketplace.seller_order.queries import projections_for_order
from protean import current_domain
from protean.exceptions import ValidationError


def _request_return(order_id, buyer_id, solution="return_refund", reason="damaged"):
    return current_domain.process(
        RequestReturn(
            order_id=order_id,
            buyer_id=buyer_id,
            reason=reason,
            solution=solution,
            comments="Handle was torn on arrival",
            evidence=json.dumps(["photo-1.jpg"]),
        ),
        asynchronous=False,
    )


def _review(order_id, item_id, buyer_id, rating=5):
    return current_domain.process(
        ReviewOrderItem(order_id=order_id, item_id=item_id, buyer_id=buyer_id, rating=rating, comment="Lovely"),
        asynchronous=False,
    )


@pytest.fixture()
def delivered_order(buyer_id, register_stock, add_to_cart, checkout, deliver):
    register_stock("prod-bag", "seller-a", 20)
    register_stock("prod-mug", "seller-b", 20)
    add_to_cart(buyer_id, "prod-bag", "seller-a", quantity=2, unit_price=150.0)
    add_to_cart(buyer_id, "prod-mug", "seller-b", quantity=1, unit_price=80.0)
    order_id = checkout(buyer_id)["order_id"]
    deliver(order_id)
    return order_id


class TestReturns:
    def test_return_refunds_total_and_restocks(self, delivered_order, buyer_id):
        receipt = _request_return(delivered_order, buyer_id)

        assert receipt["status"] == "returned"
        assert receipt["refund_amount"] == 380.0

        order = current_domain.repository_for(Order).get(delivered_order)
        assert order.return_request.reason == "damaged"
        assert json.loads(order.return_request.evidence) == ["photo-1.jpg"]

        assert find_stock("prod-bag").quantity == 20
        assert find_stock("prod-mug").quantity == 20

    def test_each_seller_refunds_its_share(self, delivered_order, buyer_id):
        _request_return(delivered_order, buyer_id)

        projections = {str(so.seller_id): so for so in projections_for_order(delivered_order)}
        assert projections["seller-a"].status == "returned"
        assert projections["seller-a"].return_status == "requested"
        assert projections["seller-a"].refund_amount == 300.0
        assert projections["seller-b"].refund_amount == 80.0

    def test_replacement_refunds_nothing(self, delivered_order, buyer_id):
        receipt = _request_return(delivered_order, buyer_id, solution="replacement")

        assert receipt["refund_amount"] == 0.0
        assert {so.refund_amount for so in projections_for_order(delivered_order)} == {0.0}

    def test_only_the_buyer_can_request_a_return(self, delivered_order):
        with pytest.raises(ValidationError):
            _request_return(delivered_order, "someone-else")

    def test_second_return_is_rejected(self, delivered_order, buyer_id):
        _request_return(delivered_order, buyer_id)
        with pytest.raises(ValidationError):
            _request_return(delivered_order, buyer_id)

    def test_undelivered_order_cannot_be_returned(self, buyer_id, add_to_cart, checkout):
        add_to_cart(buyer_id, "prod-bag", "seller-a")
        order_id = checkout(buyer_id)["order_id"]
        with pytest.raises(InvalidTransition):
            _request_return(order_id, buyer_id)

    def test_approved_return_refunds_seller(self, delivered_order, buyer_id):
        _request_return(delivered_order, buyer_id)
        projection = next(so for so in projections_for_order(delivered_order) if str(so.seller_id) == "seller-a")

        result = current_domain.process(
            ResolveReturn(seller_order_id=str(projection.id), approved=True, resolved_by="admin-1"),
            asynchronous=False,
        )

        assert result["return_status"] == "approved"
        assert result["payment_status"] == "refunded"


class TestReviews:
    def test_reviewing_every_item_completes_the_order(self, delivered_order, buyer_id):
        order = current_domain.repository_for(Order).get(delivered_order)
        first, second = (str(i.id) for i in order.items)

        receipt = _review(delivered_order, first, buyer_id)
        assert receipt["order_reviewed"] is False
        assert receipt["status"] == "delivered"

        receipt = _review(delivered_order, second, buyer_id, rating=4)
        assert receipt["order_reviewed"] is True
        assert receipt["status"] == "reviewed"

        order = current_domain.repository_for(Order).get(delivered_order)
        assert sorted(r.rating for r in order.reviews) == [4, 5]

    def test_second_review_of_an_item_is_rejected(self, delivered_order, buyer_id):
        order = current_domain.repository_for(Order).get(delivered_order)
        item_id = str(order.items[0].id)

        _review(delivered_order, item_id, buyer_id, rating=5)
        with pytest.raises(AlreadyReviewed):
            _review(delivered_order, item_id, buyer_id, rating=1)

        reviews = current_domain.repository_for(ItemReview)._dao.query.filter(order_item_id=item_id).all().items
        assert [r.rating for r in reviews] == [5]

    def test_undelivered_order_cannot_be_reviewed(self, buyer_id, add_to_cart, checkout):
        add_to_cart(buyer_id, "prod-bag", "seller-a")
        order_id = checkout(buyer_id)["order_id"]
        item_id = str(current_domain.repository_for(Order).get(order_id).items[0].id)

        with pytest.raises(ValidationError):
            _review(order_id, item_id, buyer_id)

    def test_reviews_are_mirrored_to_the_backend(self, delivered_order, buyer_id, backend):
        order = current_domain.repository_for(Order).get(delivered_order)
        _review(delivered_order, str(order.items[0].id), buyer_id)

        assert len(backend.reviews[delivered_order]) == 1
