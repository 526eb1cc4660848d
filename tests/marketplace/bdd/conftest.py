"""Shared BDD fixtures and step definitions for the order lifecycle."""

import json

import pytest
from marketplace.inventory.ledger import find_stock
from marketplace.order.cancellation import CancelOrder
from marketplace.order.order import Order
from marketplace.order.returns import RequestReturn
from marketplace.order.reviews import ReviewOrderItem
from marketplace.seller_order.queries import projections_for_order
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def error():
    """Container for the exception a When step caught."""
    return {"exc": None}


@pytest.fixture()
def placed():
    """The receipt of the buyer's last checkout."""
    return {}


@pytest.fixture()
def last_receipt():
    return {}


def _order(placed) -> Order:
    return current_domain.repository_for(Order).get(placed["order_id"])


def _projection(placed, seller_id):
    return next(so for so in projections_for_order(placed["order_id"]) if str(so.seller_id) == seller_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a buyer with {quantity:d} "{product_id}" from "{seller_id}" at {price:f} in the cart'))
def _(buyer_id, add_to_cart, quantity, product_id, seller_id, price):
    add_to_cart(buyer_id, product_id, seller_id, quantity=quantity, unit_price=price)


@given(parsers.cfparse('"{product_id}" has {quantity:d} units in stock'))
def _(register_stock, product_id, quantity):
    register_stock(product_id, "seller-a", quantity)


@given(parsers.cfparse('the buyer has checked out paying "{payment_type}"'))
def _(buyer_id, checkout, placed, payment_type):
    placed.update(checkout(buyer_id, payment_type=payment_type))


@given("the order has been delivered")
def _(placed, deliver):
    deliver(placed["order_id"])


@given("the backend is unreachable")
def _(backend):
    backend.configure(available=False)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the buyer checks out paying "{payment_type}"'))
def _(buyer_id, checkout, placed, last_receipt, payment_type):
    placed.update(checkout(buyer_id, payment_type=payment_type))
    last_receipt.update(placed)


@given(parsers.cfparse('the order moves to "{status}"'))
@when(parsers.cfparse('the order moves to "{status}"'))
def _(placed, transition, last_receipt, status):
    last_receipt.update(transition(placed["order_id"], status))


@when(parsers.cfparse('the buyer cancels the order because "{reason}"'))
def _(buyer_id, placed, error, reason):
    try:
        current_domain.process(
            CancelOrder(order_id=placed["order_id"], reason=reason, cancelled_by=buyer_id),
            asynchronous=False,
        )
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse('an admin cancels the order because "{reason}"'))
def _(placed, error, reason):
    try:
        current_domain.process(
            CancelOrder(order_id=placed["order_id"], reason=reason, cancelled_by="admin-1", actor_role="admin"),
            asynchronous=False,
        )
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the buyer requests a "{solution}" because "{reason}"'))
def _(buyer_id, placed, last_receipt, solution, reason):
    last_receipt.update(
        current_domain.process(
            RequestReturn(
                order_id=placed["order_id"],
                buyer_id=buyer_id,
                reason=reason,
                solution=solution,
                evidence=json.dumps(["photo-1.jpg"]),
            ),
            asynchronous=False,
        )
    )


@when(parsers.cfparse("the buyer reviews every item with {rating:d} stars"))
def _(buyer_id, placed, error, rating):
    try:
        for item in _order(placed).items:
            current_domain.process(
                ReviewOrderItem(order_id=placed["order_id"], item_id=str(item.id), buyer_id=buyer_id, rating=rating),
                asynchronous=False,
            )
    except ValidationError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is "{status}"'))
def _(placed, status):
    assert _order(placed).status == status


@then(parsers.cfparse("the order total is {total:f}"))
def _(placed, total):
    assert _order(placed).total == total


@then("the order is not paid")
def _(placed):
    assert _order(placed).is_paid is False


@then(parsers.cfparse('the seller payment for "{seller_id}" is "{payment_status}"'))
def _(placed, seller_id, payment_status):
    assert _projection(placed, seller_id).payment_status == payment_status


@then(parsers.cfparse('"{product_id}" has {quantity:d} units in stock'))
def _(product_id, quantity):
    assert find_stock(product_id).quantity == quantity


@then("the request is rejected")
def _(error):
    assert isinstance(error["exc"], ValidationError)
    error["exc"] = None


@then(parsers.cfparse("the refund amount is {amount:f}"))
def _(last_receipt, amount):
    assert last_receipt["refund_amount"] == amount


@then("the change is not synced")
def _(last_receipt):
    assert last_receipt["synced"] is False
    assert last_receipt["mode"] == "local_only"
