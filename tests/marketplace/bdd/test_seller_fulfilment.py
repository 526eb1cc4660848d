"""BDD tests for seller fulfilment of multi-seller orders."""

from marketplace.seller_order.fulfilment import TransitionSellerOrder
from marketplace.seller_order.queries import orders_for_seller
from protean import current_domain
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/seller_fulfilment.feature")


def _seller_order(placed, seller_id):
    return next(so for so in orders_for_seller(seller_id) if str(so.order_id) == placed["order_id"])


@when(parsers.cfparse('"{seller_id}" moves their order to "{status}"'))
def _(placed, seller_id, status):
    current_domain.process(
        TransitionSellerOrder(
            seller_order_id=str(_seller_order(placed, seller_id).id),
            seller_id=seller_id,
            target_status=status,
        ),
        asynchronous=False,
    )


@then(parsers.cfparse('"{seller_id}" has an order totalling {total:f}'))
def _(placed, seller_id, total):
    assert _seller_order(placed, seller_id).total == total


@then(parsers.cfparse('the "{seller_id}" order is "{status}"'))
def _(placed, seller_id, status):
    assert _seller_order(placed, seller_id).status == status
