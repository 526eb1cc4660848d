import json
from uuid import uuid4

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def backend():
    """A fresh, reachable in-memory backend of record for every test."""
    from marketplace.backend import reset_backend, set_backend
    from marketplace.backend.in_memory import InMemoryBackend

    backend = InMemoryBackend()
    set_backend(backend)
    yield backend
    reset_backend()


@pytest.fixture(autouse=True)
def live_feed():
    from marketplace.notification.live_feed import get_live_feed, reset_live_feed

    reset_live_feed()
    yield get_live_feed()
    reset_live_feed()


@pytest.fixture()
def address():
    return {
        "full_name": "Maria Santos",
        "street": "12 Mabini St",
        "city": "Quezon City",
        "province": "Metro Manila",
        "postal_code": "1100",
        "phone": "+63 917 555 0101",
    }


@pytest.fixture()
def buyer_id():
    return f"buyer-{uuid4().hex[:8]}"


@pytest.fixture()
def register_stock():
    """Put a product on the shelf: ``register_stock(product_id, seller_id, quantity)``."""
    from marketplace.inventory.management import RegisterStock

    def _register(product_id, seller_id, quantity, name=None):
        return current_domain.process(
            RegisterStock(
                product_id=product_id,
                product_name=name or f"Product {product_id}",
                seller_id=seller_id,
                initial_quantity=quantity,
            ),
            asynchronous=False,
        )

    return _register


@pytest.fixture()
def add_to_cart():
    from marketplace.cart.items import AddToCart

    def _add(buyer_id, product_id, seller_id, quantity=1, unit_price=100.0, name=None, variant=None):
        return current_domain.process(
            AddToCart(
                buyer_id=buyer_id,
                product_id=product_id,
                name=name or f"Product {product_id}",
                unit_price=unit_price,
                quantity=quantity,
                seller_id=seller_id,
                seller_name=f"Shop {seller_id}",
                variant=variant,
            ),
            asynchronous=False,
        )

    return _add


@pytest.fixture()
def checkout(address):
    """Check the buyer's cart out: ``checkout(buyer_id, payment_type="card")`` → receipt."""
    from marketplace.cart.checkout import Checkout

    def _checkout(buyer_id, payment_type="card"):
        return current_domain.process(
            Checkout(
                buyer_id=buyer_id,
                buyer_name="Maria Santos",
                shipping_address=json.dumps(address),
                payment_method=json.dumps({"type": payment_type, "masked_details": "**** 4242"}),
            ),
            asynchronous=False,
        )

    return _checkout


@pytest.fixture()
def transition():
    from marketplace.order.transition import TransitionOrder

    def _transition(order_id, target_status, actor_role="system", note=None, actor_id="ops"):
        return current_domain.process(
            TransitionOrder(
                order_id=order_id,
                target_status=target_status,
                actor_id=actor_id,
                actor_role=actor_role,
                note=note,
            ),
            asynchronous=False,
        )

    return _transition


@pytest.fixture()
def deliver(transition):
    def _deliver(order_id):
        for status in ("confirmed", "shipped", "delivered"):
            transition(order_id, status)

    return _deliver
