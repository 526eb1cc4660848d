"""Read-side helpers over orders.

Local state is authoritative for what this process has seen; the backend of
record is consulted for orders placed elsewhere. A failing backend read
yields nothing rather than an error.
"""

from dataclasses import asdict

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.backend import call_backend
from marketplace.order.order import Order
from marketplace.order.serialization import order_to_dict
from marketplace.seller_order.queries import orders_for_seller


def _remote(operation, *args) -> list[dict]:
    result = call_backend(operation, *args)
    if not result.synced or not result.value:
        return []
    value = result.value
    return [asdict(v) for v in value] if isinstance(value, list) else [asdict(value)]


def fetch_buyer_orders(buyer_id) -> list[dict]:
    """The buyer's orders, newest first."""
    repo = current_domain.repository_for(Order)
    local = sorted(
        repo._dao.query.filter(buyer_id=str(buyer_id)).all().items,
        key=lambda o: o.created_at,
        reverse=True,
    )
    orders = [order_to_dict(o) for o in local]

    seen = {o["id"] for o in orders}
    orders.extend(o for o in _remote("fetch_buyer_orders", str(buyer_id)) if o["order_id"] not in seen)
    return orders


def fetch_seller_orders(seller_id) -> list[dict]:
    """The seller's projections, newest first."""
    return [
        {
            "seller_order_id": str(so.id),
            "order_id": str(so.order_id),
            "order_number": so.order_number,
            "buyer_id": str(so.buyer_id),
            "buyer_name": so.buyer_name,
            "status": so.status,
            "total": so.total,
            "payment_type": so.payment_type,
            "payment_status": so.payment_status,
            "return_status": so.return_status,
            "refund_amount": so.refund_amount,
            "items": so.items_snapshot(),
            "created_at": so.created_at.isoformat() if so.created_at else None,
        }
        for so in orders_for_seller(seller_id)
    ]


def find_order(order_id_or_number) -> Order | None:
    repo = current_domain.repository_for(Order)
    try:
        return repo.get(str(order_id_or_number))
    except ObjectNotFoundError:
        matches = repo._dao.query.filter(order_number=str(order_id_or_number)).all().items
        return matches[0] if matches else None


def fetch_order_detail(order_id_or_number, buyer_id=None) -> dict | None:
    """One order by id or order number, optionally scoped to a buyer."""
    order = find_order(order_id_or_number)
    if order is not None:
        if buyer_id is not None and str(order.buyer_id) != str(buyer_id):
            return None
        return order_to_dict(order)

    remote = _remote("fetch_order_detail", str(order_id_or_number), buyer_id)
    return remote[0] if remote else None
