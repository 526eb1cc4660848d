"""Lookups over seller projections."""

from protean.utils.globals import current_domain

from marketplace.seller_order.seller_order import SellerOrder


def projections_for_order(order_id) -> list[SellerOrder]:
    repo = current_domain.repository_for(SellerOrder)
    return repo._dao.query.filter(order_id=str(order_id)).all().items


def orders_for_seller(seller_id) -> list[SellerOrder]:
    repo = current_domain.repository_for(SellerOrder)
    results = repo._dao.query.filter(seller_id=str(seller_id)).all().items
    return sorted(results, key=lambda so: so.created_at, reverse=True)
