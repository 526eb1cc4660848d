"""Marketplace API package."""

from marketplace.api.routes import (
    cart_router,
    inventory_router,
    notification_router,
    order_router,
    seller_router,
)

__all__ = ["cart_router", "order_router", "seller_router", "inventory_router", "notification_router"]
