"""Storefront HTTP API package."""

from storefront.api.routes import admin_router, cart_router, checkout_router, payments_router

__all__ = ["admin_router", "cart_router", "checkout_router", "payments_router"]
