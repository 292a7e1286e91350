"""Checkout domain API package."""

from checkout.api.errors import register_checkout_error_handler
from checkout.api.routes import admin_router, coupon_router, order_router, payment_router

__all__ = [
    "order_router",
    "payment_router",
    "admin_router",
    "coupon_router",
    "register_checkout_error_handler",
]
