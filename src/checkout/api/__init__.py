"""Checkout domain API package."""

from checkout.api.routes import router

__all__ = ["router"]
