"""Stripe API clients."""

from .base import APIError, BaseClient, to_plain, wrap_stripe_error
from .connect import ConnectClient
from .customers import CustomerClient

__all__ = ["APIError", "BaseClient", "ConnectClient", "CustomerClient", "to_plain", "wrap_stripe_error"]
