"""Client for customers, payment methods and setup intents."""

import logging
from typing import Any, Dict, Iterator

import stripe

from .base import BaseClient, to_plain


logger = logging.getLogger(__name__)


class CustomerClient(BaseClient):
    """Customer operations, optionally on a connected account."""

    def create_customer(self, params: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug("Creating customer on %s", self.stripe_account or "platform")
        return to_plain(stripe.Customer.create(**params, **self._options()))

    def retrieve_customer(self, customer_id: str) -> Dict[str, Any]:
        return to_plain(stripe.Customer.retrieve(customer_id, **self._options()))

    def delete_customer(self, customer_id: str) -> Dict[str, Any]:
        logger.debug("Deleting customer %s", customer_id)
        return to_plain(stripe.Customer.delete(customer_id, **self._options()))

    def iter_customers(self, page_size: int = 100) -> Iterator[Dict[str, Any]]:
        """Every customer on the account, across all pages."""
        return self._iterate(stripe.Customer.list(limit=page_size, **self._options()))

    def search_customers(self, query: str, page_size: int = 100) -> Iterator[Dict[str, Any]]:
        """Every customer matching a search query, across all pages."""
        logger.debug("Searching customers: %s", query)
        return self._iterate(stripe.Customer.search(query=query, limit=page_size, **self._options()))

    def create_payment_method(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return to_plain(stripe.PaymentMethod.create(**params, **self._options()))

    def create_setup_intent(self, customer_id: str, payment_method_id: str) -> Dict[str, Any]:
        """Confirmed off-session setup intent saving a card for later use."""
        intent = stripe.SetupIntent.create(
            customer=customer_id,
            payment_method=payment_method_id,
            usage="off_session",
            confirm=True,
            automatic_payment_methods={"enabled": True, "allow_redirects": "never"},
            **self._options(),
        )
        return to_plain(intent)
