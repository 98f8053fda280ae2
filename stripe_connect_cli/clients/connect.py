"""Client for Connect accounts, capabilities and network-cost pricing."""

import logging
from typing import Any, Dict, Iterator, List, Optional

import stripe

from .base import BaseClient, to_plain


logger = logging.getLogger(__name__)

NETWORK_COSTS_SCHEMES_PATH = "/v1/pricing_configs/network_costs/schemes"
NETWORK_COSTS_PATH = "/v1/pricing_configs/network_costs"


class ConnectClient(BaseClient):
    """Connect account operations on the platform account."""

    def __init__(
        self,
        api_key: str,
        api_version: str,
        stripe_account: Optional[str] = None,
        network_costs_api_version: Optional[str] = None,
    ):
        super().__init__(api_key, api_version, stripe_account)
        self.network_costs_api_version = network_costs_api_version

    def list_accounts(self, limit: int = 50) -> List[Dict[str, Any]]:
        """First page of connected accounts."""
        logger.debug("Listing up to %d accounts", limit)
        page = stripe.Account.list(limit=limit, **self._options())
        return [to_plain(account) for account in page.data]

    def iter_accounts(self, page_size: int = 100) -> Iterator[Dict[str, Any]]:
        """Every connected account, across all pages."""
        return self._iterate(stripe.Account.list(limit=page_size, **self._options()))

    def retrieve_account(self, account_id: str) -> Dict[str, Any]:
        return to_plain(stripe.Account.retrieve(account_id, **self._options()))

    def create_account(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return to_plain(stripe.Account.create(**params, **self._options()))

    def update_account(self, account_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return to_plain(stripe.Account.modify(account_id, **params, **self._options()))

    def create_account_link(self, account_id: str, refresh_url: str, return_url: str) -> Dict[str, Any]:
        """Onboarding link for an Express account."""
        link = stripe.AccountLink.create(
            account=account_id,
            type="account_onboarding",
            refresh_url=refresh_url,
            return_url=return_url,
            **self._options(),
        )
        return to_plain(link)

    def request_capability(self, account_id: str, capability: str) -> Dict[str, Any]:
        logger.debug("Requesting capability %s on %s", capability, account_id)
        result = stripe.Account.modify_capability(account_id, capability, requested=True, **self._options())
        return to_plain(result)

    def list_capabilities(self, account_id: str) -> List[Dict[str, Any]]:
        page = stripe.Account.list_capabilities(account_id, **self._options())
        return [to_plain(capability) for capability in page.data]

    def create_network_cost_scheme(self, enabled: bool, starts_at: Optional[int] = None) -> Dict[str, Any]:
        """Schedule a network-cost passthrough scheme on the connected account."""
        params: Dict[str, Any] = {"enabled": enabled}
        if starts_at:
            params["starts_at"] = starts_at
        return self._raw("post", NETWORK_COSTS_SCHEMES_PATH, api_version=self.network_costs_api_version, **params)

    def retrieve_network_costs(self) -> Dict[str, Any]:
        """Pricing config with its current and next schemes expanded."""
        return self._raw(
            "get",
            NETWORK_COSTS_PATH,
            api_version=self.network_costs_api_version,
            expand=["current_scheme", "next_scheme"],
        )

    def delete_network_cost_scheme(self, scheme_id: str) -> Dict[str, Any]:
        return self._raw(
            "delete",
            f"{NETWORK_COSTS_SCHEMES_PATH}/{scheme_id}",
            api_version=self.network_costs_api_version,
        )
