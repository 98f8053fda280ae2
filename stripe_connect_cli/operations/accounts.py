"""Connect account listing, search and capabilities."""

from typing import Any, Dict, List, Optional

import stripe

from ..clients import ConnectClient, wrap_stripe_error
from ..validators import account_matches


LIST_LIMIT = 50


class AccountOperationError(Exception):
    """Invalid input for an account operation."""
    pass


def require_account(account: Optional[str]) -> str:
    if not account:
        raise AccountOperationError("Connected account ID is required. Use --account option.")
    return account


def list_accounts(client: ConnectClient, limit: int = LIST_LIMIT) -> List[Dict[str, Any]]:
    """First page of Connect accounts."""
    try:
        return client.list_accounts(limit=limit)
    except stripe.StripeError as e:
        raise wrap_stripe_error(e, "fetch accounts") from e


def search_accounts(client: ConnectClient, search_term: str) -> List[Dict[str, Any]]:
    """Every account whose searchable fields match the term."""
    if not search_term or not search_term.strip():
        raise AccountOperationError("A search term is required.")
    try:
        return [account for account in client.iter_accounts() if account_matches(account, search_term.strip())]
    except stripe.StripeError as e:
        raise wrap_stripe_error(e, "search accounts") from e


def request_capability(client: ConnectClient, account: Optional[str], capability: Optional[str]) -> Dict[str, Any]:
    account = require_account(account)
    if not capability:
        raise AccountOperationError("Capability ID is required. Use --capability option (e.g., card_payments).")
    try:
        return client.request_capability(account, capability)
    except stripe.StripeError as e:
        raise wrap_stripe_error(e, "request capability") from e


def list_capabilities(client: ConnectClient, account: Optional[str]) -> List[Dict[str, Any]]:
    account = require_account(account)
    try:
        return client.list_capabilities(account)
    except stripe.StripeError as e:
        raise wrap_stripe_error(e, "list capabilities") from e
