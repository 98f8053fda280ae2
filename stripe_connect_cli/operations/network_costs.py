"""Network cost passthrough schemes on connected accounts."""

from typing import Any, Dict, Optional

import stripe

from ..clients import ConnectClient, wrap_stripe_error
from .accounts import AccountOperationError


SCHEME_EXISTS_MESSAGE = (
    "A network cost passthrough scheme already exists for this account. Delete the existing scheme first."
)


def set_passthrough(client: ConnectClient, enabled: bool, starts_at: Optional[int] = None) -> Dict[str, Any]:
    """Create an enabling or disabling scheme, immediately or from starts_at."""
    action = "enable" if enabled else "disable"
    try:
        return client.create_network_cost_scheme(enabled, starts_at)
    except stripe.StripeError as e:
        raise wrap_stripe_error(
            e,
            f"{action} network cost passthrough",
            {"resource_already_exists": SCHEME_EXISTS_MESSAGE},
        ) from e


def passthrough_status(client: ConnectClient) -> Dict[str, Any]:
    try:
        return client.retrieve_network_costs()
    except stripe.StripeError as e:
        raise wrap_stripe_error(e, "get network cost passthrough status") from e


def delete_scheme(client: ConnectClient, scheme_id: Optional[str]) -> Dict[str, Any]:
    """Delete a scheduled scheme."""
    if not scheme_id:
        raise AccountOperationError("Scheme ID is required. Use --scheme-id option.")
    try:
        return client.delete_network_cost_scheme(scheme_id)
    except stripe.StripeError as e:
        raise wrap_stripe_error(
            e,
            "delete network cost passthrough scheme",
            {"resource_missing": "Scheme not found or already deleted."},
        ) from e
