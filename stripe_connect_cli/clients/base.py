"""Base Stripe client and error translation."""

import json
import logging
from typing import Any, Dict, Iterator, Optional

import stripe


logger = logging.getLogger(__name__)


class APIError(Exception):
    """User-facing error raised for failed Stripe calls."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


def stripe_error_message(error: Exception) -> str:
    """Best human-readable message of a Stripe error."""
    if isinstance(error, stripe.StripeError):
        return error.user_message or str(error)
    return str(error)


def wrap_stripe_error(
    error: Exception,
    action: str,
    code_messages: Optional[Dict[str, str]] = None,
) -> APIError:
    """Translate a Stripe SDK error into an APIError with a user-facing message."""
    code = getattr(error, "code", None)

    if isinstance(error, stripe.AuthenticationError):
        return APIError("Invalid Stripe API key. Please check your API key.", code)
    if isinstance(error, stripe.PermissionError):
        return APIError(
            "Insufficient permissions. Make sure your API key has the required permissions.", code
        )
    if code_messages and code in code_messages:
        return APIError(code_messages[code], code)
    if isinstance(error, stripe.APIError):
        return APIError(f"Stripe API error: {stripe_error_message(error)}", code)
    return APIError(f"Failed to {action}: {stripe_error_message(error)}", code)


def to_plain(obj: Any) -> Any:
    """Convert a Stripe object to plain JSON-compatible data."""
    if isinstance(obj, stripe.StripeObject):
        return json.loads(str(obj))
    return obj


class BaseClient:
    """Holds the per-request options every Stripe call is made with."""

    def __init__(self, api_key: str, api_version: str, stripe_account: Optional[str] = None):
        self.api_key = api_key
        self.api_version = api_version
        self.stripe_account = stripe_account

    def _options(self, stripe_account: Optional[str] = None, api_version: Optional[str] = None) -> Dict[str, Any]:
        """Request options: key, API version and target account."""
        options: Dict[str, Any] = {
            "api_key": self.api_key,
            "stripe_version": api_version or self.api_version,
        }
        account = stripe_account or self.stripe_account
        if account:
            options["stripe_account"] = account
        return options

    def _iterate(self, page: Any) -> Iterator[Dict[str, Any]]:
        """Walk every page of a list or search result."""
        for item in page.auto_paging_iter():
            yield to_plain(item)

    def _raw(self, method: str, path: str, api_version: Optional[str] = None, **params: Any) -> Dict[str, Any]:
        """Call an endpoint the SDK has no resource class for.

        Raw requests are only available on StripeClient; the key is bound to
        the client and the remaining request options travel with the params.
        """
        logger.debug("Stripe %s %s", method.upper(), path)
        options = self._options(api_version=api_version)
        client = stripe.StripeClient(options.pop("api_key"), max_network_retries=stripe.max_network_retries)
        response = client.raw_request(method, path, **options, **params)
        return json.loads(response.body)
