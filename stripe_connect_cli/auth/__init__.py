"""Key and account resolution for Stripe commands."""

from .base import AuthError, CredentialOptions, detect_environment, require_api_key
from .resolver import CredentialResolver, ResolvedAccounts

__all__ = [
    "AuthError",
    "CredentialOptions",
    "CredentialResolver",
    "ResolvedAccounts",
    "detect_environment",
    "require_api_key",
]
