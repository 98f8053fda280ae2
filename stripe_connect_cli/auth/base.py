"""Base credential types shared by key and account resolution."""

from typing import Optional

from pydantic import BaseModel

from ..config import Environment


class AuthError(Exception):
    """Credential resolution error."""
    pass


class CredentialOptions(BaseModel):
    """Credential-related flags common to every command."""

    key: Optional[str] = None
    platform: Optional[str] = None
    environment: Optional[Environment] = None
    test: bool = False
    account: Optional[str] = None
    connected_account: Optional[str] = None


def detect_environment(environment: Optional[str] = None, test: bool = False) -> str:
    """Pick the environment: explicit value, then the test flag, then prod."""
    if environment:
        return environment
    if test:
        return "test"
    return "prod"


def require_api_key(key: Optional[str]) -> str:
    """Ensure a usable Stripe key was resolved."""
    if not key:
        raise AuthError(
            "Stripe secret key is required. Provide it via --key option, "
            "--platform option, or STRIPE_SECRET_KEY environment variable."
        )
    if not key.startswith("sk_") and not key.startswith("rk_"):
        raise AuthError(
            'Invalid Stripe API key format. Keys should start with "sk_" (secret key) '
            'or "rk_" (restricted key).'
        )
    return key
