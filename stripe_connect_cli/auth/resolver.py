"""Layered resolution of API keys and account IDs."""

import logging
from typing import Optional

from pydantic import BaseModel

from ..config import ConfigError, Settings, StaticConfig, validate_key_for_command
from ..profiles import ProfileError, ProfileManager
from .base import AuthError, CredentialOptions, detect_environment, require_api_key


logger = logging.getLogger(__name__)


class ResolvedAccounts(BaseModel):
    """Accounts a command acts on."""

    platform_account: Optional[str] = None
    connected_account: Optional[str] = None
    environment: str = "prod"

    @property
    def target_account(self) -> Optional[str]:
        """Account requests are sent to: connected if known, else platform."""
        return self.connected_account or self.platform_account


class CredentialResolver:
    """Resolves keys and accounts from flags, profiles, config and environment.

    Key precedence: --key > --platform > default platform > STRIPE_SECRET_KEY.
    """

    def __init__(self, settings: Settings, static_config: StaticConfig):
        self.settings = settings
        self.static_config = static_config

    def load_profiles(self) -> ProfileManager:
        return ProfileManager(self.settings.profile_file, self.static_config).load()

    def resolve_key(self, options: CredentialOptions, command_path: Optional[str] = None) -> Optional[str]:
        """Find the API key for a command without checking that one was found."""
        if options.key:
            logger.debug("Using API key from --key")
            if command_path:
                return validate_key_for_command(options.key, command_path, self.static_config)
            return options.key

        environment = detect_environment(options.environment, options.test)

        if options.platform:
            try:
                key = self._profile_key(self.load_profiles(), options.platform, environment, command_path)
            except (ProfileError, ConfigError) as e:
                raise AuthError(f"Profile error: {e}") from e
            logger.debug("Using API key from profile %s (%s)", options.platform, environment)
            return key

        try:
            key = self._profile_key(self.load_profiles(), None, environment, command_path)
        except (ProfileError, ConfigError) as e:
            logger.debug("Default profile unavailable, falling back to environment: %s", e)
            key = None

        if key:
            logger.debug("Using API key from default profile (%s)", environment)
            return key

        logger.debug("Using API key from STRIPE_SECRET_KEY")
        return self.settings.secret_key

    def api_key(self, options: CredentialOptions, command_path: Optional[str] = None) -> str:
        """Resolve the API key and make sure it is usable."""
        return require_api_key(self.resolve_key(options, command_path))

    def _profile_key(
        self,
        profiles: ProfileManager,
        name: Optional[str],
        environment: str,
        command_path: Optional[str],
    ) -> Optional[str]:
        if not command_path:
            return profiles.profile_key(name, environment)

        key_type = self.static_config.required_key_type(command_path)
        key = profiles.profile_key_by_type(name, key_type, environment)
        if not key and name:
            raise ProfileError(
                f"Profile '{name}' has no {key_type} key configured for {environment} environment. "
                f"Command '{command_path}': {self.static_config.key_requirement_description(command_path)}."
            )
        return key

    def resolve_accounts(self, options: CredentialOptions) -> ResolvedAccounts:
        """Platform and connected accounts from flags, then the named or default profile."""
        environment = detect_environment(options.environment, options.test)
        platform_account = options.account
        connected_account = options.connected_account

        if not platform_account or not connected_account:
            try:
                profiles = self.load_profiles()
                if not platform_account:
                    platform_account = profiles.profile_account(options.platform)
                if not connected_account:
                    connected_account = profiles.profile_connected_account(options.platform, environment)
            except ProfileError as e:
                logger.debug("No profile accounts available: %s", e)

        return ResolvedAccounts(
            platform_account=platform_account,
            connected_account=connected_account,
            environment=environment,
        )
