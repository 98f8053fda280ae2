"""Credential profiles read from the local .profile file."""

import configparser
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel

from .config import StaticConfig, is_restricted_key, is_secret_key


GLOBAL_SECTIONS = ("global", "default")


class ProfileError(Exception):
    """Profile file or lookup error."""
    pass


class Profile(BaseModel):
    """One platform's credentials and accounts."""

    name: str
    description: Optional[str] = None
    key: Optional[str] = None
    secret_key: Optional[str] = None
    restricted_key: Optional[str] = None
    test_secret_key: Optional[str] = None
    test_restricted_key: Optional[str] = None
    prod_secret_key: Optional[str] = None
    prod_restricted_key: Optional[str] = None
    account: Optional[str] = None
    connected_account: Optional[str] = None
    test_connected_account: Optional[str] = None
    prod_connected_account: Optional[str] = None

    def field(self, name: str) -> Optional[str]:
        return getattr(self, name, None) or None

    def key_by_type(self, key_type: str, environment: str = "prod") -> Optional[str]:
        """Key of the given type for an environment, or None."""
        key = self.field(f"{environment}_{key_type}_key")
        if not key and environment != "test":
            key = self.field(f"{key_type}_key")
        if key:
            return key

        if self.key:
            if key_type == "secret" and is_secret_key(self.key):
                return self.key
            if key_type == "restricted" and is_restricted_key(self.key):
                return self.key
        return None

    def any_key(self, environment: str = "prod") -> Optional[str]:
        """The legacy key, else the first typed key for the environment."""
        return self.key or self.key_by_type("secret", environment) or self.key_by_type("restricted", environment)

    def all_keys(self) -> List[str]:
        names = [
            "key", "secret_key", "restricted_key",
            "test_secret_key", "test_restricted_key",
            "prod_secret_key", "prod_restricted_key",
        ]
        return [value for value in (self.field(n) for n in names) if value]


def mask_key(key: Optional[str]) -> str:
    """Mask a key for display (show first 4 and last 4 chars)."""
    if not key:
        return "No key"
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


class ProfileManager:
    """Reads profiles from an INI-style file and resolves keys and accounts."""

    def __init__(self, profile_path: Path, static_config: Optional[StaticConfig] = None):
        self.profile_path = Path(profile_path)
        self.static_config = static_config or StaticConfig()
        self.profiles: Dict[str, Profile] = {}
        self.global_settings: Dict[str, str] = {}
        self.default_profile: Optional[str] = None

    def load(self) -> "ProfileManager":
        """Load and parse the profile file."""
        if not self.profile_path.exists():
            raise ProfileError(f"Secrets file not found: {self.profile_path}")

        content = self.profile_path.read_text(encoding="utf-8")
        self.parse(content)
        return self

    def parse(self, content: str) -> None:
        """Parse profile file content."""
        parser = configparser.ConfigParser(interpolation=None)
        try:
            parser.read_string(content, source=str(self.profile_path))
        except configparser.Error as e:
            raise ProfileError(f"Could not parse {self.profile_path}: {e}") from e

        self.profiles = {}
        self.global_settings = {}

        for section in parser.sections():
            values = {k: v.strip() for k, v in parser.items(section) if v.strip()}
            if section in GLOBAL_SECTIONS:
                self.global_settings.update(values)
                continue
            known = {k: v for k, v in values.items() if k in Profile.model_fields and k != "name"}
            self.profiles[section] = Profile(name=section, **known)

        self.default_profile = self.static_config.default_platform() or self.get_global_setting("profile")

        if self.default_profile and self.default_profile not in self.profiles:
            raise ProfileError(f"Default profile '{self.default_profile}' not found in profiles")

    def get_global_setting(self, name: str) -> Optional[str]:
        return self.global_settings.get(name)

    def get_profile(self, name: Optional[str] = None) -> Profile:
        """Look up a profile, falling back to the default profile."""
        name = name or self.default_profile
        if not name:
            raise ProfileError("No profile specified and no default profile configured")
        if name not in self.profiles:
            raise ProfileError(f"Profile '{name}' not found")
        return self.profiles[name]

    def profile_key(self, name: Optional[str] = None, environment: str = "prod") -> Optional[str]:
        """API key of a profile when no key type is required."""
        return self.get_profile(name).any_key(environment)

    def profile_key_by_type(self, name: Optional[str], key_type: str, environment: str = "prod") -> Optional[str]:
        """API key of the given type for a profile and environment."""
        return self.get_profile(name).key_by_type(key_type, environment)

    def profile_account(self, name: Optional[str] = None) -> Optional[str]:
        """Platform account for a profile."""
        profile = self.get_profile(name)
        return profile.account or self.static_config.platform_account(profile.name)

    def profile_connected_account(self, name: Optional[str] = None, environment: str = "prod") -> Optional[str]:
        """Connected account for a profile in the given environment."""
        profile = self.get_profile(name)
        account = profile.field(f"{environment}_connected_account")
        if not account and environment != "test":
            account = profile.connected_account
        return account or self.static_config.connected_account_for(profile.name, environment)

    def validate(self) -> None:
        """Validate all profiles, reporting every problem at once."""
        errors = []

        if not self.default_profile:
            errors.append("No default profile configured")

        for name, profile in self.profiles.items():
            keys = profile.all_keys()
            if not keys:
                errors.append(f"Profile '{name}' has no API key")
                continue
            for key in keys:
                if not is_secret_key(key) and not is_restricted_key(key):
                    errors.append(f"Profile '{name}' has invalid API key format")
                    break

        if errors:
            raise ProfileError("Profile validation failed:\n" + "\n".join(errors))
