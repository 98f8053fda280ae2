"""Configuration models and settings for the Stripe Connect CLI."""

import logging
from pathlib import Path
from typing import Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings


logger = logging.getLogger(__name__)

KeyType = Literal["secret", "restricted"]
Environment = Literal["test", "prod"]

DEFAULT_KEY_TYPE: KeyType = "restricted"


class ConfigError(Exception):
    """Configuration-related error."""
    pass


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables and .env."""

    secret_key: Optional[str] = Field(default=None, description="Fallback Stripe API key")
    config_file: Path = Field(default=Path("config.yml"), description="Static command/platform config")
    profile_file: Path = Field(default=Path(".profile"), description="Credential profiles file")
    kyc_file: Path = Field(default=Path("kyc.yml"), description="KYC data for test accounts")
    api_version: str = "2023-10-16"
    network_costs_api_version: str = "2025-07-30.preview; network_costs_private_preview=v1"
    max_network_retries: int = 2

    model_config = {
        "env_prefix": "STRIPE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


class CommandRequirement(BaseModel):
    """Key requirement for one command path."""

    key: KeyType = DEFAULT_KEY_TYPE


class TestingConfig(BaseModel):
    """Legacy `testing:` block of a platform."""

    connected_account: Optional[str] = None


class PlatformConfig(BaseModel):
    """A named platform: its account and connected accounts."""

    account: Optional[str] = None
    connected_account: Optional[str] = None
    mode: Optional[str] = None
    test_connected_account: Optional[str] = None
    prod_connected_account: Optional[str] = None
    testing: Optional[TestingConfig] = None


class GlobalConfig(BaseModel):
    """Global defaults."""

    default_platform: Optional[str] = None
    test_platform: Optional[str] = None


class StaticConfig(BaseModel):
    """Contents of config.yml."""

    commands: Dict[str, CommandRequirement] = Field(default_factory=dict)
    platform: Dict[str, PlatformConfig] = Field(default_factory=dict)
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")

    model_config = {"populate_by_name": True}

    def required_key_type(self, command_path: str) -> KeyType:
        """Key type a command needs; restricted unless configured otherwise."""
        requirement = self.commands.get(command_path)
        return requirement.key if requirement else DEFAULT_KEY_TYPE

    def key_requirement_description(self, command_path: str) -> str:
        """Human-readable description of a command's key requirement."""
        key_type = self.required_key_type(command_path)
        if key_type == "secret":
            return "Requires secret key (sk_*)"
        if key_type == "restricted":
            return "Requires restricted key (rk_*)"
        return "Key type not specified"

    def get_platform(self, name: Optional[str]) -> Optional[PlatformConfig]:
        if not name:
            return None
        return self.platform.get(name)

    def platform_account(self, name: Optional[str]) -> Optional[str]:
        """Account ID for a platform.

        A platform without an account inherits from its base platform,
        named by the part before the first dash (vet-uat -> vet).
        """
        platform = self.get_platform(name)
        if platform and platform.account:
            return platform.account
        if name and "-" in name:
            return self.platform_account(name.split("-", 1)[0])
        return None

    def test_connected_account(self, name: Optional[str]) -> Optional[str]:
        """Connected account used in the test environment."""
        platform = self.get_platform(name)
        if not platform:
            return None
        if platform.mode == "test" and platform.connected_account:
            return platform.connected_account
        if platform.test_connected_account:
            return platform.test_connected_account
        if platform.testing and platform.testing.connected_account:
            return platform.testing.connected_account
        return None

    def prod_connected_account(self, name: Optional[str]) -> Optional[str]:
        """Connected account used in production."""
        platform = self.get_platform(name)
        if not platform:
            return None
        if platform.mode != "test" and platform.connected_account:
            return platform.connected_account
        return platform.prod_connected_account

    def connected_account_for(self, name: Optional[str], environment: str = "test") -> Optional[str]:
        if environment == "prod":
            return self.prod_connected_account(name)
        return self.test_connected_account(name)

    def available_platforms(self) -> List[str]:
        return list(self.platform)

    def default_platform(self) -> Optional[str]:
        return self.global_.default_platform

    def test_platform(self) -> Optional[str]:
        return self.global_.test_platform


def load_static_config(path: Path) -> StaticConfig:
    """Load config.yml; a missing or unreadable file yields an empty config."""
    if not path.exists():
        return StaticConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return StaticConfig.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        logger.warning("Could not load command requirements config %s: %s", path, e)
        return StaticConfig()


def load_settings() -> Settings:
    """Load settings from the environment (and .env)."""
    from dotenv import load_dotenv
    load_dotenv()
    return Settings()


def is_secret_key(key: str) -> bool:
    return key.startswith("sk_")


def is_restricted_key(key: str) -> bool:
    return key.startswith("rk_")


def is_test_key(key: Optional[str]) -> bool:
    """True for Stripe test-mode keys (sk_test_* or rk_test_*)."""
    return bool(key) and (key.startswith("sk_test_") or key.startswith("rk_test_"))


def validate_key_for_command(key: str, command_path: str, static_config: StaticConfig) -> str:
    """Check that a key is of the type the command requires."""
    required = static_config.required_key_type(command_path)

    if required == "secret" and not is_secret_key(key):
        raise ConfigError(
            f"Command '{command_path}' requires a secret key (sk_*), but a restricted key (rk_*) was provided. "
            f"Please use a secret key for this command."
        )
    if required == "restricted" and not is_restricted_key(key):
        raise ConfigError(
            f"Command '{command_path}' requires a restricted key (rk_*), but a secret key (sk_*) was provided. "
            f"Please use a restricted key for this command."
        )
    return key


class ImportResult(BaseModel):
    """Outcome of importing one CSV row."""

    row: int
    card_last_4: str = ""
    exp: str = ""
    first: str = ""
    last: str = ""
    zip: str = ""
    token: str = ""
    platform_account: str = ""
    connected_account: str = ""
    stripe_payment_method_id: str = ""
    stripe_customer_id: str = ""
    stripe_setup_intent_id: str = ""
    stripe_setup_intent_payment_method_id: str = ""
    stripe_card_brand: str = ""
    stripe_card_last4: str = ""
    stripe_card_exp_month: str = ""
    stripe_card_exp_year: str = ""
    status: Literal["success", "failed", "valid", "invalid"]
    error: str = ""


class ImportStats(BaseModel):
    """Statistics for a card import run."""

    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0
    imported: int = 0
    failed: int = 0

    def add_result(self, result: ImportResult) -> None:
        """Count an import result."""
        if result.status == "success":
            self.imported += 1
        elif result.status == "failed":
            self.failed += 1


class DeletionStats(BaseModel):
    """Statistics for a customer deletion run."""

    total: int = 0
    deleted: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[Dict[str, str]] = Field(default_factory=list)

    def add_failure(self, customer_id: str, error: str) -> None:
        self.failed += 1
        self.errors.append({"id": customer_id, "error": error})

    def to_summary(self) -> Dict:
        summary = {"deleted": self.deleted, "failed": self.failed, "total": self.total}
        if self.errors:
            summary["errors"] = self.errors
        return summary
