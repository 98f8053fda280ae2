"""
Shared fixtures for the Stripe Connect CLI tests.

The Stripe API is never called: clients are MagicMocks and consoles
write to in-memory buffers.
"""
import io
from pathlib import Path

import pytest
from rich.console import Console

from stripe_connect_cli.config import Settings, StaticConfig
from stripe_connect_cli.reporting import Reporter


PROFILE_CONTENT = """\
# Test profiles
[global]
profile = vet

[vet]
description = Veterinary platform
prod_secret_key = sk_live_vet_prod_0001
test_secret_key = sk_test_vet_test_0001
restricted_key = rk_live_vet_prod_0001
account = acct_vet_platform
test_connected_account = acct_vet_test_connected

[legacy]
key = sk_test_legacy_0001

[restricted-only]
key = rk_test_restricted_0001
"""


@pytest.fixture
def out_buffer() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def err_buffer() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(out_buffer: io.StringIO, err_buffer: io.StringIO) -> Reporter:
    """Reporter whose stdout and stderr are captured separately."""
    return Reporter(
        Console(file=out_buffer, width=200, color_system=None),
        Console(file=err_buffer, width=200, color_system=None),
    )


@pytest.fixture
def profile_file(tmp_path: Path) -> Path:
    path = tmp_path / ".profile"
    path.write_text(PROFILE_CONTENT, encoding="utf-8")
    return path


@pytest.fixture
def static_config() -> StaticConfig:
    return StaticConfig.model_validate({
        "commands": {
            "account.import.card": {"key": "secret"},
            "account.customer.delete": {"key": "secret"},
        },
        "platform": {
            "vet": {"account": "acct_vet_platform", "connected_account": "acct_vet_prod_connected"},
            "vet-uat": {"mode": "test", "connected_account": "acct_vet_uat_connected"},
        },
    })


@pytest.fixture
def settings(tmp_path: Path, profile_file: Path) -> Settings:
    return Settings(
        _env_file=None,
        secret_key="sk_test_env_fallback_0001",
        config_file=tmp_path / "config.yml",
        profile_file=profile_file,
        kyc_file=tmp_path / "kyc.yml",
    )
