"""
Tests for static configuration and key-type requirements.
"""
from pathlib import Path

import pytest

from stripe_connect_cli.config import (
    ConfigError,
    DeletionStats,
    ImportResult,
    ImportStats,
    StaticConfig,
    is_test_key,
    load_static_config,
    validate_key_for_command,
)


@pytest.mark.unit
class TestStaticConfig:
    """config.yml lookups."""

    def test_required_key_type_defaults_to_restricted(self, static_config: StaticConfig) -> None:
        assert static_config.required_key_type("account.import.card") == "secret"
        assert static_config.required_key_type("account.list") == "restricted"

    def test_platform_account_inherits_from_base_name(self, static_config: StaticConfig) -> None:
        assert static_config.platform_account("vet") == "acct_vet_platform"
        assert static_config.platform_account("vet-uat") == "acct_vet_platform"
        assert static_config.platform_account("cat-uat") is None
        assert static_config.platform_account(None) is None

    def test_connected_account_depends_on_mode(self, static_config: StaticConfig) -> None:
        assert static_config.connected_account_for("vet", "prod") == "acct_vet_prod_connected"
        assert static_config.connected_account_for("vet", "test") is None
        assert static_config.connected_account_for("vet-uat", "test") == "acct_vet_uat_connected"
        assert static_config.connected_account_for("vet-uat", "prod") is None

    def test_legacy_connected_account_fields(self) -> None:
        config = StaticConfig.model_validate({
            "platform": {
                "old": {
                    "testing": {"connected_account": "acct_testing"},
                    "prod_connected_account": "acct_prod",
                },
            },
        })
        assert config.test_connected_account("old") == "acct_testing"
        assert config.prod_connected_account("old") == "acct_prod"

    def test_global_section(self) -> None:
        config = StaticConfig.model_validate({"global": {"default_platform": "vet", "test_platform": "vet-uat"}})
        assert config.default_platform() == "vet"
        assert config.test_platform() == "vet-uat"


@pytest.mark.unit
class TestLoadStaticConfig:
    """Loading config.yml from disk."""

    def test_missing_file_gives_empty_config(self, tmp_path: Path) -> None:
        config = load_static_config(tmp_path / "missing.yml")
        assert config.commands == {}
        assert config.available_platforms() == []

    def test_invalid_yaml_gives_empty_config(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("commands: [unclosed", encoding="utf-8")
        assert load_static_config(path).commands == {}

    def test_loads_commands_and_platforms(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text(
            "global:\n  default_platform: vet\n"
            "commands:\n  account.import.card:\n    key: secret\n"
            "platform:\n  vet:\n    account: acct_1\n",
            encoding="utf-8",
        )
        config = load_static_config(path)
        assert config.default_platform() == "vet"
        assert config.required_key_type("account.import.card") == "secret"
        assert config.available_platforms() == ["vet"]


@pytest.mark.unit
class TestKeyRequirements:
    """Key type checks against a command's requirement."""

    def test_secret_key_accepted_for_secret_command(self, static_config: StaticConfig) -> None:
        assert validate_key_for_command("sk_test_1", "account.import.card", static_config) == "sk_test_1"

    def test_restricted_key_rejected_for_secret_command(self, static_config: StaticConfig) -> None:
        with pytest.raises(ConfigError, match="requires a secret key"):
            validate_key_for_command("rk_test_1", "account.import.card", static_config)

    def test_secret_key_rejected_for_restricted_command(self, static_config: StaticConfig) -> None:
        with pytest.raises(ConfigError, match="requires a restricted key"):
            validate_key_for_command("sk_test_1", "account.list", static_config)

    def test_key_requirement_description(self, static_config: StaticConfig) -> None:
        assert static_config.key_requirement_description("account.import.card") == "Requires secret key (sk_*)"

    @pytest.mark.parametrize("key, expected", [
        ("sk_test_1", True),
        ("rk_test_1", True),
        ("sk_live_1", False),
        ("rk_live_1", False),
        (None, False),
    ])
    def test_is_test_key(self, key, expected: bool) -> None:
        assert is_test_key(key) is expected


@pytest.mark.unit
class TestStats:
    """Import and deletion counters."""

    def test_import_stats_count_by_status(self) -> None:
        stats = ImportStats()
        for status in ("success", "success", "failed", "invalid", "valid"):
            stats.add_result(ImportResult(row=2, status=status))
        assert stats.imported == 2
        assert stats.failed == 1

    def test_deletion_summary_includes_errors_only_when_present(self) -> None:
        stats = DeletionStats(total=2, deleted=1)
        assert stats.to_summary() == {"deleted": 1, "failed": 0, "total": 2}

        stats.add_failure("cus_2", "No such customer")
        assert stats.to_summary()["errors"] == [{"id": "cus_2", "error": "No such customer"}]
        assert stats.failed == 1
