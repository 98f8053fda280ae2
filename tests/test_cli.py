"""
Command-line tests through typer's CliRunner.

Results must be the only thing on stdout; messages go to stderr.
"""
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner

from stripe_connect_cli.cli import app, handle_errors


runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command from an empty directory with no Stripe settings."""
    monkeypatch.chdir(tmp_path)
    for name in ("STRIPE_SECRET_KEY", "STRIPE_PROFILE_FILE", "STRIPE_CONFIG_FILE", "STRIPE_KYC_FILE"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def write_cards(tmp_path: Path) -> Path:
    path = tmp_path / "cards.csv"
    path.write_text(
        "card,exp,first,last,zip\n"
        "4242424242424242,12/99,Jane,Doe,94107\n"
        "4242424242424241,12/99,John,Doe,94107\n",
        encoding="utf-8",
    )
    return path


@pytest.mark.cli
class TestAccountCommands:
    """account list / search."""

    def test_missing_key_exits_1(self) -> None:
        result = runner.invoke(app, ["account", "list"])
        assert result.exit_code == 1
        assert "Stripe secret key is required" in result.stderr
        assert result.stdout == ""

    def test_invalid_key_format_exits_1(self) -> None:
        result = runner.invoke(app, ["account", "list", "--key", "pk_test_1"])
        assert result.exit_code == 1
        assert "Invalid Stripe API key format" in result.stderr

    def test_list_json(self) -> None:
        client = MagicMock()
        client.list_accounts.return_value = [{"id": "acct_1", "email": "a@example.com"}]

        with patch("stripe_connect_cli.cli.ConnectClient", return_value=client) as client_class:
            result = runner.invoke(app, ["account", "list", "-k", "sk_test_1", "--format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == [{"id": "acct_1", "email": "a@example.com"}]
        assert client_class.call_args.args[0] == "sk_test_1"
        client.list_accounts.assert_called_once_with(limit=50)

    def test_search_json(self) -> None:
        client = MagicMock()
        client.iter_accounts.return_value = iter([
            {"id": "acct_1", "email": "owner@happypaws.example"},
            {"id": "acct_2", "email": "other@example.com"},
        ])

        with patch("stripe_connect_cli.cli.ConnectClient", return_value=client):
            result = runner.invoke(app, ["account", "search", "happypaws", "-k", "sk_test_1", "-f", "json"])

        assert result.exit_code == 0
        assert [a["id"] for a in json.loads(result.stdout)] == ["acct_1"]

    def test_key_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_env")
        client = MagicMock()
        client.list_accounts.return_value = []

        with patch("stripe_connect_cli.cli.ConnectClient", return_value=client) as client_class:
            result = runner.invoke(app, ["account", "list"])

        assert result.exit_code == 0
        assert client_class.call_args.args[0] == "sk_test_env"
        assert "No Connect accounts found." in result.stderr


@pytest.mark.cli
class TestImportCard:
    """account import card."""

    def test_dry_run_json(self, tmp_path: Path) -> None:
        path = write_cards(tmp_path)
        result = runner.invoke(app, [
            "account", "import", "card", "--file", str(path), "--account", "acct_platform",
            "--dry-run", "--format", "json",
        ])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["summary"]["dry_run"] is True
        assert data["summary"]["valid_cards"] == 1
        assert data["summary"]["invalid_cards"] == 1
        assert [r["status"] for r in data["results"]] == ["valid", "invalid"]
        assert "4242424242424242" not in result.stdout

    def test_dry_run_csv_on_stdout(self, tmp_path: Path) -> None:
        path = write_cards(tmp_path)
        result = runner.invoke(app, [
            "account", "import", "card", "--file", str(path), "-a", "acct_platform", "--dry-run",
        ])

        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0].startswith("row,card_last_4,exp")
        assert len(lines) == 3
        assert "DRY RUN SUMMARY" in result.stderr

    def test_output_file(self, tmp_path: Path) -> None:
        path = write_cards(tmp_path)
        output = tmp_path / "results.csv"
        result = runner.invoke(app, [
            "account", "import", "card", "--file", str(path), "-a", "acct_platform",
            "--dry-run", "--output", str(output),
        ])

        assert result.exit_code == 0
        assert result.stdout == ""
        assert len(output.read_text(encoding="utf-8").splitlines()) == 3

    def test_trailing_delimiters_dry_run(self, tmp_path: Path) -> None:
        path = tmp_path / "export.csv"
        path.write_text("card,exp\n4242424242424242,12/99,\n5555555555554444,01/99,\n", encoding="utf-8")
        result = runner.invoke(app, [
            "account", "import", "card", "--file", str(path), "-a", "acct_platform", "--dry-run", "--format", "json",
        ])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["summary"]["valid_cards"] == 2
        assert [r["status"] for r in data["results"]] == ["valid", "valid"]

    def test_platform_account_required(self, tmp_path: Path) -> None:
        path = write_cards(tmp_path)
        result = runner.invoke(app, ["account", "import", "card", "--file", str(path), "--dry-run"])
        assert result.exit_code == 1
        assert "Platform account ID is required" in result.stderr

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, [
            "account", "import", "card", "--file", str(tmp_path / "nope.csv"), "-a", "acct_platform", "--dry-run",
        ])
        assert result.exit_code == 1
        assert "CSV file not found" in result.stderr

    def test_reads_stdin(self, tmp_path: Path) -> None:
        result = runner.invoke(
            app,
            ["account", "import", "card", "-a", "acct_platform", "--dry-run", "--format", "json"],
            input="card,exp\n4242424242424242,12/99\n",
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout)["summary"]["total_cards"] == 1

    def test_live_import_requires_secret_key_type(self, tmp_path: Path) -> None:
        (tmp_path / "config.yml").write_text(
            "commands:\n  account.import.card:\n    key: secret\n", encoding="utf-8"
        )
        path = write_cards(tmp_path)
        result = runner.invoke(app, [
            "account", "import", "card", "--file", str(path), "-a", "acct_platform", "-k", "rk_test_1",
        ])
        assert result.exit_code == 1
        assert "requires a secret key" in result.stderr

    def test_live_import(self, tmp_path: Path) -> None:
        path = write_cards(tmp_path)
        client = MagicMock()
        client.create_customer.return_value = {"id": "cus_1"}
        client.create_payment_method.return_value = {"id": "pm_1", "card": {"brand": "visa", "last4": "4242"}}
        client.create_setup_intent.return_value = {"id": "seti_1", "payment_method": "pm_1"}

        with patch("stripe_connect_cli.cli.CustomerClient", return_value=client) as client_class:
            result = runner.invoke(app, [
                "account", "import", "card", "--file", str(path), "-a", "acct_platform",
                "-c", "acct_connected", "-k", "rk_test_1", "--format", "json",
            ])

        assert result.exit_code == 0
        assert client_class.call_args.kwargs["stripe_account"] == "acct_connected"
        data = json.loads(result.stdout)
        assert data["summary"]["successful_imports"] == 1
        assert [r["status"] for r in data["results"]] == ["success", "invalid"]


@pytest.mark.cli
class TestCustomerDelete:
    """account customer delete."""

    def test_requires_exactly_one_mode(self) -> None:
        result = runner.invoke(app, ["account", "customer", "delete", "-k", "rk_test_1"])
        assert result.exit_code == 1
        assert "Specify exactly one of" in result.stderr

    def test_delete_with_confirmation(self) -> None:
        client = MagicMock()
        client.retrieve_customer.return_value = {"id": "cus_1", "name": "Jane"}
        client.delete_customer.return_value = {"id": "cus_1", "deleted": True}

        with patch("stripe_connect_cli.cli.CustomerClient", return_value=client):
            result = runner.invoke(
                app,
                ["account", "customer", "delete", "cus_1", "-k", "rk_test_1", "--format", "json"],
                input="y\n",
            )

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"id": "cus_1", "deleted": True}
        client.delete_customer.assert_called_once_with("cus_1")

    def test_all_rejects_live_key(self) -> None:
        with patch("stripe_connect_cli.cli.CustomerClient", return_value=MagicMock()):
            result = runner.invoke(app, ["account", "customer", "delete", "--all", "-k", "rk_live_1"])
        assert result.exit_code == 1
        assert "only allowed with Stripe test keys" in result.stderr


@pytest.mark.cli
class TestProfileCommands:
    """profile list / validate."""

    def test_validate_missing_file(self) -> None:
        result = runner.invoke(app, ["profile", "validate"])
        assert result.exit_code == 1
        assert "Secrets file not found" in result.stderr

    def test_list_masks_keys(self, tmp_path: Path) -> None:
        (tmp_path / ".profile").write_text(
            "[global]\nprofile = vet\n\n[vet]\nkey = sk_test_abcdefgh1234\n", encoding="utf-8"
        )
        result = runner.invoke(app, ["profile", "list"])
        assert result.exit_code == 0
        assert "sk_t...1234" in result.stdout
        assert "sk_test_abcdefgh1234" not in result.stdout

    def test_list_shows_configured_platforms(self, tmp_path: Path) -> None:
        (tmp_path / ".profile").write_text("[vet]\nkey = sk_test_abcdefgh1234\n", encoding="utf-8")
        (tmp_path / "config.yml").write_text(
            "global:\n  test_platform: vet-test\nplatform:\n  vet:\n    account: acct_1\n  vet-test:\n    mode: test\n",
            encoding="utf-8",
        )
        result = runner.invoke(app, ["profile", "list"])
        assert result.exit_code == 0
        assert "Platforms in config.yml: vet, vet-test" in result.stdout
        assert "Test platform: vet-test" in result.stdout

    def test_profile_key_is_used(self, tmp_path: Path) -> None:
        (tmp_path / ".profile").write_text("[vet]\nkey = sk_test_from_profile\n", encoding="utf-8")
        client = MagicMock()
        client.list_accounts.return_value = []

        with patch("stripe_connect_cli.cli.ConnectClient", return_value=client) as client_class:
            result = runner.invoke(app, ["account", "list", "--platform", "vet"])

        assert result.exit_code == 0
        assert client_class.call_args.args[0] == "sk_test_from_profile"


@pytest.mark.cli
class TestErrorBoundary:
    """handle_errors turns failures into exit code 1 and lets exits through."""

    def test_exit_passes_through_unchanged(self) -> None:
        with pytest.raises(typer.Exit) as exc_info:
            with handle_errors():
                raise typer.Exit(3)
        assert exc_info.value.exit_code == 3

    def test_abort_passes_through(self) -> None:
        with pytest.raises(typer.Abort):
            with handle_errors():
                raise typer.Abort()

    def test_domain_error_exits_1(self) -> None:
        with pytest.raises(typer.Exit) as exc_info:
            with handle_errors():
                raise ValueError("bad input")
        assert exc_info.value.exit_code == 1

    def test_interrupt_exits_1(self) -> None:
        with pytest.raises(typer.Exit) as exc_info:
            with handle_errors():
                raise KeyboardInterrupt
        assert exc_info.value.exit_code == 1

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "stripe-connect-cli" in result.stdout
