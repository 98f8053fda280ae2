"""Main CLI interface for the Stripe Connect tool."""

import io
import logging
import sys
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

import stripe
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .auth import CredentialOptions, CredentialResolver
from .clients import ConnectClient, CustomerClient
from .config import Settings, StaticConfig, load_settings, load_static_config
from .csv_io import CardCSVProcessor
from .operations import accounts as account_ops
from .operations import card_import, customer_cleanup, network_costs, sandbox_accounts
from .operations import CardImportError, CardImporter, CustomerDeleter, CustomerDeletionError
from .profiles import ProfileManager, mask_key
from .reporting import Reporter, format_iso


logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


class OutputFormat(str, Enum):
    table = "table"
    json = "json"


class ImportFormat(str, Enum):
    csv = "csv"
    json = "json"


class SourceFormat(str, Enum):
    default = "default"
    cardpointe = "cardpointe"


class EnvironmentChoice(str, Enum):
    test = "test"
    prod = "prod"


KEY_OPTION = typer.Option(None, "--key", "-k", help="Stripe API key (or set STRIPE_SECRET_KEY env var)")
PLATFORM_OPTION = typer.Option(None, "--platform", "-p", "--profile", help="Use platform profile from the .profile file")
ENV_OPTION = typer.Option(None, "--env", help="Environment used for profile lookups (test, prod)")
TEST_OPTION = typer.Option(False, "--test", help="Shorthand for --env test")
FORMAT_OPTION = typer.Option(OutputFormat.table, "--format", "-f", help="Output format (table, json)")
ACCOUNT_OPTION = typer.Option(None, "--account", "-a", help="Connected account ID")


app = typer.Typer(
    name="stripe-connect-cli",
    help="A CLI tool for making Stripe API calls",
    rich_markup_mode="rich",
    no_args_is_help=True,
)
account_app = typer.Typer(help="Manage Stripe Connect accounts", no_args_is_help=True)
settings_app = typer.Typer(help="Manage account settings", no_args_is_help=True)
network_costs_app = typer.Typer(help="Manage network cost passthrough settings", no_args_is_help=True)
capabilities_app = typer.Typer(help="Manage connected account capabilities", no_args_is_help=True)
import_app = typer.Typer(help="Import data into an account", no_args_is_help=True)
customer_app = typer.Typer(help="Manage customers", no_args_is_help=True)
profile_app = typer.Typer(help="Manage Stripe API key profiles", no_args_is_help=True)
test_app = typer.Typer(help="Test environment helpers", no_args_is_help=True)
test_account_app = typer.Typer(help="Test connected accounts", no_args_is_help=True)

app.add_typer(account_app, name="account")
app.add_typer(profile_app, name="profile")
app.add_typer(test_app, name="test")
account_app.add_typer(settings_app, name="settings")
account_app.add_typer(capabilities_app, name="capabilities")
account_app.add_typer(import_app, name="import")
account_app.add_typer(customer_app, name="customer")
settings_app.add_typer(network_costs_app, name="network-costs")
test_app.add_typer(test_account_app, name="account")


class CommandContext:
    """Settings, static config and credential resolver for one invocation."""

    def __init__(self, settings: Settings, static_config: StaticConfig):
        self.settings = settings
        self.static_config = static_config
        self.resolver = CredentialResolver(settings, static_config)
        self.reporter = Reporter(console, err_console)
        stripe.max_network_retries = settings.max_network_retries

    @classmethod
    def load(cls) -> "CommandContext":
        settings = load_settings()
        return cls(settings, load_static_config(settings.config_file))

    def connect_client(self, options: CredentialOptions, stripe_account: Optional[str] = None,
                       command_path: Optional[str] = None) -> ConnectClient:
        return ConnectClient(
            self.resolver.api_key(options, command_path),
            self.settings.api_version,
            stripe_account=stripe_account,
            network_costs_api_version=self.settings.network_costs_api_version,
        )


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print failures as `Error: <message>` and exit 1."""
    try:
        yield
    except (typer.Exit, typer.Abort):
        raise
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Cancelled by user[/yellow]")
        raise typer.Exit(1)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _credentials(key, platform, env, test, account=None, connected_account=None) -> CredentialOptions:
    return CredentialOptions(
        key=key,
        platform=platform,
        environment=env.value if env else None,
        test=test,
        account=account,
        connected_account=connected_account,
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"stripe-connect-cli {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging on stderr"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True,
                                 help="Show the version and exit"),
):
    """A CLI tool for making Stripe API calls."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@account_app.command("list")
def account_list(
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
    output_format: OutputFormat = FORMAT_OPTION,
):
    """List the first 50 Connect accounts."""
    with handle_errors():
        ctx = CommandContext.load()
        client = ctx.connect_client(_credentials(key, platform, env, test))

        ctx.reporter.info("Fetching Connect accounts...")
        accounts = account_ops.list_accounts(client)

        if not accounts:
            ctx.reporter.warning("No Connect accounts found.")
            return
        if output_format == OutputFormat.json:
            ctx.reporter.print_json(accounts)
            return

        ctx.reporter.print_accounts(accounts)
        ctx.reporter.detail(f"Total accounts: {len(accounts)}")


@account_app.command("search")
def account_search(
    search_term: str = typer.Argument(..., help="Text to find; use * as a wildcard"),
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Search Connect accounts by id, email, business name, DBA or display name."""
    with handle_errors():
        ctx = CommandContext.load()
        client = ctx.connect_client(_credentials(key, platform, env, test))

        ctx.reporter.info("Searching Connect accounts...")
        results = account_ops.search_accounts(client, search_term)

        if not results:
            ctx.reporter.warning(f'No accounts found matching "{search_term}"')
            return
        if output_format == OutputFormat.json:
            ctx.reporter.print_json(results)
            return

        ctx.reporter.print_accounts(results, detailed=True)
        ctx.reporter.detail(f'Found {len(results)} account(s) matching "{search_term}"')


def _set_network_costs(enabled: bool, account, starts_at, key, platform, env, test, output_format) -> None:
    ctx = CommandContext.load()
    account = account_ops.require_account(account)
    client = ctx.connect_client(_credentials(key, platform, env, test), stripe_account=account)

    action = "Enabling" if enabled else "Disabling"
    ctx.reporter.info(f"{action} network cost passthrough for account: {account}")
    scheme = network_costs.set_passthrough(client, enabled, starts_at)

    ctx.reporter.success(f"Network cost passthrough {'enabled' if enabled else 'disabled'} successfully!")
    ctx.reporter.detail(f"Scheme ID: {scheme.get('id')}")
    starts = scheme.get("starts_at")
    ctx.reporter.detail(f"Starts at: {format_iso(starts) if starts else 'Immediately'}")

    if output_format == OutputFormat.json:
        ctx.reporter.print_json(scheme)


@network_costs_app.command("enable")
def network_costs_enable(
    account: Optional[str] = ACCOUNT_OPTION,
    starts_at: Optional[int] = typer.Option(None, "--starts-at", help="Unix timestamp for future activation"),
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Enable network cost passthrough for a connected account."""
    with handle_errors():
        _set_network_costs(True, account, starts_at, key, platform, env, test, output_format)


@network_costs_app.command("disable")
def network_costs_disable(
    account: Optional[str] = ACCOUNT_OPTION,
    starts_at: Optional[int] = typer.Option(None, "--starts-at", help="Unix timestamp for future activation"),
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Disable network cost passthrough for a connected account."""
    with handle_errors():
        _set_network_costs(False, account, starts_at, key, platform, env, test, output_format)


@network_costs_app.command("status")
def network_costs_status(
    account: Optional[str] = ACCOUNT_OPTION,
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Show network cost passthrough status for a connected account."""
    with handle_errors():
        ctx = CommandContext.load()
        account = account_ops.require_account(account)
        client = ctx.connect_client(_credentials(key, platform, env, test), stripe_account=account)

        ctx.reporter.info(f"Getting network cost passthrough status for account: {account}")
        pricing_config = network_costs.passthrough_status(client)

        if output_format == OutputFormat.json:
            ctx.reporter.print_json(pricing_config)
            return
        ctx.reporter.print_network_costs_status(pricing_config)


@network_costs_app.command("delete-scheme")
def network_costs_delete_scheme(
    account: Optional[str] = ACCOUNT_OPTION,
    scheme_id: Optional[str] = typer.Option(None, "--scheme-id", help="Scheme ID to delete"),
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Delete a scheduled network cost passthrough scheme."""
    with handle_errors():
        ctx = CommandContext.load()
        account = account_ops.require_account(account)
        client = ctx.connect_client(_credentials(key, platform, env, test), stripe_account=account)

        ctx.reporter.info(f"Deleting network cost passthrough scheme: {scheme_id}")
        deleted = network_costs.delete_scheme(client, scheme_id)

        ctx.reporter.success("Network cost passthrough scheme deleted successfully!")
        ctx.reporter.detail(f"Deleted scheme ID: {deleted.get('id')}")
        if output_format == OutputFormat.json:
            ctx.reporter.print_json(deleted)


@capabilities_app.command("request")
def capabilities_request(
    account: Optional[str] = ACCOUNT_OPTION,
    capability: Optional[str] = typer.Option(None, "--capability", help="Capability ID (e.g. card_payments)"),
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Request a capability for a connected account."""
    with handle_errors():
        ctx = CommandContext.load()
        client = ctx.connect_client(
            _credentials(key, platform, env, test), command_path="account.capabilities.request"
        )

        ctx.reporter.info(f'Requesting capability "{capability}" for account: {account}')
        result = account_ops.request_capability(client, account, capability)

        if output_format == OutputFormat.json:
            ctx.reporter.print_json(result)
            return
        ctx.reporter.success("Capability requested successfully!")
        ctx.reporter.print_capability(result)


@capabilities_app.command("list")
def capabilities_list(
    account: Optional[str] = ACCOUNT_OPTION,
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
    output_format: OutputFormat = FORMAT_OPTION,
):
    """List all capabilities for a connected account."""
    with handle_errors():
        ctx = CommandContext.load()
        client = ctx.connect_client(
            _credentials(key, platform, env, test), command_path="account.capabilities.list"
        )

        ctx.reporter.info(f"Fetching capabilities for account: {account}")
        capabilities = account_ops.list_capabilities(client, account)

        if not capabilities:
            ctx.reporter.warning("No capabilities found for this account.")
            return
        if output_format == OutputFormat.json:
            ctx.reporter.print_json(capabilities)
            return

        ctx.reporter.print_capabilities(capabilities)
        ctx.reporter.detail(f"Total capabilities: {len(capabilities)}")


@import_app.command("card")
def import_card(
    file: Optional[Path] = typer.Option(None, "--file", help="CSV file to import (reads stdin when omitted)"),
    account: Optional[str] = typer.Option(None, "--account", "-a", help="Platform account ID"),
    connected_account: Optional[str] = typer.Option(None, "--connected-account", "-c", help="Connected account ID"),
    delimiter: str = typer.Option(",", "--delimiter", "-d", help="CSV delimiter (use \\t for tab)"),
    source: SourceFormat = typer.Option(SourceFormat.default, "--source", help="Input layout (default, cardpointe)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate only; no cards are imported"),
    output_format: ImportFormat = typer.Option(ImportFormat.csv, "--format", help="Results format (csv, json)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write results CSV to this file instead of stdout"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Report every imported card"),
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
):
    """Import cards from CSV into a platform or connected account."""
    with handle_errors():
        ctx = CommandContext.load()
        reporter = ctx.reporter
        options = _credentials(key, platform, env, test, account=account, connected_account=connected_account)

        if file is None and sys.stdin.isatty():
            raise CardImportError(
                "CSV file is required. Use --file option or redirect input: "
                "account import card -a <acct> < file.csv"
            )

        client = None
        accounts = ctx.resolver.resolve_accounts(options)
        if not dry_run:
            client = CustomerClient(
                ctx.resolver.api_key(options, card_import.COMMAND_PATH),
                ctx.settings.api_version,
                stripe_account=accounts.target_account,
            )

        if not accounts.platform_account:
            raise CardImportError("Platform account ID is required. Use --account option or set account in profile.")

        reporter.info(f"Importing cards from: {file or 'stdin'}")
        reporter.info(f"Platform account: {accounts.platform_account}")
        if accounts.connected_account:
            reporter.info(f"Connected account: {accounts.connected_account}")
        reporter.info(f"Mode: {'DRY RUN (validation only)' if dry_run else 'LIVE IMPORT'}")

        processor = CardCSVProcessor(err_console)
        try:
            df = processor.read_csv(file, delimiter)
            rows = processor.extract_card_rows(df, source.value)
        except (ValueError, FileNotFoundError) as e:
            raise CardImportError(str(e)) from e

        reporter.info(f"Found {len(rows)} cards to process")
        results, stats = CardImporter(reporter, client).run(rows, accounts, dry_run=dry_run, verbose=verbose)

        reporter.print_import_summary(
            stats,
            accounts.platform_account,
            accounts.connected_account,
            dry_run=dry_run,
            output_file=str(output) if output else None,
        )

        if output:
            processor.write_results_file(results, output)

        if output_format == ImportFormat.json:
            summary = {
                "platform_account": accounts.platform_account,
                "connected_account": accounts.connected_account,
                "dry_run": dry_run,
                "total_cards": stats.total_rows,
                "valid_cards": stats.valid_rows,
                "invalid_cards": stats.invalid_rows,
                "successful_imports": stats.imported,
                "failed_imports": stats.failed,
                "output_file": str(output) if output else None,
            }
            reporter.print_raw(processor.results_to_json(summary, results) + "\n")
        elif not output:
            buffer = io.StringIO()
            processor.write_results_csv(results, buffer)
            reporter.print_raw(buffer.getvalue())


@customer_app.command("delete")
def customer_delete(
    customer_id: Optional[str] = typer.Argument(None, help="Customer ID to delete (cus_...)"),
    metadata: Optional[str] = typer.Option(None, "--metadata", help="Delete customers whose metadata matches key=value"),
    delete_all: bool = typer.Option(False, "--all", help="Delete every customer (test keys only)"),
    connected_account: Optional[str] = typer.Option(None, "--connected-account", "-c", help="Connected account ID"),
    account: Optional[str] = ACCOUNT_OPTION,
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Delete customers, asking for confirmation before each deletion."""
    with handle_errors():
        modes = [bool(customer_id), bool(metadata), delete_all]
        if sum(modes) != 1:
            raise CustomerDeletionError("Specify exactly one of CUSTOMER_ID, --metadata key=value or --all.")

        ctx = CommandContext.load()
        options = _credentials(key, platform, env, test, connected_account=connected_account or account)
        api_key = ctx.resolver.api_key(options, customer_cleanup.COMMAND_PATH)
        target = ctx.resolver.resolve_accounts(options).connected_account

        client = CustomerClient(api_key, ctx.settings.api_version, stripe_account=target)
        deleter = CustomerDeleter(client, ctx.reporter)
        quiet = output_format == OutputFormat.json

        if customer_id:
            deleted = deleter.delete_one(customer_id)
            if deleted and quiet:
                ctx.reporter.print_json(deleted)
            return

        if metadata:
            stats = deleter.delete_by_metadata(metadata, quiet=quiet)
        else:
            label = f"connected account {target}" if target else "platform account"
            stats = deleter.delete_all(api_key, label, quiet=quiet)

        if quiet:
            ctx.reporter.print_json(stats.to_summary())


@profile_app.command("list")
def profile_list():
    """List all configured profiles."""
    with handle_errors():
        ctx = CommandContext.load()
        profiles = ProfileManager(ctx.settings.profile_file, ctx.static_config).load()

        table = Table(title="Available Profiles", show_header=True, header_style="bold magenta")
        table.add_column("", width=1)
        table.add_column("Profile", style="cyan")
        table.add_column("Description")
        table.add_column("Keys")
        table.add_column("Account")
        table.add_column("Connected Account")

        for name, profile in profiles.profiles.items():
            keys = ", ".join(mask_key(k) for k in profile.all_keys()) or "No key"
            table.add_row(
                "[green]*[/green]" if name == profiles.default_profile else "",
                name,
                profile.description or "",
                keys,
                profiles.profile_account(name) or "",
                profile.connected_account or profile.test_connected_account or "",
            )

        if profiles.default_profile:
            console.print(f"[green]Default: {profiles.default_profile}[/green]")
        console.print(table)

        platforms = ctx.static_config.available_platforms()
        if platforms:
            console.print(f"Platforms in {ctx.settings.config_file}: {', '.join(platforms)}")
        test_platform = ctx.static_config.test_platform()
        if test_platform:
            console.print(f"Test platform: {test_platform}")


@profile_app.command("validate")
def profile_validate():
    """Check that every profile has a well-formed key and a default is set."""
    with handle_errors():
        ctx = CommandContext.load()
        ProfileManager(ctx.settings.profile_file, ctx.static_config).load().validate()
        err_console.print("[green]✓ Profiles are valid[/green]")


@test_account_app.command("generate")
def test_account_generate(
    kyc_file: Optional[Path] = typer.Option(None, "--kyc-file", help="KYC data file (defaults to STRIPE_KYC_FILE or kyc.yml)"),
    key: Optional[str] = KEY_OPTION,
    platform: Optional[str] = PLATFORM_OPTION,
    env: Optional[EnvironmentChoice] = ENV_OPTION,
    test: bool = TEST_OPTION,
    output_format: OutputFormat = FORMAT_OPTION,
):
    """Create KYC-complete test connected accounts for every country in kyc.yml."""
    with handle_errors():
        ctx = CommandContext.load()
        client = ctx.connect_client(
            _credentials(key, platform, env, test), command_path=sandbox_accounts.COMMAND_PATH
        )
        kyc_config = sandbox_accounts.load_kyc_config(kyc_file or ctx.settings.kyc_file)

        created = sandbox_accounts.SandboxAccountGenerator(client, ctx.reporter).generate(kyc_config)

        if output_format == OutputFormat.json:
            ctx.reporter.print_json({entry["country_code"].lower(): entry["account"] for entry in created})
            return

        ctx.reporter.print_test_accounts(created)
        ctx.reporter.detail("Note: Capabilities may take a few moments to activate after KYC/KYB verification.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
