"""Reporting: tables and JSON on stdout, progress and summaries on stderr."""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from .config import ImportStats
from .validators import mask_card_number


def format_date(timestamp: Optional[int]) -> str:
    if not timestamp:
        return "N/A"
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")


def format_iso(timestamp: Optional[int]) -> Optional[str]:
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def format_flag(value: Any) -> str:
    return "[green]✓[/green]" if value else "[red]✗[/red]"


def format_capability_status(status: Optional[str]) -> str:
    styles = {
        "active": "[green]Active[/green]",
        "inactive": "[yellow]Inactive[/yellow]",
        "pending": "[blue]Pending[/blue]",
    }
    return styles.get(status or "", status or "N/A")


class Reporter:
    """Renders command output.

    Results (tables, JSON, CSV) go to `out`; progress, prompts and
    summaries go to `err` so stdout stays machine-readable.
    """

    def __init__(self, out: Optional[Console] = None, err: Optional[Console] = None):
        self.out = out or Console()
        self.err = err or Console(stderr=True)

    def info(self, message: str) -> None:
        self.err.print(f"[blue]{message}[/blue]")

    def success(self, message: str) -> None:
        self.err.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        self.err.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        self.err.print(f"[red]{message}[/red]")

    def detail(self, message: str) -> None:
        self.err.print(f"[dim]{message}[/dim]")

    def print_json(self, data: Any) -> None:
        """Plain JSON on stdout, without rich markup or wrapping."""
        self.out.out(json.dumps(data, indent=2, default=str), highlight=False)

    def print_raw(self, text: str) -> None:
        self.out.out(text, highlight=False, end="")

    def progress(self) -> Progress:
        """Progress bar rendered on stderr."""
        return Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.err,
            transient=True,
        )

    def print_accounts(self, accounts: List[Dict[str, Any]], detailed: bool = False) -> None:
        """Accounts table; the detailed form adds business name, DBA and display name."""
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Email")
        if detailed:
            table.add_column("Business Name")
            table.add_column("DBA")
            table.add_column("Display Name")
        table.add_column("Country")
        table.add_column("Type")
        table.add_column("Charges Enabled", justify="center")
        table.add_column("Payouts Enabled", justify="center")
        table.add_column("Created")

        for account in accounts:
            row = [account.get("id", ""), account.get("email") or "N/A"]
            if detailed:
                business = account.get("business_profile") or {}
                dashboard = (account.get("settings") or {}).get("dashboard") or {}
                row += [
                    business.get("name") or "N/A",
                    business.get("dba") or "N/A",
                    dashboard.get("display_name") or "N/A",
                ]
            row += [
                account.get("country") or "N/A",
                account.get("type") or "N/A",
                format_flag(account.get("charges_enabled")),
                format_flag(account.get("payouts_enabled")),
                format_date(account.get("created")),
            ]
            table.add_row(*row)

        self.out.print(table)

    def print_capability(self, capability: Dict[str, Any]) -> None:
        self.out.print("[bold]Capability Details:[/bold]")
        self.out.print(f"  ID: {capability.get('id')}")
        self.out.print(f"  Status: {format_capability_status(capability.get('status'))}")
        self.out.print(f"  Requested: {'[green]Yes[/green]' if capability.get('requested') else '[red]No[/red]'}")
        if capability.get("requested_at"):
            self.out.print(f"  Requested At: {format_iso(capability['requested_at'])}")

        requirements = capability.get("requirements") or {}
        currently_due = requirements.get("currently_due") or []
        eventually_due = requirements.get("eventually_due") or []
        past_due = requirements.get("past_due") or []
        if currently_due or eventually_due or past_due:
            self.out.print("\n[bold]Requirements:[/bold]")
            if currently_due:
                self.out.print(f"[yellow]  Currently Due: {', '.join(currently_due)}[/yellow]")
            if eventually_due:
                self.out.print(f"[dim]  Eventually Due: {', '.join(eventually_due)}[/dim]")
            if past_due:
                self.out.print(f"[red]  Past Due: {', '.join(past_due)}[/red]")

    def print_capabilities(self, capabilities: List[Dict[str, Any]]) -> None:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan")
        table.add_column("Status")
        table.add_column("Requested", justify="center")
        table.add_column("Requested At")
        table.add_column("Currently Due", justify="right")
        table.add_column("Past Due", justify="right")

        for capability in capabilities:
            requirements = capability.get("requirements") or {}
            currently_due = len(requirements.get("currently_due") or [])
            past_due = len(requirements.get("past_due") or [])
            table.add_row(
                capability.get("id", ""),
                format_capability_status(capability.get("status")),
                "[green]Yes[/green]" if capability.get("requested") else "[red]No[/red]",
                format_date(capability.get("requested_at")),
                f"[yellow]{currently_due}[/yellow]" if currently_due else "[dim]0[/dim]",
                f"[red]{past_due}[/red]" if past_due else "[dim]0[/dim]",
            )

        self.out.print(table)

    def print_network_costs_status(self, pricing_config: Dict[str, Any]) -> None:
        self.out.print("\n[bold]Network Cost Passthrough Status:[/bold]\n")

        current = pricing_config.get("current_scheme")
        if current:
            status = "[green]ENABLED[/green]" if current.get("enabled") else "[red]DISABLED[/red]"
            self.out.print("[bold]Current Scheme:[/bold]")
            self.out.print(f"  Status: {status}")
            self.out.print(f"  Scheme ID: {current.get('id')}")
            self.out.print(f"  Started: {format_iso(current.get('starts_at')) or 'N/A'}")
            self.out.print(f"  Ends: {format_iso(current.get('ends_at')) or 'No end date'}\n")
        else:
            self.out.print("[yellow]No current scheme active[/yellow]\n")

        upcoming = pricing_config.get("next_scheme")
        if upcoming:
            status = "[green]ENABLED[/green]" if upcoming.get("enabled") else "[red]DISABLED[/red]"
            self.out.print("[bold]Scheduled Scheme:[/bold]")
            self.out.print(f"  Status: {status}")
            self.out.print(f"  Scheme ID: {upcoming.get('id')}")
            self.out.print(f"  Starts: {format_iso(upcoming.get('starts_at')) or 'N/A'}\n")
        else:
            self.out.print("[dim]No scheduled scheme[/dim]")

    def print_test_accounts(self, created: List[Dict[str, Any]]) -> None:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Country")
        table.add_column("Account ID", style="cyan")
        table.add_column("Email")
        table.add_column("Business Name")
        table.add_column("Capabilities")
        table.add_column("Charges Enabled", justify="center")
        table.add_column("Payouts Enabled", justify="center")

        for entry in created:
            account = entry["account"]
            capabilities = account.get("capabilities") or {}
            table.add_row(
                entry["country_code"],
                account.get("id", ""),
                entry["email"],
                (account.get("business_profile") or {}).get("name") or "N/A",
                capabilities.get("card_payments") or "pending",
                format_flag(account.get("charges_enabled")),
                format_flag(account.get("payouts_enabled")),
            )

        self.out.print(table)

    def print_validation_errors(self, errors: List[Dict[str, Any]]) -> None:
        """Per-row validation errors, cards masked."""
        if not errors:
            return
        self.err.print("\n[red]Validation Errors:[/red]")
        for error in errors:
            self.err.print(
                f"[red]  Row {error['row']} ({mask_card_number(error['card']) or 'N/A'}): "
                f"{', '.join(error['errors'])}[/red]"
            )
        self.err.print()

    def print_import_summary(
        self,
        stats: ImportStats,
        platform_account: str,
        connected_account: Optional[str],
        dry_run: bool = False,
        output_file: Optional[str] = None,
    ) -> None:
        """Summary of a card import run."""
        title = "DRY RUN SUMMARY" if dry_run else "IMPORT SUMMARY"

        table = Table(title=title, show_header=True, header_style="bold magenta")
        table.add_column("Metric", style="cyan", no_wrap=True)
        table.add_column("Value", justify="right", style="green")

        table.add_row("Platform Account", platform_account)
        if connected_account:
            table.add_row("Connected Account", connected_account)
        table.add_row("Total Rows", str(stats.total_rows))
        table.add_row("Valid Cards", str(stats.valid_rows))
        table.add_row("Invalid Cards", str(stats.invalid_rows))
        if not dry_run:
            table.add_row("Imported", str(stats.imported))
            table.add_row("Failed Imports", str(stats.failed))
        if output_file:
            table.add_row("Output File", output_file)

        self.err.print(table)
        if dry_run:
            self.warning("Dry run completed - no cards were imported")
