"""Card import: validate CSV rows, then save each card on Stripe."""

from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import stripe
from rich.progress import Progress

from ..auth import ResolvedAccounts
from ..clients import CustomerClient
from ..clients.base import stripe_error_message
from ..config import ImportResult, ImportStats
from ..reporting import Reporter
from ..validators import mask_card_number, parse_expiration, validate_card_row


COMMAND_PATH = "account.import.card"


class CardImportError(Exception):
    """Card import aborted."""
    pass


def display_name(row: Dict[str, str]) -> str:
    name = row.get("name", "").strip()
    if name:
        return name
    return f"{row.get('first', '').strip()} {row.get('last', '').strip()}".strip()


def build_address(row: Dict[str, str]) -> Optional[Dict[str, str]]:
    """Stripe address from the row, or None when no address field is set."""
    fields = {
        "line1": row.get("address", ""),
        "line2": row.get("address2", ""),
        "city": row.get("city", ""),
        "state": row.get("state", ""),
        "postal_code": row.get("zip", ""),
        "country": row.get("country", ""),
    }
    address = {key: value for key, value in fields.items() if value}
    return address or None


def build_customer_params(row: Dict[str, str]) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    name = display_name(row)
    if name:
        params["name"] = name
    if row.get("email"):
        params["email"] = row["email"]
    if row.get("phone"):
        params["phone"] = row["phone"]
    address = build_address(row)
    if address:
        params["address"] = address
    return params


def build_payment_method_params(row: Dict[str, str]) -> Dict[str, Any]:
    """Card payment method from a token when present, else the raw card."""
    if row.get("token"):
        card: Dict[str, Any] = {"token": row["token"]}
    else:
        month, year = parse_expiration(row["exp"])
        card = {"number": row["card"], "exp_month": month, "exp_year": year}

    params: Dict[str, Any] = {"type": "card", "card": card}
    billing_details = build_customer_params(row)
    if billing_details:
        params["billing_details"] = billing_details
    return params


class CardImporter:
    """Imports validated card rows into a platform or connected account."""

    def __init__(self, reporter: Reporter, client: Optional[CustomerClient] = None):
        self.reporter = reporter
        self.client = client

    def _base_result(self, row: Dict[str, str], row_number: int, accounts: ResolvedAccounts, status: str) -> ImportResult:
        return ImportResult(
            row=row_number,
            card_last_4=mask_card_number(row.get("card", "")),
            exp=row.get("exp", ""),
            first=row.get("first", ""),
            last=row.get("last", ""),
            zip=row.get("zip", ""),
            token=row.get("token", ""),
            platform_account=accounts.platform_account or "",
            connected_account=accounts.connected_account or "",
            status=status,
        )

    def import_card(self, row: Dict[str, str], row_number: int, accounts: ResolvedAccounts) -> ImportResult:
        """Create the customer, payment method and setup intent for one card."""
        result = self._base_result(row, row_number, accounts, "failed")

        try:
            customer = self.client.create_customer(build_customer_params(row))
            payment_method = self.client.create_payment_method(build_payment_method_params(row))
            setup_intent = self.client.create_setup_intent(customer["id"], payment_method["id"])
        except stripe.StripeError as e:
            result.error = stripe_error_message(e)
            return result
        except Exception as e:
            result.error = f"Unexpected error: {e}"
            return result

        card = payment_method.get("card") or {}
        result.status = "success"
        result.stripe_customer_id = customer["id"]
        result.stripe_payment_method_id = payment_method["id"]
        result.stripe_setup_intent_id = setup_intent["id"]
        result.stripe_setup_intent_payment_method_id = str(setup_intent.get("payment_method") or "")
        result.stripe_card_brand = str(card.get("brand") or "")
        result.stripe_card_last4 = str(card.get("last4") or "")
        result.stripe_card_exp_month = str(card.get("exp_month") or "")
        result.stripe_card_exp_year = str(card.get("exp_year") or "")
        return result

    def validate_rows(self, rows: List[Dict[str, str]], today: Optional[date] = None) -> List[List[str]]:
        """Validate every row up front; the batch aborts only when none is valid."""
        validations = [validate_card_row(row, today) for row in rows]

        failures = [
            {"row": index + 2, "card": row.get("card", ""), "errors": errors}
            for index, (row, errors) in enumerate(zip(rows, validations))
            if errors
        ]
        valid = len(rows) - len(failures)

        self.reporter.success(f"Valid cards: {valid}")
        self.reporter.error(f"Invalid cards: {len(failures)}")
        self.reporter.print_validation_errors(failures)

        if valid == 0:
            raise CardImportError("No valid cards found to import")
        return validations

    def run(
        self,
        rows: List[Dict[str, str]],
        accounts: ResolvedAccounts,
        dry_run: bool = False,
        verbose: bool = False,
        today: Optional[date] = None,
    ) -> Tuple[List[ImportResult], ImportStats]:
        """Validate and import rows; returns one result per input row."""
        stats = ImportStats(total_rows=len(rows))
        validations = self.validate_rows(rows, today)
        stats.invalid_rows = sum(1 for errors in validations if errors)
        stats.valid_rows = stats.total_rows - stats.invalid_rows

        if not dry_run and self.client is None:
            raise CardImportError("A Stripe client is required for a live import")

        results: List[ImportResult] = []

        with self.reporter.progress() as progress:
            task = progress.add_task("Validating cards" if dry_run else "Importing cards", total=len(rows))
            for index, (row, errors) in enumerate(zip(rows, validations)):
                row_number = index + 2
                if errors:
                    result = self._base_result(row, row_number, accounts, "invalid")
                    result.error = "; ".join(errors)
                elif dry_run:
                    result = self._base_result(row, row_number, accounts, "valid")
                else:
                    result = self.import_card(row, row_number, accounts)
                    self._log_result(progress, result, verbose)

                stats.add_result(result)
                results.append(result)
                progress.advance(task)

        return results, stats

    def _log_result(self, progress: Progress, result: ImportResult, verbose: bool) -> None:
        if result.status == "success":
            if verbose:
                progress.console.print(
                    f"[green]✓ Row {result.row} ({result.card_last_4}): customer {result.stripe_customer_id}, "
                    f"payment method {result.stripe_payment_method_id}, "
                    f"setup intent {result.stripe_setup_intent_id}[/green]"
                )
        else:
            progress.console.print(f"[red]✗ Row {result.row} ({result.card_last_4}): {result.error}[/red]")
