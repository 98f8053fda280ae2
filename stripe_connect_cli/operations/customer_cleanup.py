"""Customer deletion with confirmation prompts."""

from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import stripe
from rich.console import Console
from rich.prompt import Prompt

from ..clients import CustomerClient, wrap_stripe_error
from ..clients.base import stripe_error_message
from ..config import DeletionStats, is_test_key
from ..reporting import Reporter


COMMAND_PATH = "account.customer.delete"

NOT_FOUND_MESSAGE = "Customer not found: {id}. It may have been deleted already or the ID may be wrong."


class CustomerDeletionError(Exception):
    """Customer deletion could not run."""
    pass


def _ask(console: Console, message: str) -> str:
    try:
        return Prompt.ask(message, console=console, default="", show_default=False)
    except EOFError:
        return ""


def prompt_yes_no(console: Console, message: str) -> bool:
    """True for y/yes, false for anything else."""
    return _ask(console, message).strip().lower() in ("y", "yes")


def prompt_yes_no_all(console: Console, message: str) -> str:
    """'all' for ALL (any case), 'yes' for y/yes, 'no' otherwise."""
    answer = _ask(console, message).strip().lower()
    if answer == "all":
        return "all"
    return "yes" if answer in ("y", "yes") else "no"


def parse_metadata_filter(raw: Optional[str]) -> Tuple[str, str]:
    """Split key=value; the key must be non-empty."""
    if not raw:
        raise CustomerDeletionError(
            "--metadata requires key=value (e.g. --metadata import_date=2026-01-30T23:44:00.000Z)."
        )
    if "=" not in raw or raw.startswith("="):
        raise CustomerDeletionError(
            "--metadata must be key=value (e.g. --metadata import_date=2026-01-30T23:44:00.000Z)."
        )
    key, _, value = raw.partition("=")
    key = key.strip()
    if not key:
        raise CustomerDeletionError("--metadata key cannot be empty.")
    return key, value.strip()


def build_metadata_query(key: str, value: str) -> str:
    """Customer search query for an exact metadata match."""
    def escape(text: str) -> str:
        return text.replace("'", "\\'")
    return f"metadata['{escape(key)}']:'{escape(value)}'"


def customer_label(customer: Dict[str, Any]) -> str:
    return str(customer.get("name") or "").strip() or "(no name)"


class CustomerDeleter:
    """Deletes customers one by one, asking before each deletion."""

    def __init__(
        self,
        client: CustomerClient,
        reporter: Reporter,
        confirm: Optional[Callable[[Console, str], bool]] = None,
        confirm_many: Optional[Callable[[Console, str], str]] = None,
    ):
        self.client = client
        self.reporter = reporter
        self.confirm = confirm or prompt_yes_no
        self.confirm_many = confirm_many or prompt_yes_no_all

    def delete_one(self, customer_id: str) -> Optional[Dict[str, Any]]:
        """Delete one customer after a y/n prompt; None when skipped."""
        customer_id = (customer_id or "").strip()
        if not customer_id:
            raise CustomerDeletionError("Customer ID is required (e.g. cus_xxx).")
        if not customer_id.startswith("cus_"):
            raise CustomerDeletionError("Invalid customer ID. Must start with cus_.")

        not_found = {"resource_missing": NOT_FOUND_MESSAGE.format(id=customer_id)}

        try:
            customer = self.client.retrieve_customer(customer_id)
        except stripe.StripeError as e:
            raise wrap_stripe_error(e, "retrieve customer", not_found) from e

        if not self.confirm(self.reporter.err, f"[yellow]Delete customer {customer_id} ({customer_label(customer)})? (y/n)[/yellow]"):
            self.reporter.detail("Skipped.")
            return None

        try:
            deleted = self.client.delete_customer(customer_id)
        except stripe.StripeError as e:
            raise wrap_stripe_error(e, "delete customer", not_found) from e

        self.reporter.success("Customer deleted successfully.")
        self.reporter.info(f"ID: {deleted.get('id')}")
        if deleted.get("deleted"):
            self.reporter.info("Deleted: true")
        return deleted

    def delete_by_metadata(self, raw_filter: str, quiet: bool = False) -> DeletionStats:
        """Find customers by metadata key=value and delete the confirmed ones."""
        key, value = parse_metadata_filter(raw_filter)
        self.reporter.warning(f"Searching customers with metadata {key}={value}...")

        try:
            customers = list(self.client.search_customers(build_metadata_query(key, value)))
        except stripe.StripeError as e:
            raise wrap_stripe_error(e, "search customers") from e

        if not customers:
            self.reporter.info("No customers found with that metadata.")
            return DeletionStats()

        self.reporter.warning(
            f"Found {len(customers)} customer(s). You will be prompted for each "
            f"(or type ALL to delete all without further prompts)..."
        )
        return self._delete_each(customers, quiet)

    def delete_all(self, api_key: str, account_label: str, quiet: bool = False) -> DeletionStats:
        """Delete every customer on the account; test keys only."""
        if not is_test_key(api_key):
            raise CustomerDeletionError(
                "account customer delete --all is only allowed with Stripe test keys "
                "(sk_test_* or rk_test_*). Use a test key to delete all customers."
            )

        self.reporter.warning(f"Listing all customers on {account_label}...")
        try:
            customers = list(self.client.iter_customers())
        except stripe.StripeError as e:
            raise wrap_stripe_error(e, "list customers") from e

        if not customers:
            self.reporter.info("No customers found.")
            return DeletionStats()

        self.reporter.warning(
            f"Deleting {len(customers)} customer(s) (you will be prompted for each, "
            f"or type ALL to delete all without further prompts)..."
        )
        return self._delete_each(customers, quiet)

    def _delete_each(self, customers: Iterable[Dict[str, Any]], quiet: bool) -> DeletionStats:
        customers = list(customers)
        stats = DeletionStats(total=len(customers))
        delete_all_remaining = False

        for customer in customers:
            customer_id = customer["id"]
            should_delete = delete_all_remaining
            if not should_delete:
                answer = self.confirm_many(
                    self.reporter.err,
                    f"[yellow]Delete customer {customer_id} ({customer_label(customer)})? (y/n/ALL)[/yellow]",
                )
                if answer == "all":
                    delete_all_remaining = True
                    should_delete = True
                    if not quiet:
                        self.reporter.detail("  Deleting all remaining without further prompts...")
                else:
                    should_delete = answer == "yes"

            if not should_delete:
                stats.skipped += 1
                if not quiet:
                    self.reporter.detail(f"  Skipped {customer_id}")
                continue

            try:
                self.client.delete_customer(customer_id)
            except stripe.StripeError as e:
                message = stripe_error_message(e) or str(e.code)
                stats.add_failure(customer_id, message)
                self.reporter.error(f"  Failed {customer_id}: {message}")
                continue

            stats.deleted += 1
            if not quiet:
                self.reporter.detail(f"  Deleted {customer_id}")

        self.reporter.success(f"Deleted: {stats.deleted}")
        if stats.failed:
            self.reporter.error(f"Failed: {stats.failed}")
        return stats
