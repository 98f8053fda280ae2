"""Generate KYC-complete test connected accounts from kyc.yml."""

import copy
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import stripe
import yaml

from ..clients import ConnectClient
from ..clients.base import stripe_error_message
from ..reporting import Reporter


COMMAND_PATH = "test.account.generate"

TEST_DOCUMENT_TOKEN = "file_identity_document_success"
TEST_BUSINESS_URL = "https://accessible.stripe.com"
TEST_ID_NUMBER = "000000000"
DEFAULT_MCC = "5734"
ONBOARDING_REFRESH_URL = "https://example.com/reauth"
ONBOARDING_RETURN_URL = "https://example.com/return"

INDIVIDUAL_FIELDS = ("first_name", "last_name", "email", "phone", "dob", "address")


class SandboxAccountError(Exception):
    """Test account generation failed."""
    pass


def load_kyc_config(path: Path) -> Dict[str, Any]:
    """Load kyc.yml: a `common` block plus one block per country."""
    if not path.exists():
        raise SandboxAccountError(f"Failed to load KYC config: KYC config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise SandboxAccountError(f"Failed to load KYC config: {e}") from e
    if not isinstance(data, dict):
        raise SandboxAccountError("Failed to load KYC config: expected a mapping at the top level")
    return data


def build_account_params(common: Dict[str, Any], country_config: Dict[str, Any], email: str) -> Dict[str, Any]:
    """Account creation params for one country."""
    params = copy.deepcopy(common)
    # Express accounts accept ToS through onboarding
    params.pop("tos_acceptance", None)

    params.update({
        "country": country_config["country"],
        "email": email,
        "business_type": country_config.get("business_type"),
        "business_profile": {**(country_config.get("business_profile") or {}), "support_email": email},
    })
    if country_config.get("external_account"):
        params["external_account"] = country_config["external_account"]

    if country_config.get("business_type") == "individual":
        params["individual"] = {**(country_config.get("individual") or {}), "email": email}
    elif country_config.get("business_type") == "company":
        params["company"] = dict(country_config.get("company") or {})
    return params


def _any(requirements: List[str], *needles: str) -> bool:
    return any(needle in requirement for requirement in requirements for needle in needles)


def build_requirements_update(account: Dict[str, Any], currently_due: List[str], country: str) -> Dict[str, Any]:
    """Update params that satisfy the account's outstanding test-mode requirements."""
    update: Dict[str, Any] = {}

    needs_verification = _any(currently_due, "verification", "document", "identity")
    needs_individual = any(r.startswith("individual.") and "verification" not in r for r in currently_due)

    if needs_verification or needs_individual:
        existing = account.get("individual") or {}
        individual = {
            field: copy.deepcopy(existing[field]) for field in INDIVIDUAL_FIELDS if existing.get(field) is not None
        }
        if needs_verification:
            individual["verification"] = {"document": {"front": TEST_DOCUMENT_TOKEN}}
        if _any(currently_due, "id_number"):
            individual["id_number"] = TEST_ID_NUMBER
        if _any(currently_due, "relationship"):
            individual["relationship"] = {"title": "Owner"}
        if _any(currently_due, "address.state") and individual.get("address"):
            individual["address"]["state"] = "Dublin" if country == "IE" else "CA"
        if _any(currently_due, "nationality"):
            individual["nationality"] = country
        if _any(currently_due, "full_name_aliases"):
            individual["full_name_aliases"] = []
        update["individual"] = individual

    business_profile = {k: v for k, v in (account.get("business_profile") or {}).items() if v is not None}
    if _any(currently_due, "business_profile.url"):
        business_profile["url"] = TEST_BUSINESS_URL
        update["business_profile"] = business_profile
    if not business_profile.get("mcc"):
        business_profile["mcc"] = DEFAULT_MCC
        update["business_profile"] = business_profile

    if account.get("business_type") == "company" and _any(currently_due, "owners", "company"):
        update["company"] = {"owners_provided": True}

    return update


class SandboxAccountGenerator:
    """Creates one test connected account per configured country."""

    def __init__(
        self,
        client: ConnectClient,
        reporter: Reporter,
        settle_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.reporter = reporter
        self.settle_seconds = settle_seconds
        self.sleep = sleep

    def generate(self, kyc_config: Dict[str, Any], timestamp: Optional[int] = None) -> List[Dict[str, Any]]:
        """Create accounts for every country block; failures are reported and skipped."""
        countries = [key for key in kyc_config if key != "common"]
        if not countries:
            raise SandboxAccountError("No country configurations found in kyc.yml")

        timestamp = timestamp or int(time.time() * 1000)
        common = kyc_config.get("common") or {}
        self.reporter.info(f"Creating test connected accounts for {len(countries)} countries...")

        created = []
        for key in countries:
            country_config = kyc_config[key] or {}
            try:
                created.append(self._create_for_country(common, country_config, timestamp))
            except (stripe.StripeError, KeyError) as e:
                message = stripe_error_message(e) if isinstance(e, stripe.StripeError) else f"missing {e}"
                self.reporter.error(f"Failed to create {country_config.get('country', key)} account: {message}")

        if not created:
            raise SandboxAccountError("No accounts were successfully created")
        return created

    def _create_for_country(self, common: Dict[str, Any], country_config: Dict[str, Any], timestamp: int) -> Dict[str, Any]:
        country = country_config["country"]
        email = f"test.{country.lower()}.{timestamp}@example.com"
        is_express = common.get("type") == "express"

        self.reporter.info(f"Creating {country} account...")
        account = self.client.create_account(build_account_params(common, country_config, email))

        link_url = None
        if is_express:
            try:
                link_url = self.client.create_account_link(account["id"], ONBOARDING_REFRESH_URL, ONBOARDING_RETURN_URL)["url"]
                self.reporter.info(f"  Account Link: {link_url}")
                self.reporter.detail("     (Use this link to complete onboarding and accept ToS)")
            except stripe.StripeError as e:
                self.reporter.warning(f"  Could not create Account Link: {stripe_error_message(e)}")

        account = self.client.retrieve_account(account["id"])
        account = self._fulfil_requirements(account, country, is_express, link_url)

        self.reporter.success(f"{country} account created: {account['id']}")
        return {"country": country, "country_code": country.upper(), "account": account, "email": email}

    def _fulfil_requirements(
        self,
        account: Dict[str, Any],
        country: str,
        is_express: bool,
        link_url: Optional[str],
    ) -> Dict[str, Any]:
        requirements = account.get("requirements") or {}
        currently_due = requirements.get("currently_due") or []
        disabled_reason = requirements.get("disabled_reason")
        relevant_due = [r for r in currently_due if not (is_express and "tos_acceptance" in r)]

        if not relevant_due and not disabled_reason:
            if account.get("charges_enabled"):
                self.reporter.success("  Charges already enabled")
            else:
                self.reporter.warning("  Charges not enabled (verification may be processing)")
            return account

        shown = relevant_due or currently_due
        self.reporter.warning(f"  Requirements pending: {', '.join(shown) if shown else disabled_reason or 'unknown'}")
        if is_express and any("tos_acceptance" in r for r in currently_due):
            self.reporter.detail("     Note: ToS acceptance for Express accounts must be done through Stripe's onboarding")
            if link_url:
                self.reporter.detail("     Complete onboarding using the Account Link URL shown above")

        update = build_requirements_update(account, currently_due, country)
        if not update:
            return account

        try:
            self.client.update_account(account["id"], update)
        except stripe.StripeError as e:
            self.reporter.warning(f"  Could not update account: {stripe_error_message(e)}")
            return account

        self.reporter.info("  Updated account with verification documents and MCC code")
        self.sleep(self.settle_seconds)

        updated = self.client.retrieve_account(account["id"])
        still_due = (updated.get("requirements") or {}).get("currently_due") or []
        if not still_due and updated.get("charges_enabled"):
            self.reporter.success("  Charges enabled after update")
        elif still_due:
            self.reporter.warning(f"  Still pending: {', '.join(still_due)}")
        else:
            self.reporter.warning("  Charges not yet enabled (may require manual review in test mode)")
        return updated

