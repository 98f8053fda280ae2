"""
Tests for KYC-complete test account generation.
"""
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import stripe

from stripe_connect_cli.operations.sandbox_accounts import (
    DEFAULT_MCC,
    TEST_BUSINESS_URL,
    TEST_DOCUMENT_TOKEN,
    SandboxAccountError,
    SandboxAccountGenerator,
    build_account_params,
    build_requirements_update,
    load_kyc_config,
)
from stripe_connect_cli.reporting import Reporter


COMMON = {
    "type": "express",
    "capabilities": {"card_payments": {"requested": True}},
    "tos_acceptance": {"date": 1700000000, "ip": "127.0.0.1"},
}

US = {
    "country": "US",
    "business_type": "individual",
    "business_profile": {"name": "Clinic US"},
    "individual": {"first_name": "Jenny", "last_name": "Rosen", "address": {"line1": "x", "state": ""}},
}


@pytest.mark.unit
class TestKycConfig:
    """Loading kyc.yml."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SandboxAccountError, match="KYC config file not found"):
            load_kyc_config(tmp_path / "kyc.yml")

    def test_loads_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "kyc.yml"
        path.write_text("common:\n  type: express\nus:\n  country: US\n", encoding="utf-8")
        assert load_kyc_config(path) == {"common": {"type": "express"}, "us": {"country": "US"}}


@pytest.mark.unit
class TestAccountParams:
    """Account creation and requirement update parameters."""

    def test_account_params(self) -> None:
        params = build_account_params(COMMON, US, "test.us.1@example.com")
        assert "tos_acceptance" not in params
        assert params["country"] == "US"
        assert params["email"] == "test.us.1@example.com"
        assert params["business_profile"] == {"name": "Clinic US", "support_email": "test.us.1@example.com"}
        assert params["individual"]["email"] == "test.us.1@example.com"
        assert "tos_acceptance" in COMMON

    def test_verification_update(self) -> None:
        account = {"individual": {"first_name": "Jenny", "address": {"state": ""}}, "business_profile": {}}
        due = ["individual.verification.document", "individual.address.state", "business_profile.url"]

        update = build_requirements_update(account, due, "IE")

        assert update["individual"]["verification"] == {"document": {"front": TEST_DOCUMENT_TOKEN}}
        assert update["individual"]["address"]["state"] == "Dublin"
        assert update["business_profile"] == {"url": TEST_BUSINESS_URL, "mcc": DEFAULT_MCC}
        assert account["individual"]["address"]["state"] == ""

    def test_mcc_kept_when_present(self) -> None:
        assert build_requirements_update({"business_profile": {"mcc": "0742"}}, [], "US") == {}

    def test_company_owners(self) -> None:
        account = {"business_type": "company", "business_profile": {"mcc": "0742"}}
        assert build_requirements_update(account, ["company.owners_provided"], "US") == {
            "company": {"owners_provided": True}
        }


@pytest.mark.unit
class TestSandboxAccountGenerator:
    """One account per country; failures are reported and skipped."""

    def make_client(self) -> MagicMock:
        client = MagicMock()
        client.create_account.return_value = {"id": "acct_us"}
        client.create_account_link.return_value = {"url": "https://connect.stripe.com/setup/x"}
        client.retrieve_account.return_value = {
            "id": "acct_us",
            "charges_enabled": True,
            "business_profile": {"mcc": "0742"},
            "requirements": {"currently_due": []},
        }
        return client

    def test_generates_accounts(self, reporter: Reporter) -> None:
        client = self.make_client()
        generator = SandboxAccountGenerator(client, reporter, sleep=lambda seconds: None)

        created = generator.generate({"common": COMMON, "us": US}, timestamp=42)

        assert len(created) == 1
        assert created[0]["country_code"] == "US"
        assert created[0]["email"] == "test.us.42@example.com"
        client.create_account_link.assert_called_once()
        client.update_account.assert_not_called()

    def test_outstanding_requirements_are_updated(self, reporter: Reporter) -> None:
        client = self.make_client()
        pending = {
            "id": "acct_us",
            "business_profile": {},
            "requirements": {"currently_due": ["business_profile.url"]},
        }
        client.retrieve_account.side_effect = [pending, {**pending, "requirements": {"currently_due": []}}]
        sleep = MagicMock()

        SandboxAccountGenerator(client, reporter, sleep=sleep).generate({"common": COMMON, "us": US}, timestamp=1)

        client.update_account.assert_called_once_with(
            "acct_us", {"business_profile": {"url": TEST_BUSINESS_URL, "mcc": DEFAULT_MCC}}
        )
        sleep.assert_called_once_with(1.0)

    def test_all_countries_failing(self, reporter: Reporter) -> None:
        client = self.make_client()
        client.create_account.side_effect = stripe.InvalidRequestError("Invalid country", "country")
        generator = SandboxAccountGenerator(client, reporter, sleep=lambda seconds: None)

        with pytest.raises(SandboxAccountError, match="No accounts were successfully created"):
            generator.generate({"common": COMMON, "us": US})

    def test_no_countries(self, reporter: Reporter) -> None:
        with pytest.raises(SandboxAccountError, match="No country configurations"):
            SandboxAccountGenerator(MagicMock(), reporter).generate({"common": COMMON})
