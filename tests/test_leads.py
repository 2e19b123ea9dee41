"""Tests for lead conversion."""

from __future__ import annotations

import pytest

from crm.core.exceptions import NotFoundError, ValidationError
from crm.repositories.leads import ConvertOptions

from tests.conftest import REP_ID, TENANT_ID, USER_ID


@pytest.fixture
def lead(repos) -> dict:
    return repos.leads.create(
        TENANT_ID,
        USER_ID,
        {
            "first_name": "Jane",
            "last_name": "Doe",
            "company": "Initech",
            "email": "jane@initech.example",
            "phone": "555-0199",
            "title": "CTO",
            "industry": "Software",
            "lead_source": "Web",
            "owner_id": REP_ID,
            "address": {"city": "Austin", "state": "TX"},
        },
    )


class TestLeadRecords:
    def test_defaults(self, lead) -> None:
        assert lead["status"] == "New"
        assert lead["is_converted"] is False
        assert lead["address"]["city"] == "Austin"

    def test_invalid_rating(self, repos) -> None:
        with pytest.raises(ValidationError):
            repos.leads.create(TENANT_ID, USER_ID, {"last_name": "Doe", "company": "X", "rating": "Lukewarm"})


class TestConvert:
    def test_creates_account_and_contact(self, repos, lead) -> None:
        result = repos.leads.convert(TENANT_ID, USER_ID, lead["id"])

        assert result["opportunity_id"] is None
        account = repos.accounts.find_by_id(TENANT_ID, result["account_id"])
        contact = repos.contacts.find_by_id(TENANT_ID, result["contact_id"])

        assert account["name"] == "Initech"
        assert account["type"] == "Prospect"
        assert account["owner_id"] == REP_ID
        assert account["billing_address"]["city"] == "Austin"
        assert contact["account_id"] == account["id"]
        assert contact["last_name"] == "Doe"
        assert contact["is_primary"] is True
        assert contact["mailing_address"]["state"] == "TX"

        converted = repos.leads.find_by_id(TENANT_ID, lead["id"])
        assert converted["is_converted"] is True
        assert converted["status"] == "Qualified"
        assert converted["converted_account_id"] == account["id"]
        assert converted["converted_contact_id"] == contact["id"]
        assert converted["converted_at"] is not None

    def test_with_opportunity(self, repos, lead) -> None:
        options = ConvertOptions(create_opportunity=True)
        result = repos.leads.convert(TENANT_ID, USER_ID, lead["id"], options)

        opportunity = repos.opportunities.find_by_id(TENANT_ID, result["opportunity_id"])
        assert opportunity["name"] == "Initech - New Opportunity"
        assert opportunity["stage_name"] == "Prospecting"
        assert opportunity["probability"] == 10
        assert opportunity["account_id"] == result["account_id"]
        assert opportunity["lead_source"] == "Web"

    def test_existing_account(self, repos, lead, make_account) -> None:
        account = make_account("Initech Holdings")
        options = ConvertOptions(existing_account_id=account["id"])
        result = repos.leads.convert(TENANT_ID, USER_ID, lead["id"], options)

        assert result["account_id"] == account["id"]
        assert repos.accounts.list(TENANT_ID)["total_size"] == 1

    def test_without_account(self, repos, lead) -> None:
        result = repos.leads.convert(TENANT_ID, USER_ID, lead["id"], ConvertOptions(create_account=False))

        assert result["account_id"] is None
        assert repos.contacts.find_by_id(TENANT_ID, result["contact_id"])["account_id"] is None

    def test_missing_existing_account(self, repos, lead) -> None:
        options = ConvertOptions(existing_account_id="00000000-0000-0000-0000-0000000000aa")
        with pytest.raises(NotFoundError):
            repos.leads.convert(TENANT_ID, USER_ID, lead["id"], options)

        assert repos.leads.find_by_id(TENANT_ID, lead["id"])["is_converted"] is False
        assert repos.contacts.list(TENANT_ID)["total_size"] == 0

    def test_already_converted(self, repos, lead) -> None:
        repos.leads.convert(TENANT_ID, USER_ID, lead["id"])
        with pytest.raises(ValidationError):
            repos.leads.convert(TENANT_ID, USER_ID, lead["id"])

    def test_converted_lead_is_read_only(self, repos, lead) -> None:
        repos.leads.convert(TENANT_ID, USER_ID, lead["id"])
        with pytest.raises(ValidationError):
            repos.leads.update(TENANT_ID, USER_ID, lead["id"], {"status": "Working"})

    def test_missing_lead(self, repos) -> None:
        with pytest.raises(NotFoundError):
            repos.leads.convert(TENANT_ID, USER_ID, "00000000-0000-0000-0000-0000000000bb")

    def test_failure_writes_nothing(self, repos, lead, monkeypatch) -> None:
        def fail(*args, **kwargs):
            raise RuntimeError("insert failed")

        monkeypatch.setattr(repos.leads.opportunities, "_insert", fail)

        with pytest.raises(RuntimeError):
            repos.leads.convert(TENANT_ID, USER_ID, lead["id"], ConvertOptions(create_opportunity=True))

        assert repos.accounts.list(TENANT_ID)["total_size"] == 0
        assert repos.contacts.list(TENANT_ID)["total_size"] == 0
        assert repos.leads.find_by_id(TENANT_ID, lead["id"])["is_converted"] is False
