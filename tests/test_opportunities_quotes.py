"""Tests for opportunity stages and primary quotes."""

from __future__ import annotations

import pytest

from crm.core.exceptions import ConflictError, ValidationError
from crm.repositories.opportunities import STAGE_CONFIG, stage_values

from tests.conftest import TENANT_ID, USER_ID


class TestStageValues:
    def test_known_stage(self) -> None:
        values = stage_values("Negotiation/Review")
        assert values == {
            "stage_name": "Negotiation/Review",
            "probability": 90,
            "forecast_category": "Commit",
            "is_closed": False,
            "is_won": False,
        }

    def test_unknown_stage(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            stage_values("Daydreaming")
        assert exc_info.value.field == "stage_name"

    def test_closed_stages(self) -> None:
        assert STAGE_CONFIG["Closed Won"]["is_won"] is True
        assert STAGE_CONFIG["Closed Lost"]["probability"] == 0


class TestOpportunity:
    def test_create_defaults_to_prospecting(self, make_opportunity) -> None:
        opportunity = make_opportunity()
        assert opportunity["stage_name"] == "Prospecting"
        assert opportunity["probability"] == 10
        assert opportunity["forecast_category"] == "Pipeline"
        assert opportunity["is_closed"] is False

    def test_explicit_probability_wins(self, make_opportunity) -> None:
        opportunity = make_opportunity(stage_name="Qualification", probability=35)
        assert opportunity["probability"] == 35
        assert opportunity["forecast_category"] == "Pipeline"

    def test_change_stage(self, repos, make_opportunity) -> None:
        opportunity = make_opportunity()
        moved = repos.opportunities.change_stage(TENANT_ID, USER_ID, opportunity["id"], "Proposal/Price Quote")

        assert moved["stage_name"] == "Proposal/Price Quote"
        assert moved["probability"] == 75
        assert moved["forecast_category"] == "Best Case"

    def test_change_stage_with_stale_etag(self, repos, make_opportunity) -> None:
        opportunity = make_opportunity()
        repos.opportunities.update(TENANT_ID, USER_ID, opportunity["id"], {"amount": 5000})
        with pytest.raises(ConflictError):
            repos.opportunities.change_stage(
                TENANT_ID, USER_ID, opportunity["id"], "Qualification", etag=opportunity["system_modstamp"]
            )

    def test_update_stage_through_generic_update(self, repos, make_opportunity) -> None:
        opportunity = make_opportunity()
        updated = repos.opportunities.update(TENANT_ID, USER_ID, opportunity["id"], {"stage_name": "Closed Won"})
        assert updated["is_closed"] is True
        assert updated["is_won"] is True
        assert updated["probability"] == 100

    def test_close_won_drops_lost_reason(self, repos, make_opportunity) -> None:
        opportunity = make_opportunity()
        closed = repos.opportunities.close(TENANT_ID, USER_ID, opportunity["id"], True, "ignored")
        assert closed["stage_name"] == "Closed Won"
        assert closed["lost_reason"] is None

    def test_close_lost(self, repos, make_opportunity) -> None:
        opportunity = make_opportunity()
        closed = repos.opportunities.close(TENANT_ID, USER_ID, opportunity["id"], False, "Budget")
        assert closed["stage_name"] == "Closed Lost"
        assert closed["is_won"] is False
        assert closed["is_closed"] is True
        assert closed["lost_reason"] == "Budget"
        assert closed["forecast_category"] == "Closed"

    def test_find_by_account(self, repos, make_account, make_opportunity) -> None:
        account = make_account()
        make_opportunity("One", account_id=account["id"])
        make_opportunity("Two", account_id=account["id"])
        make_opportunity("Elsewhere")

        names = {o["name"] for o in repos.opportunities.find_by_account_id(TENANT_ID, account["id"])}
        assert names == {"One", "Two"}


class TestQuotes:
    def _quote(self, repos, opportunity_id: str, name: str) -> dict:
        return repos.quotes.create(TENANT_ID, USER_ID, {"opportunity_id": opportunity_id, "name": name})

    def test_defaults(self, repos, make_opportunity) -> None:
        quote = self._quote(repos, make_opportunity()["id"], "Q-1")
        assert quote["status"] == "Draft"
        assert quote["is_primary"] is False

    def test_change_status(self, repos, make_opportunity) -> None:
        quote = self._quote(repos, make_opportunity()["id"], "Q-1")
        updated = repos.quotes.change_status(TENANT_ID, USER_ID, quote["id"], "Presented")
        assert updated["status"] == "Presented"

        with pytest.raises(ValidationError):
            repos.quotes.change_status(TENANT_ID, USER_ID, quote["id"], "Lost")

    def test_only_one_primary(self, repos, make_opportunity) -> None:
        opportunity = make_opportunity()
        first = self._quote(repos, opportunity["id"], "Q-1")
        second = self._quote(repos, opportunity["id"], "Q-2")

        repos.quotes.set_primary(TENANT_ID, USER_ID, first["id"])
        repos.quotes.set_primary(TENANT_ID, USER_ID, second["id"])

        quotes = repos.quotes.find_by_opportunity_id(TENANT_ID, opportunity["id"])
        assert [(q["name"], q["is_primary"]) for q in quotes] == [("Q-2", True), ("Q-1", False)]
        assert repos.opportunities.find_by_id(TENANT_ID, opportunity["id"])["primary_quote_id"] == second["id"]
