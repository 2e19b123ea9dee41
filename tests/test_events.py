"""Tests for calendar events."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from crm.core.exceptions import ValidationError
from crm.repositories.events import EventListParams

from tests.conftest import REP_ID, TENANT_ID, USER_ID

BASE = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_event(repos):
    def _make(subject: str, day: int = 0, **fields) -> dict:
        start = BASE + timedelta(days=day)
        data = {
            "subject": subject,
            "start_date_time": start,
            "end_date_time": start + timedelta(hours=1),
            **fields,
        }
        return repos.events.create(TENANT_ID, USER_ID, data)

    return _make


class TestValidation:
    def test_missing_fields_are_listed(self, repos) -> None:
        with pytest.raises(ValidationError) as exc_info:
            repos.events.create(TENANT_ID, USER_ID, {"subject": "Call"})
        fields = {e["field"] for e in exc_info.value.details}
        assert fields == {"start_date_time", "end_date_time"}

    def test_end_before_start(self, repos) -> None:
        with pytest.raises(ValidationError):
            repos.events.create(
                TENANT_ID,
                USER_ID,
                {"subject": "Backwards", "start_date_time": BASE, "end_date_time": BASE - timedelta(minutes=5)},
            )

    def test_invalid_link_type(self, make_event) -> None:
        with pytest.raises(ValidationError):
            make_event("Call", who_type="Account")

    def test_update_checks_window_against_stored_start(self, repos, make_event) -> None:
        event = make_event("Call")
        with pytest.raises(ValidationError):
            repos.events.update(TENANT_ID, USER_ID, event["id"], {"end_date_time": BASE - timedelta(hours=1)})


class TestListing:
    def test_sorted_by_start_with_offset(self, repos, make_event) -> None:
        make_event("Third", day=2)
        make_event("First", day=0)
        make_event("Second", day=1)

        page = repos.events.list_events(TENANT_ID, EventListParams(limit=2))
        assert [e["subject"] for e in page["records"]] == ["First", "Second"]
        assert page["total_size"] == 3

        rest = repos.events.list_events(TENANT_ID, EventListParams(limit=2, offset=2))
        assert [e["subject"] for e in rest["records"]] == ["Third"]

    def test_descending_sort(self, repos, make_event) -> None:
        make_event("Early", day=0)
        make_event("Late", day=5)

        page = repos.events.list_events(TENANT_ID, EventListParams(sort_order="desc"))
        assert [e["subject"] for e in page["records"]] == ["Late", "Early"]

    def test_date_window_and_owner(self, repos, make_event) -> None:
        make_event("Mine", day=1, owner_id=REP_ID)
        make_event("Also mine, too late", day=10, owner_id=REP_ID)
        make_event("Someone else", day=1)

        params = EventListParams(owner_id=REP_ID, start_from=BASE, start_to=BASE + timedelta(days=3))
        page = repos.events.list_events(TENANT_ID, params)
        assert [e["subject"] for e in page["records"]] == ["Mine"]
        assert page["total_size"] == 1

    def test_related_record(self, repos, make_event, make_account) -> None:
        account = make_account()
        make_event("Kickoff", day=0, what_type="Account", what_id=account["id"])
        make_event("Review", day=7, what_type="Account", what_id=account["id"])
        make_event("Unrelated", day=3)

        events = repos.events.list_by_related_record(TENANT_ID, "what", "Account", account["id"])
        assert [e["subject"] for e in events] == ["Review", "Kickoff"]

    def test_related_record_bad_relation(self, repos) -> None:
        with pytest.raises(ValidationError):
            repos.events.list_by_related_record(TENANT_ID, "why", "Account", "00000000-0000-0000-0000-000000000001")
