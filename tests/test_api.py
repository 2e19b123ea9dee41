"""
HTTP tests through the FastAPI TestClient: routing, identity, ETags,
error bodies and the workflow endpoints.
"""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from crm.api.dependencies import parse_bearer_token, parse_etag
from crm.core.config import get_settings
from crm.core.exceptions import UnauthorizedError
from crm.repositories.accounts import AccountRepository

from tests.conftest import MANAGER_ID, OTHER_TENANT_ID, TENANT_ID, USER_ID, bearer


class TestAuthHelpers:
    def test_parse_bearer_token(self) -> None:
        ctx = parse_bearer_token(f"{TENANT_ID}:{USER_ID}:admin@demo.com:Admin, Sales Rep")
        assert ctx.tenant_id == TENANT_ID
        assert ctx.user_id == USER_ID
        assert ctx.user_email == "admin@demo.com"
        assert ctx.roles == ("Admin", "Sales Rep")

    def test_ids_only(self) -> None:
        ctx = parse_bearer_token(f"{TENANT_ID}:{USER_ID}")
        assert ctx.user_email == ""
        assert ctx.roles == ()

    @pytest.mark.parametrize("token", ["", "garbage", f"{TENANT_ID}:not-a-user"])
    def test_malformed_token(self, token: str) -> None:
        with pytest.raises(UnauthorizedError):
            parse_bearer_token(token)

    @pytest.mark.parametrize(
        "header, expected",
        [
            (None, None),
            ("*", None),
            ('"abc"', "abc"),
            ('W/"abc"', "abc"),
            ("abc", "abc"),
        ],
    )
    def test_parse_etag(self, header, expected) -> None:
        assert parse_etag(header) == expected


class TestIdentity:
    def test_development_fallback_identity(self, client) -> None:
        response = client.post("/api/v1/accounts", json={"name": "Dev Co"})
        assert response.status_code == 201
        body = response.json()
        settings = get_settings()
        assert body["tenant_id"] == settings.dev_tenant_id
        assert body["created_by"] == settings.dev_user_id

    def test_non_bearer_scheme(self, client) -> None:
        response = client.get("/api/v1/accounts", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_malformed_bearer(self, client) -> None:
        response = client.get("/api/v1/accounts", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_tenants_are_isolated(self, client, auth_headers) -> None:
        created = client.post("/api/v1/accounts", json={"name": "Private"}, headers=auth_headers).json()

        other = bearer(OTHER_TENANT_ID)
        assert client.get(f"/api/v1/accounts/{created['id']}", headers=other).status_code == 404
        assert client.get("/api/v1/accounts", headers=other).json()["total_size"] == 0


class TestRecordRoutes:
    def test_create_get_update_delete(self, client, auth_headers) -> None:
        response = client.post(
            "/api/v1/accounts",
            json={"name": "Acme", "billing_address": {"city": "Springfield"}},
            headers=auth_headers,
        )
        assert response.status_code == 201
        account = response.json()
        assert response.headers["ETag"] == f'"{account["system_modstamp"]}"'
        assert account["billing_address"]["city"] == "Springfield"

        fetched = client.get(f"/api/v1/accounts/{account['id']}", headers=auth_headers)
        assert fetched.status_code == 200
        assert fetched.headers["ETag"] == response.headers["ETag"]

        updated = client.patch(
            f"/api/v1/accounts/{account['id']}",
            json={"industry": "Retail"},
            headers={**auth_headers, "If-Match": fetched.headers["ETag"]},
        )
        assert updated.status_code == 200
        assert updated.json()["industry"] == "Retail"
        assert updated.json()["name"] == "Acme"

        deleted = client.delete(f"/api/v1/accounts/{account['id']}", headers=auth_headers)
        assert deleted.status_code == 204
        assert client.get(f"/api/v1/accounts/{account['id']}", headers=auth_headers).status_code == 404

    def test_stale_if_match_conflicts(self, client, auth_headers) -> None:
        account = client.post("/api/v1/accounts", json={"name": "Acme"}, headers=auth_headers)
        stale = account.headers["ETag"]
        client.patch(f"/api/v1/accounts/{account.json()['id']}", json={"name": "First"}, headers=auth_headers)

        response = client.patch(
            f"/api/v1/accounts/{account.json()['id']}",
            json={"name": "Second"},
            headers={**auth_headers, "If-Match": stale},
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "conflict"
        assert body["correlation_id"]

    def test_list_with_filters_and_search(self, client, auth_headers) -> None:
        client.post("/api/v1/accounts", json={"name": "Acme", "type": "Customer"}, headers=auth_headers)
        client.post("/api/v1/accounts", json={"name": "Globex", "type": "Partner"}, headers=auth_headers)

        by_type = client.get("/api/v1/accounts", params={"type": "Partner"}, headers=auth_headers).json()
        assert [a["name"] for a in by_type["records"]] == ["Globex"]

        by_search = client.get("/api/v1/accounts", params={"search": "acm"}, headers=auth_headers).json()
        assert [a["name"] for a in by_search["records"]] == ["Acme"]
        assert by_search["next_cursor"] is None

    def test_account_children(self, client, auth_headers) -> None:
        account = client.post("/api/v1/accounts", json={"name": "Acme"}, headers=auth_headers).json()
        client.post(
            "/api/v1/contacts",
            json={"last_name": "Smith", "account_id": account["id"]},
            headers=auth_headers,
        )
        contacts = client.get(f"/api/v1/accounts/{account['id']}/contacts", headers=auth_headers)
        assert contacts.status_code == 200
        assert [c["last_name"] for c in contacts.json()] == ["Smith"]


class TestErrors:
    def test_invalid_body_is_400_with_fields(self, client, auth_headers) -> None:
        response = client.post("/api/v1/accounts", json={"type": "Friend"}, headers=auth_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert {"name", "type"} <= {d["field"] for d in body["details"]}

    def test_unknown_body_field_rejected(self, client, auth_headers) -> None:
        response = client.post("/api/v1/accounts", json={"name": "Acme", "color": "red"}, headers=auth_headers)
        assert response.status_code == 400

    def test_malformed_id_is_400(self, client, auth_headers) -> None:
        response = client.get("/api/v1/accounts/not-a-uuid", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "id"

    def test_constraint_violation_is_409(self, client, auth_headers, monkeypatch) -> None:
        def violate(self, *args, **kwargs):
            raise IntegrityError("INSERT INTO accounts", {}, Exception("duplicate key value"))

        monkeypatch.setattr(AccountRepository, "create", violate)
        response = client.post("/api/v1/accounts", json={"name": "Acme"}, headers=auth_headers)

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "integrity_error"
        assert body["correlation_id"]

    def test_unknown_route_is_json_404(self, client) -> None:
        response = client.get("/api/v1/nothing-here")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_correlation_id_is_echoed(self, client) -> None:
        response = client.get("/api/v1/nothing-here", headers={"X-Correlation-ID": "trace-123"})
        assert response.headers["X-Correlation-ID"] == "trace-123"
        assert response.json()["correlation_id"] == "trace-123"

    def test_security_headers(self, client) -> None:
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


class TestHealth:
    def test_liveness(self, client) -> None:
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["version"]

    def test_readiness(self, client) -> None:
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["database"] == "connected"

    def test_readiness_when_database_is_down(self, client, db, monkeypatch) -> None:
        monkeypatch.setattr(db, "check_connection", lambda: False)
        response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"


class TestWorkflowRoutes:
    def test_lead_conversion(self, client, auth_headers) -> None:
        lead = client.post(
            "/api/v1/leads",
            json={"last_name": "Doe", "company": "Initech"},
            headers=auth_headers,
        ).json()

        response = client.post(
            f"/api/v1/leads/{lead['id']}/convert",
            json={"create_opportunity": True, "opportunity_name": "Initech renewal"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        result = response.json()
        assert result["account_id"] and result["contact_id"] and result["opportunity_id"]

        again = client.post(f"/api/v1/leads/{lead['id']}/convert", json={}, headers=auth_headers)
        assert again.status_code == 400

    def test_opportunity_stage_and_close(self, client, auth_headers) -> None:
        account = client.post("/api/v1/accounts", json={"name": "Acme"}, headers=auth_headers).json()
        opportunity = client.post(
            "/api/v1/opportunities",
            json={"name": "Deal", "account_id": account["id"], "close_date": "2026-12-31"},
            headers=auth_headers,
        ).json()

        staged = client.post(
            f"/api/v1/opportunities/{opportunity['id']}/stage",
            json={"stage_name": "Value Proposition"},
            headers=auth_headers,
        )
        assert staged.status_code == 200
        assert staged.json()["probability"] == 50

        bad = client.post(
            f"/api/v1/opportunities/{opportunity['id']}/stage",
            json={"stage_name": "Daydreaming"},
            headers=auth_headers,
        )
        assert bad.status_code == 400

        closed = client.post(
            f"/api/v1/opportunities/{opportunity['id']}/close",
            json={"is_won": False, "lost_reason": "Price"},
            headers=auth_headers,
        )
        assert closed.json()["stage_name"] == "Closed Lost"

    def test_approval_round_trip(self, client, auth_headers) -> None:
        process = client.post(
            "/api/v1/approvals/processes",
            json={"name": "Discount", "object_name": "Quote", "steps": [{"approvers": [{"id": MANAGER_ID}]}]},
            headers=auth_headers,
        )
        assert process.status_code == 201

        record_id = "77777777-7777-7777-7777-777777777777"
        submitted = client.post(
            "/api/v1/approvals/submit",
            json={
                "process_definition_id": process.json()["id"],
                "target_object_name": "Quote",
                "target_record_id": record_id,
            },
            headers=auth_headers,
        )
        assert submitted.status_code == 201

        manager = bearer(TENANT_ID, MANAGER_ID, "manager@demo.com")
        items = client.get("/api/v1/approvals/work-items", headers=manager).json()
        assert items["total_size"] == 1

        decided = client.post(
            f"/api/v1/approvals/work-items/{items['records'][0]['id']}/decide",
            json={"action": "Approve"},
            headers=manager,
        )
        assert decided.status_code == 200
        assert decided.json()["status"] == "Approved"

        history = client.get(
            f"/api/v1/approvals/instances/{submitted.json()['id']}/history", headers=auth_headers
        ).json()
        assert [h["action"] for h in history] == ["Submit", "Approve"]

    def test_decide_by_wrong_user_is_403(self, client, auth_headers) -> None:
        process = client.post(
            "/api/v1/approvals/processes",
            json={"name": "Discount", "object_name": "Quote", "steps": [{"approvers": [{"id": MANAGER_ID}]}]},
            headers=auth_headers,
        ).json()
        client.post(
            "/api/v1/approvals/submit",
            json={
                "process_definition_id": process["id"],
                "target_object_name": "Quote",
                "target_record_id": "77777777-7777-7777-7777-777777777777",
            },
            headers=auth_headers,
        )
        manager = bearer(TENANT_ID, MANAGER_ID)
        item_id = client.get("/api/v1/approvals/work-items", headers=manager).json()["records"][0]["id"]

        response = client.post(
            f"/api/v1/approvals/work-items/{item_id}/decide", json={"action": "Approve"}, headers=auth_headers
        )
        assert response.status_code == 403

    def test_field_history_settings_and_log(self, client, auth_headers) -> None:
        setting = client.post(
            "/api/v1/field-history/settings",
            json={"object_name": "Account", "field_name": "name"},
            headers=auth_headers,
        )
        assert setting.status_code == 201

        account = client.post("/api/v1/accounts", json={"name": "Before"}, headers=auth_headers).json()
        client.patch(f"/api/v1/accounts/{account['id']}", json={"name": "After"}, headers=auth_headers)

        log = client.get(f"/api/v1/field-history/record/Account/{account['id']}", headers=auth_headers).json()
        assert [(h["old_value"], h["new_value"]) for h in log["records"]] == [("Before", "After")]

        entry = client.get(f"/api/v1/field-history/{log['records'][0]['id']}", headers=auth_headers)
        assert entry.status_code == 200

        removed = client.delete(f"/api/v1/field-history/settings/{setting.json()['id']}", headers=auth_headers)
        assert removed.status_code == 204
