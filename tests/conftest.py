"""Shared pytest fixtures for the test suite.

Fixture overview
----------------
engine       : in-memory SQLite engine (StaticPool) with the full schema
db           : DatabaseConnection over that engine
repos        : Repositories bundle bound to db
client       : FastAPI TestClient whose database dependency is db
auth_headers : bearer token for the demo tenant's admin user
make_account / make_opportunity: small record builders
"""

from __future__ import annotations

import os

# Settings are read once; fix the environment before anything imports them.
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from crm.api.dependencies import get_db  # noqa: E402
from crm.api.main import app  # noqa: E402
from crm.database.connection import DatabaseConnection  # noqa: E402
from crm.database.tables import metadata  # noqa: E402
from crm.repositories.registry import Repositories  # noqa: E402

TENANT_ID = "11111111-1111-1111-1111-111111111111"
OTHER_TENANT_ID = "99999999-9999-9999-9999-999999999999"
USER_ID = "22222222-2222-2222-2222-222222222222"
MANAGER_ID = "33333333-3333-3333-3333-333333333333"
REP_ID = "44444444-4444-4444-4444-444444444444"


def bearer(tenant_id: str = TENANT_ID, user_id: str = USER_ID, email: str = "admin@demo.com") -> dict:
    return {"Authorization": f"Bearer {tenant_id}:{user_id}:{email}:Admin"}


# ── Database ─────────────────────────────────────────────────────────────────


@pytest.fixture
def engine():
    """Fresh in-memory database per test; StaticPool keeps one shared connection."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> DatabaseConnection:
    return DatabaseConnection(engine=engine)


@pytest.fixture
def repos(db: DatabaseConnection) -> Repositories:
    return Repositories(db)


# ── HTTP ─────────────────────────────────────────────────────────────────────


@pytest.fixture
def client(db: DatabaseConnection):
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return bearer()


# ── Builders ─────────────────────────────────────────────────────────────────


@pytest.fixture
def make_account(repos: Repositories):
    def _make(name: str = "Acme Corporation", tenant_id: str = TENANT_ID, **fields) -> dict:
        return repos.accounts.create(tenant_id, USER_ID, {"name": name, **fields})

    return _make


@pytest.fixture
def make_opportunity(repos: Repositories, make_account):
    def _make(name: str = "Acme - Platform", account_id: str | None = None, **fields) -> dict:
        account_id = account_id or make_account()["id"]
        data = {"name": name, "account_id": account_id, "close_date": date(2026, 12, 31), **fields}
        return repos.opportunities.create(TENANT_ID, USER_ID, data)

    return _make
