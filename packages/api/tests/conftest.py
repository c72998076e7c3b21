"""Shared test fixtures for expertclaims-api."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

CHAIN_METHODS = (
    "select", "insert", "update", "upsert", "delete",
    "eq", "neq", "gt", "gte", "lt", "lte", "ilike", "is_", "in_", "or_",
    "order", "limit", "range",
)

NOW = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)


def _result(data=None, count=None):
    data = data if data is not None else []
    return MagicMock(data=data, count=count if count is not None else len(data) if isinstance(data, list) else None)


def make_chain(data=None, count=None):
    """Create a chainable mock that returns given data on execute().

    ``data`` may also be a list of (data, count) tuples, returned by
    successive execute() calls.
    """
    chain = MagicMock()
    if isinstance(data, list) and data and isinstance(data[0], tuple):
        chain.execute.side_effect = [_result(d, c) for d, c in data]
    else:
        chain.execute.return_value = _result(data, count)
    for method in CHAIN_METHODS:
        getattr(chain, method).return_value = chain
    return chain


def make_supabase(table_data=None, rpc_data=None):
    """Create a mock Supabase client.

    table_data: optional dict mapping table name -> (data, count), or
    table name -> list of (data, count) for successive queries.
    rpc_data: optional dict mapping function name -> returned data.
    Each table returns the same chain on every call so tests can inspect
    what was inserted or updated via ``client.table(name).insert.call_args``.
    """
    client = MagicMock()
    td = table_data or {}
    chains: dict[str, MagicMock] = {}

    def _table(name):
        if name not in chains:
            spec = td.get(name, ([], 0))
            chains[name] = make_chain(spec) if isinstance(spec, list) else make_chain(*spec)
        return chains[name]

    def _rpc(name, params=None):
        return make_chain((rpc_data or {}).get(name))

    client.table.side_effect = _table
    client.rpc.side_effect = _rpc
    return client


def session_row(user_id="user-1", role="employee", **overrides):
    row = {
        "session_id": "sid-" + uuid4().hex[:8],
        "user_id": user_id,
        "role": role,
        "issued_at": (NOW - timedelta(hours=1)).isoformat(),
        "expires_at": (NOW + timedelta(hours=23)).isoformat(),
        "refreshed_at": None,
        "revoked_at": None,
    }
    row.update(overrides)
    return row


@pytest.fixture(autouse=True)
def _clear_caches():
    """Clear all in-memory caches between tests."""
    from expertclaims_api.utils.cache import directory_cache, lookup_cache
    from expertclaims_shared.db import reset_supabase_clients
    yield
    for cache in (lookup_cache, directory_cache):
        cache.clear()
    reset_supabase_clients()


@pytest.fixture()
def _supabase_patch():
    """Patch get_supabase_client with an empty database for every service."""
    mock = make_supabase()
    with patch("expertclaims_shared.db.get_supabase_client", return_value=mock):
        yield mock


@pytest.fixture()
def app(_supabase_patch):
    """Create test FastAPI app with mocked Supabase."""
    from expertclaims_api.app import create_app
    return create_app()


@pytest.fixture()
def client(app):
    """HTTP test client."""
    return TestClient(app)


@pytest.fixture()
def login_as(app):
    """Authenticate requests as a user with the given role, bypassing session lookup."""
    from expertclaims_api.middleware.auth import AuthUser, get_current_user

    def _login(role: str, user_id: str | None = None) -> "AuthUser":
        user = AuthUser(user_id=user_id or f"{role}-1", role=role, session_id="sid-test")
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    yield _login
    app.dependency_overrides.clear()


@pytest.fixture()
def sample_case():
    return {
        "id": str(uuid4()),
        "task_id": "ECSI-25-080",
        "title": "Motor claim - rear collision",
        "current_status": "new",
        "ticket_stage": "analysis",
        "priority": "high",
        "assigned_to": "employee-1",
        "customer_id": "customer-1",
        "referring_partner_id": None,
        "created_by": "admin-1",
        "due_date": "2025-04-01",
        "deleted_flag": False,
    }


@pytest.fixture()
def sample_profile():
    from expertclaims_shared.security import hash_password
    return {
        "id": str(uuid4()),
        "email": "asha@example.com",
        "full_name": "Asha Rao",
        "role": "employee",
        "phone": "+91 98765 43210",
        "password_hash": hash_password("Secret123", rounds=4),
        "is_active": True,
        "deleted_flag": False,
        "details": {},
    }
