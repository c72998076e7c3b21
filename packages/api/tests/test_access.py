"""Tests for authentication headers, role checks and page access rules."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from expertclaims_api.services import access_service, session_service
from tests.conftest import make_supabase


@pytest.mark.parametrize(
    "path, role, allowed, redirect",
    [
        ("/admin-dashboard", "admin", True, None),
        ("/admin-dashboard", "employee", False, "/unauthorized"),
        ("/admin-dashboard", None, False, "/login"),
        ("/admin-backlog-detail/42", "admin", True, None),
        ("/employee-backlog-edit/ECSI-25-080", "hr", True, None),
        ("/partner-claim/abc", "customer", False, "/unauthorized"),
        ("/customer-claim/abc?tab=docs", "customer", True, None),
        ("/task/17/", "employee", True, None),
        ("/task/17", "partner", False, "/unauthorized"),
        ("/login", None, True, None),
        ("/", None, True, None),
        ("/no-such-page", None, True, None),
    ],
)
def test_check_page_access(path, role, allowed, redirect):
    decision = access_service.check_page_access(path, role)
    assert decision["allowed"] is allowed
    assert decision["redirect"] == redirect


def test_page_access_reports_pattern_and_roles():
    decision = access_service.check_page_access("/edit-task/99", "admin")
    assert decision["pattern"] == "/edit-task/:taskId"
    assert decision["allowed_roles"] == ["employee", "hr", "admin"]


def test_dashboard_for():
    assert access_service.dashboard_for("partner") == "/partner-dashboard"
    assert access_service.dashboard_for("hr") == "/employee-dashboard"
    assert access_service.dashboard_for(None) == "/unauthorized"
    assert access_service.dashboard_for("guest") == "/unauthorized"


def test_access_endpoint_signed_out(client):
    response = client.get("/v1/auth/access", params={"path": "/leave-management"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["allowed"] is False
    assert data["redirect"] == "/login"


def test_access_endpoint_wrong_role(client, login_as):
    login_as("customer")
    response = client.get("/v1/auth/access", params={"path": "/admin-dashboard"})
    data = response.json()["data"]
    assert data["redirect"] == "/unauthorized"
    assert data["dashboard"] == "/customer-portal"


def test_protected_endpoint_requires_authentication(client):
    response = client.get("/v1/users")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_protected_endpoint_checks_role(client, login_as):
    login_as("employee")
    response = client.get("/v1/users")
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PERMISSION_DENIED"


def test_invalid_bearer_token(client):
    response = client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def _issue(role="employee"):
    mock = make_supabase()
    with patch("expertclaims_api.services.session_service.get_supabase_client", return_value=mock):
        issued = session_service.issue_session("user-9", role)
    return issued, mock.table("user_sessions").insert.call_args[0][0]


def test_bearer_and_session_headers(client):
    issued, row = _issue()
    mock = make_supabase({
        "user_sessions": ([row], 1),
        "profiles": ([{"id": "user-9", "email": "e@example.com", "role": "employee", "password_hash": "x"}], 1),
    })
    with (
        patch("expertclaims_api.services.session_service.get_supabase_client", return_value=mock),
        patch("expertclaims_api.services.user_service.get_supabase_client", return_value=mock),
    ):
        response = client.get(
            "/v1/auth/me",
            headers={
                "Authorization": f"Bearer {issued.jwt_token}",
                "X-Session-ID": issued.session_id,
            },
        )
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "e@example.com"
    assert "password_hash" not in response.json()["data"]


def test_legacy_headers_accepted(client):
    issued, row = _issue(role="partner")
    mock = make_supabase({"user_sessions": ([row], 1)})
    with patch("expertclaims_api.services.session_service.get_supabase_client", return_value=mock):
        response = client.get(
            "/v1/auth/session",
            headers={"jwt_token": issued.jwt_token, "session_id": issued.session_id},
        )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user_role"] == "partner"
    assert data["state"] == "active"
    assert data["expiring_soon"] is False


def test_mismatched_session_header(client):
    issued, row = _issue()
    mock = make_supabase({"user_sessions": ([row], 1)})
    with patch("expertclaims_api.services.session_service.get_supabase_client", return_value=mock):
        response = client.get(
            "/v1/auth/session",
            headers={"Authorization": f"Bearer {issued.jwt_token}", "X-Session-ID": "other"},
        )
    assert response.status_code == 401


def test_logout_revokes_session(client):
    issued, row = _issue()
    mock = make_supabase({"user_sessions": ([row], 1)})
    with patch("expertclaims_api.services.session_service.get_supabase_client", return_value=mock):
        response = client.post(
            "/v1/auth/logout",
            headers={"Authorization": f"Bearer {issued.jwt_token}"},
        )
    assert response.status_code == 200
    mock.table("user_sessions").update.assert_called_once()
    assert "revoked_at" in mock.table("user_sessions").update.call_args[0][0]


def test_refresh_endpoint(client):
    issued, row = _issue()
    mock = make_supabase({"user_sessions": ([row], 1)})
    with patch("expertclaims_api.services.session_service.get_supabase_client", return_value=mock):
        response = client.post("/v1/auth/refresh", json={"jwt_token": issued.jwt_token})
    assert response.status_code == 200
    assert response.json()["data"]["session_id"] == issued.session_id


def test_refresh_without_token(client):
    response = client.post("/v1/auth/refresh")
    assert response.status_code == 401
