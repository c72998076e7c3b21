"""Tests for the session lifecycle."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest

from expertclaims_api.errors import AuthenticationFailed, SessionExpired
from expertclaims_api.services import session_service
from expertclaims_api.services.session_service import SessionState
from expertclaims_shared.models.sessions import SessionRecord
from expertclaims_shared.time_utils import utc_now
from tests.conftest import NOW, make_supabase, session_row

PATCH_TARGET = "expertclaims_api.services.session_service.get_supabase_client"


def _issue(user_id="user-1", role="employee", now=NOW):
    """Issue a session against a mock and return (issued, stored row)."""
    mock = make_supabase()
    with patch(PATCH_TARGET, return_value=mock):
        issued = session_service.issue_session(user_id, role, now=now)
    row = mock.table("user_sessions").insert.call_args[0][0]
    return issued, row


def _record(**overrides) -> SessionRecord:
    return SessionRecord.from_db_row(session_row(**overrides))


class TestClassify:
    def test_active_before_expiry(self):
        assert session_service.classify(_record(), NOW) is SessionState.ACTIVE

    def test_grace_just_after_expiry(self):
        record = _record(expires_at=(NOW - timedelta(minutes=5)).isoformat())
        assert session_service.classify(record, NOW) is SessionState.GRACE

    def test_expired_after_grace_window(self):
        record = _record(expires_at=(NOW - timedelta(hours=25)).isoformat())
        assert session_service.classify(record, NOW) is SessionState.EXPIRED

    def test_revoked_dominates(self):
        record = _record(revoked_at=(NOW - timedelta(minutes=1)).isoformat())
        assert session_service.classify(record, NOW) is SessionState.REVOKED

    def test_expiry_boundary_is_grace(self):
        record = _record(expires_at=NOW.isoformat())
        assert session_service.classify(record, NOW) is SessionState.GRACE


class TestIssue:
    def test_issue_stores_row_and_signs_token(self):
        issued, row = _issue()
        assert row["user_id"] == "user-1"
        assert row["role"] == "employee"
        assert issued.session_id == row["session_id"]
        assert issued.expires_in == 24 * 3600

        claims = session_service.decode_token(issued.jwt_token, verify_exp=False)
        assert claims["sub"] == "user-1"
        assert claims["role"] == "employee"
        assert claims["sid"] == issued.session_id

    def test_unknown_role_is_refused(self):
        mock = make_supabase()
        with patch(PATCH_TARGET, return_value=mock), pytest.raises(AuthenticationFailed):
            session_service.issue_session("user-1", "superuser", now=NOW)
        mock.table.assert_not_called()


class TestValidate:
    def test_active_session_passes(self):
        issued, row = _issue()
        with patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})):
            record = session_service.validate(issued.jwt_token, issued.session_id, now=NOW)
        assert record.user_id == "user-1"
        assert record.role == "employee"

    def test_header_must_match_token(self):
        issued, row = _issue()
        with (
            patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})),
            pytest.raises(AuthenticationFailed),
        ):
            session_service.validate(issued.jwt_token, "some-other-session", now=NOW)

    def test_grace_session_must_refresh(self):
        issued, row = _issue()
        later = NOW + timedelta(hours=25)
        with (
            patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})),
            pytest.raises(SessionExpired),
        ):
            session_service.validate(issued.jwt_token, now=later)

    def test_admin_sessions_expire_too(self):
        issued, row = _issue(user_id="admin-1", role="admin")
        much_later = NOW + timedelta(days=30)
        with (
            patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})),
            pytest.raises(SessionExpired),
        ):
            session_service.validate(issued.jwt_token, now=much_later)

    def test_revoked_session_fails_authentication(self):
        issued, row = _issue()
        row = {**row, "revoked_at": NOW.isoformat()}
        with (
            patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})),
            pytest.raises(AuthenticationFailed),
        ):
            session_service.validate(issued.jwt_token, now=NOW)

    def test_unknown_role_on_record_fails_closed(self):
        issued, row = _issue()
        row = {**row, "role": "guest"}
        with (
            patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})),
            pytest.raises(AuthenticationFailed),
        ):
            session_service.validate(issued.jwt_token, now=NOW)

    def test_missing_record(self):
        issued, _ = _issue()
        with patch(PATCH_TARGET, return_value=make_supabase()), pytest.raises(AuthenticationFailed):
            session_service.validate(issued.jwt_token, now=NOW)

    def test_garbage_token(self):
        with pytest.raises(AuthenticationFailed):
            session_service.validate("not-a-jwt", now=NOW)


class TestRefresh:
    def test_grace_session_is_extended(self):
        issued, row = _issue()
        later = NOW + timedelta(hours=26)
        mock = make_supabase({"user_sessions": ([row], 1)})
        with patch(PATCH_TARGET, return_value=mock):
            refreshed = session_service.refresh(issued.jwt_token, now=later)

        assert refreshed.session_id == issued.session_id
        assert refreshed.jwt_token != issued.jwt_token
        assert refreshed.expires_in == 24 * 3600
        changes = mock.table("user_sessions").update.call_args[0][0]
        assert changes["expires_at"] == (later + timedelta(hours=24)).isoformat()

    def test_expired_session_cannot_refresh(self):
        issued, row = _issue()
        with (
            patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})),
            pytest.raises(SessionExpired),
        ):
            session_service.refresh(issued.jwt_token, now=NOW + timedelta(hours=49))

    def test_revoked_session_cannot_refresh(self):
        issued, row = _issue()
        row = {**row, "revoked_at": NOW.isoformat()}
        with (
            patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})),
            pytest.raises(AuthenticationFailed),
        ):
            session_service.refresh(issued.jwt_token, now=NOW)


def test_revoke_only_touches_live_sessions():
    mock = make_supabase()
    with patch(PATCH_TARGET, return_value=mock):
        session_service.revoke("sid-1", now=NOW)
    chain = mock.table("user_sessions")
    chain.is_.assert_called_with("revoked_at", "null")
    assert chain.update.call_args[0][0] == {"revoked_at": NOW.isoformat()}


def test_describe_expiry():
    record = _record(expires_at=(NOW + timedelta(minutes=45)).isoformat())
    info = session_service.describe_expiry(record, NOW)
    assert info["state"] == "active"
    assert info["expires_in"] == 45 * 60
    assert info["remaining"] == "45m 0s"
    assert info["expiring_soon"] is True
    assert info["expires_at_formatted"] == "10/03/2025, 10:15:00 UTC"


def test_purge_deletes_expired_and_revoked():
    rows = [
        session_row(session_id="live"),
        session_row(session_id="grace", expires_at=(NOW - timedelta(hours=1)).isoformat()),
        session_row(session_id="old", expires_at=(NOW - timedelta(days=3)).isoformat()),
        session_row(session_id="revoked", revoked_at=NOW.isoformat()),
    ]
    mock = make_supabase({"user_sessions": (rows, 4)})
    with patch(PATCH_TARGET, return_value=mock):
        count = session_service.purge(now=NOW)

    assert count == 2
    mock.table("user_sessions").in_.assert_called_once_with("session_id", ["old", "revoked"])


def test_purge_dry_run_deletes_nothing():
    rows = [session_row(session_id="old", expires_at=(NOW - timedelta(days=3)).isoformat())]
    mock = make_supabase({"user_sessions": (rows, 1)})
    with patch(PATCH_TARGET, return_value=mock):
        assert session_service.purge(now=NOW, dry_run=True) == 1
    mock.table("user_sessions").delete.assert_not_called()


# ---------------------------------------------------------------------------
# Refusals over HTTP
# ---------------------------------------------------------------------------


def _bearer(issued):
    return {"Authorization": f"Bearer {issued.jwt_token}", "X-Session-ID": issued.session_id}


class TestRefusalsOverHttp:
    def test_revoked_session_cannot_read_profile(self, client):
        issued, row = _issue(now=utc_now())
        row = {**row, "revoked_at": utc_now().isoformat()}
        with patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})):
            response = client.get("/v1/auth/me", headers=_bearer(issued))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"

    def test_grace_session_cannot_read_profile(self, client):
        issued, row = _issue(now=utc_now() - timedelta(hours=25))
        with patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})):
            response = client.get("/v1/auth/me", headers=_bearer(issued))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "SESSION_EXPIRED"

    def test_grace_session_refreshes(self, client):
        issued, row = _issue(now=utc_now() - timedelta(hours=25))
        with patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})):
            response = client.post("/v1/auth/refresh", headers=_bearer(issued))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["session_id"] == issued.session_id
        assert data["jwt_token"] != issued.jwt_token

    def test_expired_session_cannot_refresh(self, client):
        issued, row = _issue(now=utc_now() - timedelta(hours=49))
        with patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})):
            response = client.post("/v1/auth/refresh", headers=_bearer(issued))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "SESSION_EXPIRED"

    def test_revoked_session_cannot_refresh(self, client):
        issued, row = _issue(now=utc_now())
        row = {**row, "revoked_at": utc_now().isoformat()}
        with patch(PATCH_TARGET, return_value=make_supabase({"user_sessions": ([row], 1)})):
            response = client.post("/v1/auth/refresh", headers=_bearer(issued))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"
