"""Tests for the command-line interface."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from expertclaims_api.cli import main
from expertclaims_shared.config import settings
from expertclaims_shared.security import verify_password
from expertclaims_shared.time_utils import utc_now
from tests.conftest import make_supabase, session_row


@pytest.fixture()
def runner():
    return CliRunner()


def _database(mock):
    return (
        patch("expertclaims_api.services.session_service.get_supabase_client", return_value=mock),
        patch("expertclaims_api.services.otp_service.get_supabase_client", return_value=mock),
    )


def test_hash_password(runner, monkeypatch):
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    result = runner.invoke(main, ["hash-password", "--password", "Secret123"])
    assert result.exit_code == 0
    assert verify_password("Secret123", result.output.strip())


def test_hash_password_enforces_policy(runner):
    result = runner.invoke(main, ["hash-password", "--password", "weak"])
    assert result.exit_code != 0
    assert "must be at least 8 characters" in result.output


def test_purge_sessions_dry_run(runner):
    now = utc_now()
    rows = [
        session_row(session_id="old", expires_at=(now - timedelta(days=3)).isoformat()),
        session_row(session_id="live", expires_at=(now + timedelta(hours=3)).isoformat()),
    ]
    mock = make_supabase({"user_sessions": (rows, 2), "login_challenges": ([{"id": "c1"}], 4)})
    sessions_patch, otp_patch = _database(mock)
    with sessions_patch, otp_patch:
        result = runner.invoke(main, ["purge-sessions", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "Would delete 1 session(s) and 4 login challenge(s)." in result.output
    mock.table("user_sessions").delete.assert_not_called()
    mock.table("login_challenges").delete.assert_not_called()


def test_purge_sessions(runner):
    mock = make_supabase({"login_challenges": ([], 0)})
    sessions_patch, otp_patch = _database(mock)
    with sessions_patch, otp_patch:
        result = runner.invoke(main, ["purge-sessions"])
    assert result.exit_code == 0, result.output
    assert "Deleted 0 session(s) and 0 login challenge(s)." in result.output


def test_sessions_lists_state(runner):
    now = utc_now()
    rows = [
        session_row(user_id="user-7", session_id="sid-live-0001", expires_at=(now + timedelta(hours=2)).isoformat()),
        session_row(user_id="user-7", session_id="sid-gone-0002", revoked_at=now.isoformat()),
    ]
    sessions_patch, otp_patch = _database(make_supabase({"user_sessions": (rows, 2)}))
    with sessions_patch, otp_patch:
        result = runner.invoke(main, ["sessions", "user-7"])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert "sid-live-000" in lines[0] and "active" in lines[0]
    assert "revoked" in lines[1]


def test_sessions_none(runner):
    sessions_patch, otp_patch = _database(make_supabase())
    with sessions_patch, otp_patch:
        result = runner.invoke(main, ["sessions", "user-7"])
    assert "No sessions found." in result.output
