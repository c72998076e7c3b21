"""Tests for the login handshake (password and OTP roles)."""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from uuid import uuid4

import httpx
import pytest
import respx

from expertclaims_api.services.otp_service import mask_destination
from expertclaims_shared.config import settings
from expertclaims_shared.security import digest_otp, hash_password
from tests.conftest import make_supabase

OTP_HOOK = "https://hooks.example.test/otp"


@contextmanager
def database(mock):
    with (
        patch("expertclaims_api.services.login_service.get_supabase_client", return_value=mock),
        patch("expertclaims_api.services.otp_service.get_supabase_client", return_value=mock),
        patch("expertclaims_api.services.session_service.get_supabase_client", return_value=mock),
    ):
        yield mock


def _customer():
    return {
        "id": str(uuid4()),
        "email": "ravi@example.com",
        "full_name": "Ravi Kumar",
        "role": "customer",
        "phone": "+91 98765 43210",
        "password_hash": hash_password("Secret123", rounds=4),
        "is_active": True,
        "deleted_flag": False,
    }


def _challenge(user_id, *, state="otp_sent", code="482913", attempts=0, **overrides):
    now = datetime.now(timezone.utc)
    challenge_id = str(uuid4())
    row = {
        "id": challenge_id,
        "user_id": user_id,
        "role": "customer",
        "state": state,
        "channel": "sms",
        "destination": "+91 98765 43210",
        "otp_hash": digest_otp(code, challenge_id) if state == "otp_sent" else None,
        "otp_sent_at": (now - timedelta(minutes=1)).isoformat() if state == "otp_sent" else None,
        "otp_expires_at": (now + timedelta(minutes=4)).isoformat() if state == "otp_sent" else None,
        "attempts": attempts,
        "created_at": (now - timedelta(minutes=2)).isoformat(),
        "expires_at": (now + timedelta(minutes=8)).isoformat(),
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# Password roles
# ---------------------------------------------------------------------------


def test_employee_login_issues_session(client, sample_profile):
    with database(make_supabase({"profiles": ([sample_profile], 1)})) as mock:
        response = client.post(
            "/v1/auth/login",
            json={"role": "employee", "email": " Asha@Example.com ", "password": "Secret123"},
        )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user_role"] == "employee"
    assert data["jwt_token"]
    assert data["dashboard"] == "/employee-dashboard"
    assert "password_hash" not in data["user"]
    mock.table("profiles").eq.assert_any_call("email", "asha@example.com")
    mock.table("user_sessions").insert.assert_called_once()


def test_legacy_login_path(client, sample_profile):
    with database(make_supabase({"profiles": ([sample_profile], 1)})):
        response = client.post(
            "/api/login",
            json={"role": "employee", "email": "asha@example.com", "password": "Secret123"},
        )
    assert response.status_code == 200
    assert response.json()["data"]["user_role"] == "employee"


@pytest.mark.parametrize(
    "overrides, password",
    [
        ({}, "wrong-password"),
        ({"is_active": False}, "Secret123"),
        ({"deleted_flag": True}, "Secret123"),
        ({"role": "partner"}, "Secret123"),
    ],
)
def test_login_failures_are_indistinguishable(client, sample_profile, overrides, password):
    profile = {**sample_profile, **overrides}
    with database(make_supabase({"profiles": ([profile], 1)})) as mock:
        response = client.post(
            "/v1/auth/login",
            json={"role": "employee", "email": "asha@example.com", "password": password},
        )

    assert response.status_code == 401
    assert response.json()["error"] == {
        "code": "AUTHENTICATION_FAILED",
        "message": "Invalid credentials",
    }
    mock.table("user_sessions").insert.assert_not_called()


def test_unknown_email(client):
    with database(make_supabase()):
        response = client.post(
            "/v1/auth/login",
            json={"role": "employee", "email": "nobody@example.com", "password": "Secret123"},
        )
    assert response.status_code == 401


def test_otp_role_cannot_use_password_step(client):
    response = client.post(
        "/v1/auth/login",
        json={"role": "customer", "email": "ravi@example.com", "password": "Secret123"},
    )
    assert response.status_code == 422
    assert response.json()["error"]["details"]["next_step"] == "credential_validation"


def test_unknown_role_rejected_by_schema(client):
    response = client.post(
        "/v1/auth/login",
        json={"role": "superuser", "email": "x@example.com", "password": "Secret123"},
    )
    assert response.status_code == 422


# ---------------------------------------------------------------------------
# OTP roles
# ---------------------------------------------------------------------------


def test_credential_validation_creates_challenge(client):
    customer = _customer()
    with database(make_supabase({"profiles": ([customer], 1)})) as mock:
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "password": "Secret123",
                "mobile": "9876543210",
                "step": "credential_validation",
            },
        )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["next_step"] == "send_otp"
    stored = mock.table("login_challenges").insert.call_args[0][0]
    assert stored["id"] == data["challenge_id"]
    assert stored["state"] == "validated"
    assert stored["channel"] == "sms"
    mock.table("user_sessions").insert.assert_not_called()


def test_customer_mobile_must_match(client):
    with database(make_supabase({"profiles": ([_customer()], 1)})):
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "password": "Secret123",
                "mobile": "9000000000",
                "step": "credential_validation",
            },
        )
    assert response.status_code == 401


def test_send_otp_delivers_code_and_masks_destination(client, monkeypatch):
    monkeypatch.setattr(settings, "otp_webhook_url", OTP_HOOK)
    customer = _customer()
    challenge = _challenge(customer["id"], state="validated")

    with database(make_supabase({"login_challenges": ([challenge], 1)})) as mock, respx.mock() as router:
        route = router.post(OTP_HOOK).mock(return_value=httpx.Response(200, json={"ok": True}))
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "step": "send_otp",
                "challenge_id": challenge["id"],
            },
        )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["next_step"] == "final_login"
    assert data["destination"] == "********3210"
    assert "code" not in data

    assert route.called
    sent = route.calls.last.request
    body = json.loads(sent.content)
    assert body["channel"] == "sms"
    assert len(body["code"]) == settings.otp_length

    saved = mock.table("login_challenges").update.call_args[0][0]
    assert saved["state"] == "otp_sent"
    assert saved["otp_hash"] == digest_otp(body["code"], challenge["id"])


def test_send_otp_failure_is_bad_gateway(client, monkeypatch):
    monkeypatch.setattr(settings, "otp_webhook_url", OTP_HOOK)
    challenge = _challenge(str(uuid4()), state="validated")

    with database(make_supabase({"login_challenges": ([challenge], 1)})), respx.mock() as router:
        router.post(OTP_HOOK).mock(return_value=httpx.Response(400))
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "step": "send_otp",
                "challenge_id": challenge["id"],
            },
        )
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "UPSTREAM_UNAVAILABLE"


def test_resend_within_cooldown_is_refused(client):
    challenge = _challenge(str(uuid4()), otp_sent_at=datetime.now(timezone.utc).isoformat())
    with database(make_supabase({"login_challenges": ([challenge], 1)})):
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "step": "send_otp",
                "challenge_id": challenge["id"],
            },
        )
    assert response.status_code == 429
    assert response.json()["error"]["details"]["retry_after"] > 0


def test_final_login_with_correct_code(client):
    customer = _customer()
    challenge = _challenge(customer["id"])
    mock = make_supabase({
        "login_challenges": ([challenge], 1),
        "profiles": ([customer], 1),
    })
    with database(mock):
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "step": "final_login",
                "challenge_id": challenge["id"],
                "otp": "482913",
            },
        )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user_role"] == "customer"
    assert data["dashboard"] == "/customer-portal"
    assert mock.table("login_challenges").update.call_args[0][0]["state"] == "completed"


def test_final_login_before_send_otp(client):
    challenge = _challenge(str(uuid4()), state="validated")
    with database(make_supabase({"login_challenges": ([challenge], 1)})):
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "step": "final_login",
                "challenge_id": challenge["id"],
                "otp": "482913",
            },
        )
    assert response.status_code == 422


def test_wrong_code_counts_attempts(client):
    challenge = _challenge(str(uuid4()), attempts=1)
    with database(make_supabase({"login_challenges": ([challenge], 1)})) as mock:
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "step": "final_login",
                "challenge_id": challenge["id"],
                "otp": "000000",
            },
        )

    assert response.status_code == 401
    assert response.json()["error"]["details"]["attempts_remaining"] == settings.otp_max_attempts - 2
    assert mock.table("login_challenges").update.call_args[0][0] == {"attempts": 2}
    mock.table("user_sessions").insert.assert_not_called()


def test_last_wrong_code_locks_challenge(client):
    challenge = _challenge(str(uuid4()), attempts=settings.otp_max_attempts - 1)
    with database(make_supabase({"login_challenges": ([challenge], 1)})) as mock:
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "step": "final_login",
                "challenge_id": challenge["id"],
                "otp": "000000",
            },
        )
    assert response.status_code == 429
    assert mock.table("login_challenges").update.call_args[0][0]["state"] == "locked"


@pytest.mark.parametrize("state, status", [("completed", 409), ("locked", 429)])
def test_closed_challenges(client, state, status):
    challenge = _challenge(str(uuid4()), state=state)
    with database(make_supabase({"login_challenges": ([challenge], 1)})):
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "step": "final_login",
                "challenge_id": challenge["id"],
                "otp": "482913",
            },
        )
    assert response.status_code == status


def test_expired_challenge(client):
    past = datetime.now(timezone.utc) - timedelta(minutes=1)
    challenge = _challenge(str(uuid4()), expires_at=past.isoformat())
    with database(make_supabase({"login_challenges": ([challenge], 1)})):
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "step": "final_login",
                "challenge_id": challenge["id"],
                "otp": "482913",
            },
        )
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "SESSION_EXPIRED"


def test_challenge_role_must_match(client):
    challenge = _challenge(str(uuid4()), role="admin")
    with database(make_supabase({"login_challenges": ([challenge], 1)})):
        response = client.post(
            "/v1/auth/login",
            json={
                "role": "customer",
                "email": "ravi@example.com",
                "step": "final_login",
                "challenge_id": challenge["id"],
                "otp": "482913",
            },
        )
    assert response.status_code == 401


@pytest.mark.parametrize(
    "destination, masked",
    [
        ("asha@example.com", "a***@example.com"),
        ("+91 98765 43210", "********3210"),
        ("123", "***"),
    ],
)
def test_mask_destination(destination, masked):
    assert mask_destination(destination) == masked
