"""
Login handshake.

Password roles (employee, hr, partner) log in with a single ``login`` step.
OTP roles go through three steps against the same endpoint:

    credential_validation  email + password (+ mobile for customers)
    send_otp               code goes out by SMS (customer) or email (admin)
    final_login            code checked, session issued

Every credential mismatch yields the same "Invalid credentials" error so the
endpoint cannot be used to probe which accounts exist.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

import structlog

from expertclaims_shared.constants import OTP_ROLES, PASSWORD_ROLES
from expertclaims_shared.db import get_supabase_client
from expertclaims_shared.models.users import public_profile
from expertclaims_shared.security import verify_password
from expertclaims_shared.time_utils import utc_now

from expertclaims_api.errors import AuthenticationFailed, InvalidRequest
from expertclaims_api.schemas import LoginRequest
from expertclaims_api.services import otp_service, session_service
from expertclaims_api.services.access_service import dashboard_for

log = structlog.get_logger(__name__)

PROFILES_TABLE = "profiles"

_INVALID = "Invalid credentials"


def _digits(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def _same_phone(a: str | None, b: str | None) -> bool:
    """Compare phone numbers on their last ten digits, ignoring formatting and country code."""
    da, db = _digits(a)[-10:], _digits(b)[-10:]
    return bool(da) and da == db


def find_profile(*, email: str | None = None, user_id: str | None = None) -> dict[str, Any] | None:
    supabase = get_supabase_client(service_role=True)
    query = supabase.table(PROFILES_TABLE).select("*")
    query = query.eq("email", email) if email is not None else query.eq("id", user_id)
    result = query.limit(1).execute()
    return result.data[0] if result.data else None


def _usable(row: dict[str, Any] | None, role: str) -> bool:
    return (
        row is not None
        and row.get("role") == role
        and bool(row.get("is_active", True))
        and not row.get("deleted_flag", False)
    )


def authenticate(
    email: str,
    password: str | None,
    role: str,
    *,
    mobile: str | None = None,
) -> dict[str, Any]:
    """Check credentials for ``role`` and return the profiles row."""
    row = find_profile(email=email)
    reason = None
    if not _usable(row, role):
        reason = "unknown_or_inactive"
    elif not verify_password(password or "", row.get("password_hash")):
        reason = "bad_password"
    elif role == "customer" and not _same_phone(mobile, row.get("phone")):
        reason = "mobile_mismatch"

    if reason is not None:
        log.info("login_failed", role=role, reason=reason)
        raise AuthenticationFailed(_INVALID)
    return row


def _signed_in(
    row: dict[str, Any],
    *,
    user_agent: str | None,
    ip_address: str | None,
    now: datetime,
) -> dict[str, Any]:
    issued = session_service.issue_session(
        str(row["id"]),
        row["role"],
        user_agent=user_agent,
        ip_address=ip_address,
        now=now,
    )
    log.info("login_succeeded", user_id=issued.user_id, role=issued.user_role)
    return {
        **issued.model_dump(),
        "user": public_profile(row),
        "dashboard": dashboard_for(issued.user_role),
    }


def _challenge_for(body: LoginRequest):
    if body.challenge_id is None:
        raise InvalidRequest("challenge_id is required for this step")
    challenge = otp_service.load_challenge(str(body.challenge_id))
    if challenge.role != body.role:
        log.info("login_failed", role=body.role, reason="challenge_role_mismatch")
        raise AuthenticationFailed(_INVALID)
    return challenge


async def login(
    body: LoginRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Run one step of the login handshake and return its response payload."""
    now = now or utc_now()
    role, step = body.role, body.step

    if step == "login":
        if role not in PASSWORD_ROLES:
            raise InvalidRequest(
                f"Role '{role}' signs in with a one-time password",
                details={"next_step": "credential_validation"},
            )
        row = authenticate(body.email, body.password, role)
        return _signed_in(row, user_agent=user_agent, ip_address=ip_address, now=now)

    if role not in OTP_ROLES:
        raise InvalidRequest(
            f"Role '{role}' signs in with email and password",
            details={"next_step": "login"},
        )

    if step == "credential_validation":
        row = authenticate(body.email, body.password, role, mobile=body.mobile)
        channel = OTP_ROLES[role]
        destination = row.get("phone") if channel == "sms" else row.get("email")
        if not destination:
            log.warning("login_failed", role=role, reason="no_otp_destination")
            raise AuthenticationFailed(_INVALID)
        challenge = otp_service.create_challenge(
            str(row["id"]), role, channel=channel, destination=destination, now=now
        )
        return {"challenge_id": str(challenge.id), "next_step": "send_otp"}

    challenge = _challenge_for(body)

    if step == "send_otp":
        return await otp_service.send_code(challenge, now=now)

    # final_login
    if not body.otp:
        raise InvalidRequest("otp is required for final_login")
    otp_service.verify_code(challenge, body.otp, now=now)
    row = find_profile(user_id=challenge.user_id)
    if not _usable(row, role):
        log.info("login_failed", role=role, reason="account_changed")
        raise AuthenticationFailed(_INVALID)
    return _signed_in(row, user_agent=user_agent, ip_address=ip_address, now=now)
