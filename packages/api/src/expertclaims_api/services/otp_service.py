"""
One-time password challenges for the two-factor login roles.

A challenge row tracks one login attempt through:

    validated -> otp_sent -> completed
                         \-> locked   (too many wrong codes)

Codes are delivered through the notifier and only their HMAC digest is
stored. A challenge older than ``login_challenge_ttl_seconds`` is dead
whatever its state.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Any

import structlog

from expertclaims_shared.config import settings
from expertclaims_shared.db import get_supabase_client
from expertclaims_shared.models.sessions import LoginChallenge
from expertclaims_shared.security import digest_otp, generate_otp, otp_matches
from expertclaims_shared.time_utils import utc_now

from expertclaims_api.errors import (
    AuthenticationFailed,
    Conflict,
    InvalidRequest,
    SessionExpired,
    TooManyAttempts,
)
from expertclaims_api.utils.notifier import notifier

log = structlog.get_logger(__name__)

CHALLENGES_TABLE = "login_challenges"


def mask_destination(destination: str) -> str:
    """
    Hide most of an email address or phone number.

    "asha@example.com" -> "a***@example.com", "+91 98765 43210" -> "******3210".
    """
    if "@" in destination:
        local, _, domain = destination.partition("@")
        return f"{local[:1]}***@{domain}"
    digits = re.sub(r"\D", "", destination)
    if len(digits) <= 4:
        return "*" * len(digits)
    return "*" * (len(digits) - 4) + digits[-4:]


def create_challenge(
    user_id: str,
    role: str,
    *,
    channel: str,
    destination: str,
    now: datetime | None = None,
) -> LoginChallenge:
    now = now or utc_now()
    challenge = LoginChallenge(
        user_id=user_id,
        role=role,
        channel=channel,
        destination=destination,
        created_at=now,
        expires_at=now + timedelta(seconds=settings.login_challenge_ttl_seconds),
    )
    supabase = get_supabase_client(service_role=True)
    supabase.table(CHALLENGES_TABLE).insert(challenge.to_insert_dict()).execute()
    log.info("login_challenge_created", challenge_id=str(challenge.id), role=role)
    return challenge


def load_challenge(challenge_id: str) -> LoginChallenge:
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(CHALLENGES_TABLE)
        .select("*")
        .eq("id", challenge_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        raise AuthenticationFailed("Unknown login attempt. Please start again.")
    return LoginChallenge.from_db_row(result.data[0])


def _ensure_open(challenge: LoginChallenge, now: datetime) -> None:
    if challenge.state == "completed":
        raise Conflict("This login attempt has already been used")
    if challenge.state == "locked":
        raise TooManyAttempts("Too many incorrect codes. Please start again.")
    if now >= challenge.expires_at:
        raise SessionExpired("Login attempt expired. Please start again.")


def _save(challenge_id: str, changes: dict[str, Any]) -> None:
    supabase = get_supabase_client(service_role=True)
    supabase.table(CHALLENGES_TABLE).update(changes).eq("id", challenge_id).execute()


async def send_code(challenge: LoginChallenge, *, now: datetime | None = None) -> dict[str, Any]:
    """Generate, store and deliver a fresh code. Resending resets the attempt count."""
    now = now or utc_now()
    _ensure_open(challenge, now)
    challenge_id = str(challenge.id)

    if challenge.state == "otp_sent" and challenge.otp_sent_at is not None:
        ready_at = challenge.otp_sent_at + timedelta(seconds=settings.otp_resend_cooldown_seconds)
        if now < ready_at:
            wait = int((ready_at - now).total_seconds()) + 1
            raise TooManyAttempts(
                "Please wait before requesting another code",
                details={"retry_after": wait},
            )

    code = generate_otp()
    otp_expires_at = now + timedelta(seconds=settings.otp_ttl_seconds)
    _save(
        challenge_id,
        {
            "state": "otp_sent",
            "otp_hash": digest_otp(code, challenge_id),
            "otp_sent_at": now.isoformat(),
            "otp_expires_at": otp_expires_at.isoformat(),
            "attempts": 0,
        },
    )
    await notifier.send_otp(
        channel=challenge.channel,
        destination=challenge.destination,
        code=code,
        expires_in=settings.otp_ttl_seconds,
    )
    log.info("otp_sent", challenge_id=challenge_id, channel=challenge.channel)
    return {
        "challenge_id": challenge_id,
        "next_step": "final_login",
        "channel": challenge.channel,
        "destination": mask_destination(challenge.destination),
        "expires_in": settings.otp_ttl_seconds,
    }


def verify_code(challenge: LoginChallenge, code: str, *, now: datetime | None = None) -> LoginChallenge:
    """Check a submitted code. Success marks the challenge completed."""
    now = now or utc_now()
    _ensure_open(challenge, now)
    challenge_id = str(challenge.id)

    if challenge.state != "otp_sent":
        raise InvalidRequest("No one-time password has been sent for this login")
    if challenge.otp_expires_at is None or now >= challenge.otp_expires_at:
        raise SessionExpired("One-time password expired. Request a new one.")

    if otp_matches(code.strip(), challenge_id, challenge.otp_hash):
        _save(challenge_id, {"state": "completed", "otp_hash": None})
        challenge.state = "completed"
        log.info("otp_verified", challenge_id=challenge_id)
        return challenge

    attempts = challenge.attempts + 1
    if attempts >= settings.otp_max_attempts:
        _save(challenge_id, {"attempts": attempts, "state": "locked", "otp_hash": None})
        log.warning("login_challenge_locked", challenge_id=challenge_id, attempts=attempts)
        raise TooManyAttempts("Too many incorrect codes. Please start again.")

    _save(challenge_id, {"attempts": attempts})
    log.info("otp_rejected", challenge_id=challenge_id, attempts=attempts)
    raise AuthenticationFailed(
        "Invalid one-time password",
        details={"attempts_remaining": settings.otp_max_attempts - attempts},
    )


def purge_challenges(*, now: datetime | None = None, dry_run: bool = False) -> int:
    """Delete challenges past their lifetime."""
    now = now or utc_now()
    supabase = get_supabase_client(service_role=True)
    query = supabase.table(CHALLENGES_TABLE).select("id", count="exact").lt("expires_at", now.isoformat())
    result = query.execute()
    count = result.count if result.count is not None else len(result.data or [])
    if count and not dry_run:
        supabase.table(CHALLENGES_TABLE).delete().lt("expires_at", now.isoformat()).execute()
    log.info("login_challenges_purged", count=count, dry_run=dry_run)
    return count
