"""
Session lifecycle: issue, validate, refresh, revoke.

A session is a user_sessions row plus a signed JWT that names it (``sid``).
The row is authoritative for expiry and revocation; the JWT only proves the
caller holds the session. Every session is in exactly one state:

    ACTIVE   now < expires_at
    GRACE    expires_at <= now < expires_at + grace period
    EXPIRED  past the grace period
    REVOKED  revoked_at set (dominates the others)

Only ACTIVE sessions authenticate requests. ACTIVE and GRACE sessions can be
refreshed, which moves them back to ACTIVE with a new expiry and a new JWT.
There are no role-based exemptions, and a session whose role is not a
known portal role is rejected.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any

import structlog
from jose import ExpiredSignatureError, JWTError, jwt

from expertclaims_shared.config import settings
from expertclaims_shared.constants import ROLES
from expertclaims_shared.db import get_supabase_client
from expertclaims_shared.models.sessions import IssuedSession, SessionRecord
from expertclaims_shared.security import new_token
from expertclaims_shared.time_utils import format_display, format_remaining, to_epoch_ms, utc_now

from expertclaims_api.errors import AuthenticationFailed, PortalError, SessionExpired

log = structlog.get_logger(__name__)

SESSIONS_TABLE = "user_sessions"
EXPIRING_SOON_SECONDS = 3600


class SessionState(str, Enum):
    ACTIVE = "active"
    GRACE = "grace"
    EXPIRED = "expired"
    REVOKED = "revoked"


# (state, event) pairs that are refused, and the error they raise.
# Pairs not listed are allowed.
_REFUSED: dict[tuple[SessionState, str], type[PortalError]] = {
    (SessionState.GRACE, "validate"): SessionExpired,
    (SessionState.EXPIRED, "validate"): SessionExpired,
    (SessionState.EXPIRED, "refresh"): SessionExpired,
    (SessionState.REVOKED, "validate"): AuthenticationFailed,
    (SessionState.REVOKED, "refresh"): AuthenticationFailed,
}

_REFUSAL_MESSAGES: dict[SessionState, str] = {
    SessionState.GRACE: "Session expired. Refresh it to continue.",
    SessionState.EXPIRED: "Session expired. Please log in again.",
    SessionState.REVOKED: "Session is no longer valid. Please log in again.",
}


def classify(record: SessionRecord, now: datetime | None = None) -> SessionState:
    now = now or utc_now()
    if record.revoked_at is not None:
        return SessionState.REVOKED
    if now < record.expires_at:
        return SessionState.ACTIVE
    if now < record.expires_at + timedelta(seconds=settings.session_grace_seconds):
        return SessionState.GRACE
    return SessionState.EXPIRED


def _check(record: SessionRecord, event: str, now: datetime) -> SessionState:
    state = classify(record, now)
    refusal = _REFUSED.get((state, event))
    if refusal is not None:
        log.info("session_refused", session_id=record.session_id, state=state.value, action=event)
        raise refusal(_REFUSAL_MESSAGES[state])
    return state


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def _encode(record: SessionRecord, now: datetime) -> str:
    claims = {
        "sub": record.user_id,
        "role": record.role,
        "sid": record.session_id,
        "iat": now,
        "exp": record.expires_at,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, *, verify_exp: bool = True) -> dict[str, Any]:
    """Decode and verify a session JWT."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": verify_exp},
        )
    except ExpiredSignatureError as exc:
        raise SessionExpired("Session expired. Refresh it to continue.") from exc
    except JWTError as exc:
        raise AuthenticationFailed("Invalid session token") from exc


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def load_session(session_id: str) -> SessionRecord | None:
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(SESSIONS_TABLE)
        .select("*")
        .eq("session_id", session_id)
        .limit(1)
        .execute()
    )
    return SessionRecord.from_db_row(result.data[0]) if result.data else None


def list_user_sessions(user_id: str) -> list[SessionRecord]:
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(SESSIONS_TABLE)
        .select("*")
        .eq("user_id", user_id)
        .order("issued_at", desc=True)
        .execute()
    )
    return [SessionRecord.from_db_row(row) for row in result.data or []]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def issue_session(
    user_id: str,
    role: str,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> IssuedSession:
    """Create a session row and return the client-facing session bundle."""
    if role not in ROLES:
        log.warning("session_issue_refused", user_id=user_id, role=role)
        raise AuthenticationFailed("Account has no valid portal role")

    now = now or utc_now()
    record = SessionRecord(
        session_id=new_token(24),
        user_id=user_id,
        role=role,
        issued_at=now,
        expires_at=now + timedelta(seconds=settings.session_ttl_seconds),
        user_agent=user_agent,
        ip_address=ip_address,
    )
    supabase = get_supabase_client(service_role=True)
    supabase.table(SESSIONS_TABLE).insert(record.to_insert_dict()).execute()

    token = _encode(record, now)
    log.info("session_issued", user_id=user_id, role=role, session_id=record.session_id)
    return IssuedSession.from_record(record, token, now)


def validate(
    token: str,
    session_id: str | None = None,
    *,
    now: datetime | None = None,
) -> SessionRecord:
    """
    Authenticate a request: the JWT must verify, name an existing session
    that matches the X-Session-ID header (when sent), and that session must
    be ACTIVE with a known role.
    """
    now = now or utc_now()
    claims = decode_token(token, verify_exp=False)
    sid = claims.get("sid")
    if not sid or (session_id is not None and session_id != sid):
        raise AuthenticationFailed("Session does not match token")

    record = load_session(sid)
    if record is None or record.user_id != claims.get("sub"):
        raise AuthenticationFailed("Unknown session")

    _check(record, "validate", now)
    if record.role not in ROLES:
        log.warning("session_role_invalid", session_id=sid, role=record.role)
        raise AuthenticationFailed("Session has no valid portal role")
    return record


def refresh(token: str, *, now: datetime | None = None) -> IssuedSession:
    """Extend an ACTIVE or GRACE session and rotate its JWT."""
    now = now or utc_now()
    claims = decode_token(token, verify_exp=False)
    record = load_session(claims.get("sid") or "")
    if record is None or record.user_id != claims.get("sub"):
        raise AuthenticationFailed("Unknown session")

    previous = _check(record, "refresh", now)
    record.expires_at = now + timedelta(seconds=settings.session_ttl_seconds)
    record.refreshed_at = now

    supabase = get_supabase_client(service_role=True)
    (
        supabase.table(SESSIONS_TABLE)
        .update({
            "expires_at": record.expires_at.isoformat(),
            "refreshed_at": now.isoformat(),
        })
        .eq("session_id", record.session_id)
        .execute()
    )
    log.info(
        "session_refreshed",
        session_id=record.session_id,
        previous_state=previous.value,
    )
    return IssuedSession.from_record(record, _encode(record, now), now)


def revoke(session_id: str, *, now: datetime | None = None) -> None:
    """Revoke one session. Revoking twice is a no-op."""
    now = now or utc_now()
    supabase = get_supabase_client(service_role=True)
    (
        supabase.table(SESSIONS_TABLE)
        .update({"revoked_at": now.isoformat()})
        .eq("session_id", session_id)
        .is_("revoked_at", "null")
        .execute()
    )
    log.info("session_revoked", session_id=session_id)


def revoke_user_sessions(user_id: str, *, now: datetime | None = None) -> int:
    now = now or utc_now()
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(SESSIONS_TABLE)
        .update({"revoked_at": now.isoformat()})
        .eq("user_id", user_id)
        .is_("revoked_at", "null")
        .execute()
    )
    count = len(result.data or [])
    log.info("user_sessions_revoked", user_id=user_id, count=count)
    return count


def sync_role(user_id: str, role: str) -> int:
    """Carry an admin's role change onto the user's live sessions."""
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(SESSIONS_TABLE)
        .update({"role": role})
        .eq("user_id", user_id)
        .is_("revoked_at", "null")
        .execute()
    )
    count = len(result.data or [])
    log.info("session_role_synced", user_id=user_id, role=role, count=count)
    return count


def describe_expiry(record: SessionRecord, now: datetime | None = None) -> dict[str, Any]:
    now = now or utc_now()
    remaining = (record.expires_at - now).total_seconds()
    return {
        "state": classify(record, now).value,
        "expires_at": to_epoch_ms(record.expires_at),
        "expires_at_formatted": format_display(record.expires_at),
        "expires_in": max(0, int(remaining)),
        "remaining": format_remaining(remaining),
        "expiring_soon": remaining < EXPIRING_SOON_SECONDS,
    }


def purge(*, now: datetime | None = None, dry_run: bool = False) -> int:
    """Delete EXPIRED and REVOKED sessions. Returns how many were (or would be) removed."""
    now = now or utc_now()
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(SESSIONS_TABLE)
        .select("session_id, user_id, role, issued_at, expires_at, revoked_at")
        .execute()
    )
    stale = [
        record.session_id
        for record in (SessionRecord.from_db_row(row) for row in result.data or [])
        if classify(record, now) in (SessionState.EXPIRED, SessionState.REVOKED)
    ]
    if stale and not dry_run:
        for start in range(0, len(stale), 200):
            batch = stale[start : start + 200]
            supabase.table(SESSIONS_TABLE).delete().in_("session_id", batch).execute()
    log.info("sessions_purged", count=len(stale), dry_run=dry_run)
    return len(stale)
