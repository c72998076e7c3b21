"""
models/sessions.py: Pydantic models for the user_sessions and login_challenges tables.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from expertclaims_shared.time_utils import parse_timestamp, to_epoch_ms


class SessionRecord(BaseModel):
    """
    Matches the user_sessions table row.

    Primary key is session_id. Expiry is authoritative here, not in the JWT.
    """

    session_id: str
    user_id: str
    role: str
    issued_at: datetime
    expires_at: datetime
    refreshed_at: datetime | None = None
    revoked_at: datetime | None = None
    user_agent: str | None = None
    ip_address: str | None = None

    @field_validator("issued_at", "expires_at", "refreshed_at", "revoked_at", mode="before")
    @classmethod
    def aware_utc(cls, v: Any) -> Any:
        return parse_timestamp(v) if v is not None else None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "SessionRecord":
        return cls(**row)

    def to_insert_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class IssuedSession(BaseModel):
    """What a client receives after login or refresh."""

    session_id: str
    jwt_token: str
    user_id: str
    user_role: str
    expires_at: int                  # epoch milliseconds
    expires_in: int                  # seconds

    @classmethod
    def from_record(cls, record: SessionRecord, token: str, now: datetime) -> "IssuedSession":
        return cls(
            session_id=record.session_id,
            jwt_token=token,
            user_id=record.user_id,
            user_role=record.role,
            expires_at=to_epoch_ms(record.expires_at),
            expires_in=max(0, int((record.expires_at - now).total_seconds())),
        )


class LoginChallenge(BaseModel):
    """Matches the login_challenges table row (one OTP login attempt)."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    role: str
    state: str = "validated"         # validated | otp_sent | completed | locked
    channel: str                     # sms | email
    destination: str
    otp_hash: str | None = None
    otp_sent_at: datetime | None = None
    otp_expires_at: datetime | None = None
    attempts: int = 0
    created_at: datetime
    expires_at: datetime

    @field_validator("otp_sent_at", "otp_expires_at", "created_at", "expires_at", mode="before")
    @classmethod
    def aware_utc(cls, v: Any) -> Any:
        return parse_timestamp(v) if v is not None else None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "LoginChallenge":
        return cls(**row)

    def to_insert_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
