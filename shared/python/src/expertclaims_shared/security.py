"""
security.py: password hashing and one-time-code helpers.

Passwords are stored as bcrypt hashes. OTP codes are never stored in clear:
only an HMAC-SHA256 digest keyed with the JWT secret is persisted.

Usage:
    from expertclaims_shared.security import hash_password, verify_password

    hashed = hash_password("s3cret-pass")
    verify_password("s3cret-pass", hashed)   # True
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets

import bcrypt

from expertclaims_shared.config import settings

_PASSWORD_MIN_LENGTH = 8


def hash_password(plain: str, *, rounds: int | None = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Check a password against a bcrypt hash. Malformed or missing hashes never match."""
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def password_problems(plain: str) -> list[str]:
    """Return the password policy violations for ``plain`` (empty when acceptable)."""
    problems: list[str] = []
    if len(plain) < _PASSWORD_MIN_LENGTH:
        problems.append(f"must be at least {_PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Za-z]", plain):
        problems.append("must contain a letter")
    if not re.search(r"\d", plain):
        problems.append("must contain a digit")
    return problems


def generate_otp(length: int | None = None) -> str:
    n = length or settings.otp_length
    return "".join(secrets.choice("0123456789") for _ in range(n))


def digest_otp(code: str, challenge_id: str) -> str:
    """HMAC the code together with its challenge so digests can't be replayed across challenges."""
    msg = f"{challenge_id}:{code}".encode("utf-8")
    return hmac.new(settings.jwt_secret.encode("utf-8"), msg, hashlib.sha256).hexdigest()


def otp_matches(code: str, challenge_id: str, expected_digest: str | None) -> bool:
    if not code or not expected_digest:
        return False
    return hmac.compare_digest(digest_otp(code, challenge_id), expected_digest)


def new_token(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)
