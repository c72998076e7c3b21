"""Session authentication and role checks."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from fastapi import Depends, Request

from expertclaims_shared.constants import EXTERNAL_ROLES, STAFF_ROLES, Role

from expertclaims_api.errors import AuthenticationFailed, PermissionDenied
from expertclaims_api.services import session_service


@dataclass
class AuthUser:
    user_id: str
    role: Role
    session_id: str
    email: str | None = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_external(self) -> bool:
        return self.role in EXTERNAL_ROLES


def read_credentials(request: Request) -> tuple[str | None, str | None]:
    """Read the JWT and session id, preferring Authorization/X-Session-ID over the legacy headers."""
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip() or None
    if token is None:
        token = request.headers.get("jwt_token") or None
    session_id = request.headers.get("X-Session-ID") or request.headers.get("session_id")
    return token, session_id


async def get_current_user(request: Request) -> AuthUser | None:
    """Validate the caller's session.

    Returns None if no credentials are provided (public access).
    Raises 401 if credentials are invalid, expired or revoked.
    """
    token, session_id = read_credentials(request)
    if token is None:
        return None

    record = session_service.validate(token, session_id)
    user = AuthUser(user_id=record.user_id, role=record.role, session_id=record.session_id)
    request.state.user = user
    structlog.contextvars.bind_contextvars(user_id=user.user_id, role=user.role)
    return user


def require_roles(*roles: str):
    """Dependency factory: authenticated caller whose role is in ``roles`` (any role if empty)."""

    async def _dependency(
        user: AuthUser | None = Depends(get_current_user),
    ) -> AuthUser:
        if user is None:
            raise AuthenticationFailed("Authentication required")
        if roles and user.role not in roles:
            raise PermissionDenied(
                f"This action requires one of the roles: {', '.join(roles)}. "
                f"Your role is '{user.role}'."
            )
        return user

    return _dependency


require_user = require_roles()
require_staff = require_roles(*STAFF_ROLES)
require_admin = require_roles("admin")
