"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Query, Request

from expertclaims_shared.constants import SortDirection
from expertclaims_shared.db import get_supabase_client

from expertclaims_api.middleware.auth import (
    AuthUser,
    get_current_user,
    require_admin,
    require_roles,
    require_staff,
    require_user,
)
from expertclaims_api.utils.pagination import PaginationParams


class SortParams:
    """Dependency for table sort query params."""

    def __init__(
        self,
        sort_by: str | None = Query(None, description="Column to sort by"),
        sort_dir: SortDirection = Query("asc", description="asc or desc"),
    ) -> None:
        self.sort_by = sort_by
        self.sort_dir = sort_dir


def client_info(request: Request) -> dict[str, str | None]:
    """User agent and client address recorded on new sessions."""
    return {
        "user_agent": request.headers.get("User-Agent"),
        "ip_address": request.client.host if request.client else None,
    }


__all__ = [
    "AuthUser",
    "PaginationParams",
    "SortParams",
    "client_info",
    "get_current_user",
    "get_supabase_client",
    "require_admin",
    "require_roles",
    "require_staff",
    "require_user",
]
