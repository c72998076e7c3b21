"""Admin management of portal accounts (profiles table)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from expertclaims_shared.db import get_supabase_client
from expertclaims_shared.models.users import Profile, public_profile
from expertclaims_shared.security import hash_password, password_problems
from expertclaims_shared.time_utils import utc_now

from expertclaims_api.errors import Conflict, InvalidRequest, NotFound
from expertclaims_api.schemas import UserCreate, UserUpdate
from expertclaims_api.services import session_service
from expertclaims_api.utils.cache import directory_cache
from expertclaims_api.utils.filtering import apply_any_text_search
from expertclaims_api.utils.pagination import PaginationParams

if TYPE_CHECKING:
    from expertclaims_api.middleware.auth import AuthUser

log = structlog.get_logger(__name__)

PROFILES_TABLE = "profiles"


def _check_password(password: str) -> None:
    problems = password_problems(password)
    if problems:
        raise InvalidRequest("Password does not meet the policy", details={"password": problems})


def list_users(
    pagination: PaginationParams,
    *,
    role: str | None = None,
    q: str | None = None,
    include_deleted: bool = False,
) -> tuple[list[dict[str, Any]], int]:
    supabase = get_supabase_client(service_role=True)
    query = supabase.table(PROFILES_TABLE).select("*", count="exact")
    if not include_deleted:
        query = query.eq("deleted_flag", False)
    if role:
        query = query.eq("role", role)
    query = apply_any_text_search(query, ("full_name", "email"), q)
    result = (
        query.order("full_name")
        .range(pagination.offset, pagination.range_end)
        .execute()
    )
    return [public_profile(row) for row in result.data or []], result.count or 0


def get_profile(user_id: str) -> dict[str, Any]:
    supabase = get_supabase_client(service_role=True)
    result = supabase.table(PROFILES_TABLE).select("*").eq("id", user_id).limit(1).execute()
    if not result.data:
        raise NotFound(f"User '{user_id}' not found")
    return public_profile(result.data[0])


def create_user(payload: UserCreate) -> dict[str, Any]:
    _check_password(payload.password)
    supabase = get_supabase_client(service_role=True)
    existing = supabase.table(PROFILES_TABLE).select("id").eq("email", payload.email).limit(1).execute()
    if existing.data:
        raise Conflict("An account with this email already exists")

    profile = Profile(
        password_hash=hash_password(payload.password),
        **payload.model_dump(exclude={"password"}),
    )
    result = supabase.table(PROFILES_TABLE).insert(profile.to_insert_dict()).execute()
    directory_cache.clear()
    log.info("user_created", user_id=str(profile.id), role=profile.role)
    return public_profile(result.data[0]) if result.data else profile.to_public_dict()


def update_user(user_id: str, payload: UserUpdate) -> dict[str, Any]:
    current = get_profile(user_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"password"})
    if payload.password is not None:
        _check_password(payload.password)
        changes["password_hash"] = hash_password(payload.password)
    if not changes:
        return current
    changes["updated_at"] = utc_now().isoformat()

    supabase = get_supabase_client(service_role=True)
    result = supabase.table(PROFILES_TABLE).update(changes).eq("id", user_id).execute()
    directory_cache.clear()

    new_role = changes.get("role")
    if new_role and new_role != current.get("role"):
        session_service.sync_role(user_id, new_role)
        log.info("user_role_changed", user_id=user_id, old=current.get("role"), new=new_role)
    if "password_hash" in changes:
        session_service.revoke_user_sessions(user_id)

    row = result.data[0] if result.data else {**current, **changes}
    return public_profile(row)


def set_active(user_id: str, is_active: bool) -> dict[str, Any]:
    get_profile(user_id)
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(PROFILES_TABLE)
        .update({"is_active": is_active, "updated_at": utc_now().isoformat()})
        .eq("id", user_id)
        .execute()
    )
    if not is_active:
        session_service.revoke_user_sessions(user_id)
    directory_cache.clear()
    log.info("user_active_changed", user_id=user_id, is_active=is_active)
    return public_profile(result.data[0]) if result.data else {"id": user_id, "is_active": is_active}


def delete_user(actor: "AuthUser", user_id: str) -> None:
    """Soft delete: flag, deactivate and sign the account out everywhere."""
    if actor.user_id == user_id:
        raise Conflict("You cannot delete your own account")
    get_profile(user_id)
    supabase = get_supabase_client(service_role=True)
    (
        supabase.table(PROFILES_TABLE)
        .update({"deleted_flag": True, "is_active": False, "updated_at": utc_now().isoformat()})
        .eq("id", user_id)
        .execute()
    )
    session_service.revoke_user_sessions(user_id)
    directory_cache.clear()
    log.info("user_deleted", user_id=user_id, deleted_by=actor.user_id)
