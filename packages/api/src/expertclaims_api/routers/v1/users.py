"""Admin user management endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from expertclaims_api.dependencies import AuthUser, PaginationParams, require_admin
from expertclaims_api.responses import paginated_response, wrap_response
from expertclaims_api.schemas import ActiveToggle, UserCreate, UserUpdate
from expertclaims_api.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
async def list_users(
    pagination: PaginationParams = Depends(),
    role: str | None = Query(None),
    q: str | None = Query(None, description="Search name or email"),
    user: AuthUser = Depends(require_admin),
):
    data, total = user_service.list_users(pagination, role=role, q=q)
    return paginated_response(data, total, pagination, "/v1/users", {"role": role, "q": q})


@router.post("", status_code=201)
async def create_user(body: UserCreate, user: AuthUser = Depends(require_admin)):
    return wrap_response(user_service.create_user(body))


@router.get("/{user_id}")
async def get_user(user_id: str, user: AuthUser = Depends(require_admin)):
    return wrap_response(user_service.get_profile(user_id))


@router.patch("/{user_id}")
async def update_user(user_id: str, body: UserUpdate, user: AuthUser = Depends(require_admin)):
    return wrap_response(user_service.update_user(user_id, body))


@router.post("/{user_id}/active")
async def set_active(user_id: str, body: ActiveToggle, user: AuthUser = Depends(require_admin)):
    return wrap_response(user_service.set_active(user_id, body.is_active))


@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: str, user: AuthUser = Depends(require_admin)):
    user_service.delete_user(user, user_id)
