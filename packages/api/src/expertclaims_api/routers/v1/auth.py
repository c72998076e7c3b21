"""Login, session and route-guard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from expertclaims_api.dependencies import AuthUser, client_info, get_current_user, require_user
from expertclaims_api.errors import AuthenticationFailed, NotFound
from expertclaims_api.middleware.auth import read_credentials
from expertclaims_api.responses import wrap_response
from expertclaims_api.schemas import LoginRequest, RefreshRequest
from expertclaims_api.services import access_service, login_service, session_service, user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
async def login(body: LoginRequest, client: dict = Depends(client_info)):
    data = await login_service.login(body, **client)
    return wrap_response(data)


@router.post("/refresh")
async def refresh(request: Request, body: RefreshRequest | None = None):
    token, _ = read_credentials(request)
    token = token or (body.jwt_token if body else None)
    if not token:
        raise AuthenticationFailed("Authentication required")
    issued = session_service.refresh(token)
    return wrap_response(issued.model_dump())


@router.post("/logout")
async def logout(user: AuthUser = Depends(require_user)):
    session_service.revoke(user.session_id)
    return wrap_response({"logged_out": True})


@router.get("/session")
async def session_status(user: AuthUser = Depends(require_user)):
    record = session_service.load_session(user.session_id)
    if record is None:
        raise NotFound("Session not found")
    return wrap_response({
        "session_id": record.session_id,
        "user_id": record.user_id,
        "user_role": record.role,
        **session_service.describe_expiry(record),
    })


@router.get("/me")
async def me(user: AuthUser = Depends(require_user)):
    return wrap_response(user_service.get_profile(user.user_id))


@router.get("/access")
async def page_access(
    path: str = Query(..., description="Client route, e.g. /admin-dashboard"),
    user: AuthUser | None = Depends(get_current_user),
):
    decision = access_service.check_page_access(path, user.role if user else None)
    if user is not None:
        decision["dashboard"] = access_service.dashboard_for(user.role)
    return wrap_response(decision)
