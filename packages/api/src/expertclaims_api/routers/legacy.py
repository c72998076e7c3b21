"""Pre-v1 paths kept for clients that still call them."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from expertclaims_api.dependencies import client_info
from expertclaims_api.responses import wrap_response
from expertclaims_api.schemas import LoginRequest
from expertclaims_api.services import login_service

router = APIRouter(prefix="/api", tags=["legacy"], include_in_schema=False)


@router.post("/login")
async def legacy_login(body: LoginRequest, client: dict = Depends(client_info)):
    data = await login_service.login(body, **client)
    return wrap_response(data)
