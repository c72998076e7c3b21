"""Partner registration, referrals and bonus endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from expertclaims_api.dependencies import AuthUser, PaginationParams, require_roles
from expertclaims_api.responses import paginated_response, wrap_response
from expertclaims_api.schemas import PartnerSignup
from expertclaims_api.services import partner_service

router = APIRouter(prefix="/partners", tags=["partners"])


@router.post("/signup", status_code=201)
async def signup(body: PartnerSignup):
    return wrap_response(partner_service.signup(body))


@router.get("/me/referrals")
async def my_referrals(
    pagination: PaginationParams = Depends(),
    user: AuthUser = Depends(require_roles("partner")),
):
    data, total = partner_service.referrals(user, pagination)
    return paginated_response(data, total, pagination, "/v1/partners/me/referrals")


@router.get("/{partner_id}/bonus")
async def bonus_status(
    partner_id: str,
    user: AuthUser = Depends(require_roles("partner", "admin")),
):
    return wrap_response(partner_service.bonus_status(user, partner_id))
