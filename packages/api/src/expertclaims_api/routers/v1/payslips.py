"""Payslip endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from expertclaims_api.dependencies import AuthUser, require_roles, require_staff
from expertclaims_api.responses import wrap_response
from expertclaims_api.schemas import PayslipCreate
from expertclaims_api.services import payslip_service

router = APIRouter(prefix="/payslips", tags=["payslips"])


@router.get("/mine")
async def my_payslips(
    year: int | None = Query(None, ge=2000, le=2100),
    user: AuthUser = Depends(require_staff),
):
    data = payslip_service.list_own(user, year=year)
    return wrap_response(data, total_count=len(data))


@router.get("/{payslip_id}")
async def get_payslip(payslip_id: str, user: AuthUser = Depends(require_staff)):
    return wrap_response(payslip_service.get(user, payslip_id))


@router.post("", status_code=201)
async def create_payslip(
    body: PayslipCreate,
    user: AuthUser = Depends(require_roles("hr", "admin")),
):
    return wrap_response(payslip_service.create(user, body))
