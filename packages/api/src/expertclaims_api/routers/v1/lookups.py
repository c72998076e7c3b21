"""Reference data for case forms."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from expertclaims_api.dependencies import AuthUser, require_staff, require_user
from expertclaims_api.responses import wrap_response
from expertclaims_api.services import lookup_service

router = APIRouter(prefix="/lookups", tags=["lookups"])


@router.get("/case-types")
async def case_types(user: AuthUser = Depends(require_user)):
    return wrap_response(lookup_service.list_case_types())


@router.get("/case-types/{case_type_id}/documents")
async def required_documents(case_type_id: int, user: AuthUser = Depends(require_user)):
    return wrap_response(lookup_service.required_documents(case_type_id))


@router.get("/stages")
async def stages(user: AuthUser = Depends(require_user)):
    return wrap_response(lookup_service.list_stages())


@router.get("/customers")
async def customers(
    q: str | None = Query(None),
    user: AuthUser = Depends(require_staff),
):
    return wrap_response(lookup_service.list_customers(q))


@router.get("/employees")
async def employees(
    q: str | None = Query(None),
    user: AuthUser = Depends(require_staff),
):
    return wrap_response(lookup_service.list_employees(q))
