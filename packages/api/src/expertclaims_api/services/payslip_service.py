"""Payslips: employees read their own, hr and admins issue them."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from expertclaims_shared.constants import REVIEWER_ROLES
from expertclaims_shared.db import get_supabase_client
from expertclaims_shared.models.hr import Payslip
from expertclaims_shared.time_utils import parse_month

from expertclaims_api.errors import Conflict, InvalidRequest, NotFound, PermissionDenied
from expertclaims_api.schemas import PayslipCreate

if TYPE_CHECKING:
    from expertclaims_api.middleware.auth import AuthUser

log = structlog.get_logger(__name__)

PAYSLIPS_TABLE = "employee_payslips"


def list_own(user: "AuthUser", *, year: int | None = None) -> list[dict[str, Any]]:
    supabase = get_supabase_client(service_role=True)
    query = supabase.table(PAYSLIPS_TABLE).select("*").eq("employee_id", user.user_id)
    if year is not None:
        query = query.gte("month", f"{year}-01").lte("month", f"{year}-12")
    result = query.order("month", desc=True).execute()
    return result.data or []


def get(user: "AuthUser", payslip_id: str) -> dict[str, Any]:
    supabase = get_supabase_client(service_role=True)
    result = supabase.table(PAYSLIPS_TABLE).select("*").eq("id", payslip_id).limit(1).execute()
    if not result.data:
        raise NotFound(f"Payslip '{payslip_id}' not found")
    payslip = result.data[0]
    if payslip.get("employee_id") != user.user_id and user.role not in REVIEWER_ROLES:
        raise NotFound(f"Payslip '{payslip_id}' not found")
    return payslip


def create(user: "AuthUser", payload: PayslipCreate) -> dict[str, Any]:
    if user.role not in REVIEWER_ROLES:
        raise PermissionDenied("Only hr or admins can issue payslips")
    if parse_month(payload.month) is None:
        raise InvalidRequest("month must be YYYY-MM")
    if payload.net_pay > payload.gross_pay:
        raise InvalidRequest("net_pay cannot exceed gross_pay")

    supabase = get_supabase_client(service_role=True)
    existing = (
        supabase.table(PAYSLIPS_TABLE)
        .select("id")
        .eq("employee_id", payload.employee_id)
        .eq("month", payload.month)
        .limit(1)
        .execute()
    )
    if existing.data:
        raise Conflict(f"A payslip for {payload.month} already exists for this employee")

    payslip = Payslip(**payload.model_dump())
    result = supabase.table(PAYSLIPS_TABLE).insert(payslip.to_insert_dict()).execute()
    log.info("payslip_created", employee_id=payload.employee_id, month=payload.month)
    return result.data[0] if result.data else payslip.to_insert_dict()
