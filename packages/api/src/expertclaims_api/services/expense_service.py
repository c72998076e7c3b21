"""Expense claims: staff submit, hr and admins approve or reject."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from expertclaims_shared.constants import REVIEWER_ROLES
from expertclaims_shared.db import get_supabase_client
from expertclaims_shared.models.hr import Expense
from expertclaims_shared.time_utils import utc_now

from expertclaims_api.errors import Conflict, InvalidRequest, NotFound, PermissionDenied
from expertclaims_api.schemas import ExpenseSubmit
from expertclaims_api.utils.pagination import PaginationParams

if TYPE_CHECKING:
    from expertclaims_api.middleware.auth import AuthUser

log = structlog.get_logger(__name__)

EXPENSES_TABLE = "employee_expenses"


def submit(user: "AuthUser", payload: ExpenseSubmit) -> dict[str, Any]:
    if not user.is_staff:
        raise PermissionDenied("Only staff can submit expenses")
    if payload.expense_date > utc_now().date():
        raise InvalidRequest("expense_date cannot be in the future")

    expense = Expense(employee_id=user.user_id, submitted_at=utc_now(), **payload.model_dump())
    supabase = get_supabase_client(service_role=True)
    result = supabase.table(EXPENSES_TABLE).insert(expense.to_insert_dict()).execute()
    log.info("expense_submitted", expense_id=str(expense.id), amount=str(expense.amount))
    return result.data[0] if result.data else expense.to_insert_dict()


def list_all(
    pagination: PaginationParams,
    *,
    status: str | None = None,
    employee_id: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    supabase = get_supabase_client(service_role=True)
    query = supabase.table(EXPENSES_TABLE).select("*", count="exact")
    if status:
        query = query.eq("status", status)
    if employee_id:
        query = query.eq("employee_id", employee_id)
    result = (
        query.order("expense_date", desc=True)
        .range(pagination.offset, pagination.range_end)
        .execute()
    )
    return result.data or [], result.count or 0


def list_own(
    user: "AuthUser",
    pagination: PaginationParams,
    *,
    status: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    return list_all(pagination, status=status, employee_id=user.user_id)


def review(reviewer: "AuthUser", expense_id: str, status: str) -> dict[str, Any]:
    if reviewer.role not in REVIEWER_ROLES:
        raise PermissionDenied("Only hr or admins can review expenses")

    supabase = get_supabase_client(service_role=True)
    found = supabase.table(EXPENSES_TABLE).select("*").eq("id", expense_id).limit(1).execute()
    if not found.data:
        raise NotFound(f"Expense '{expense_id}' not found")
    expense = found.data[0]
    if expense.get("employee_id") == reviewer.user_id:
        raise PermissionDenied("You cannot review your own expense")
    if expense.get("status") != "pending":
        raise Conflict(f"Expense is already {expense.get('status')}")

    changes = {
        "status": status,
        "reviewed_by": reviewer.user_id,
        "reviewed_at": utc_now().isoformat(),
    }
    result = (
        supabase.table(EXPENSES_TABLE)
        .update(changes)
        .eq("id", expense_id)
        .eq("status", "pending")
        .execute()
    )
    log.info("expense_reviewed", expense_id=expense_id, status=status, reviewer=reviewer.user_id)
    return result.data[0] if result.data else {**expense, **changes}
