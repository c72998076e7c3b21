"""
Leave applications.

Staff apply for leave; hr and admins review it. A leave moves
pending -> approved | rejected (reviewer) or pending -> withdrawn (owner),
and nothing leaves those end states.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

import structlog

from expertclaims_shared.constants import REVIEWER_ROLES
from expertclaims_shared.db import get_supabase_client
from expertclaims_shared.models.hr import LeaveApplication
from expertclaims_shared.time_utils import inclusive_days, utc_now

from expertclaims_api.errors import Conflict, InvalidRequest, NotFound, PermissionDenied
from expertclaims_api.schemas import LeaveApply
from expertclaims_api.utils.pagination import PaginationParams

if TYPE_CHECKING:
    from expertclaims_api.middleware.auth import AuthUser

log = structlog.get_logger(__name__)

LEAVES_TABLE = "employee_leaves"
BLOCKING_STATUSES = ("pending", "approved")


def apply(user: "AuthUser", payload: LeaveApply) -> dict[str, Any]:
    if not user.is_staff:
        raise PermissionDenied("Only staff can apply for leave")
    if payload.to_date < payload.from_date:
        raise InvalidRequest("to_date must be on or after from_date")

    supabase = get_supabase_client(service_role=True)
    overlapping = (
        supabase.table(LEAVES_TABLE)
        .select("id, from_date, to_date, status")
        .eq("employee_id", user.user_id)
        .in_("status", list(BLOCKING_STATUSES))
        .lte("from_date", payload.to_date.isoformat())
        .gte("to_date", payload.from_date.isoformat())
        .execute()
    )
    if overlapping.data:
        raise Conflict(
            "You already have leave booked in this period",
            details={"overlapping": [row["id"] for row in overlapping.data]},
        )

    leave = LeaveApplication(
        employee_id=user.user_id,
        leave_type=payload.leave_type,
        from_date=payload.from_date,
        to_date=payload.to_date,
        total_days=inclusive_days(payload.from_date, payload.to_date),
        reason=payload.reason,
        applied_at=utc_now(),
    )
    result = supabase.table(LEAVES_TABLE).insert(leave.to_insert_dict()).execute()
    log.info("leave_applied", leave_id=str(leave.id), employee_id=user.user_id, days=leave.total_days)
    return result.data[0] if result.data else leave.to_insert_dict()


def list_own(
    user: "AuthUser",
    pagination: PaginationParams,
    *,
    status: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    return list_all(pagination, status=status, employee_id=user.user_id)


def list_all(
    pagination: PaginationParams,
    *,
    status: str | None = None,
    employee_id: str | None = None,
) -> tuple[list[dict[str, Any]], int]:
    supabase = get_supabase_client(service_role=True)
    query = supabase.table(LEAVES_TABLE).select("*", count="exact")
    if status:
        query = query.eq("status", status)
    if employee_id:
        query = query.eq("employee_id", employee_id)
    result = (
        query.order("applied_at", desc=True)
        .range(pagination.offset, pagination.range_end)
        .execute()
    )
    return result.data or [], result.count or 0


def summary(rows: list[dict[str, Any]]) -> dict[str, int]:
    counts = Counter(row.get("status") for row in rows)
    return {
        "pending": counts.get("pending", 0),
        "approved": counts.get("approved", 0),
        "rejected": counts.get("rejected", 0),
    }


def status_counts(*, employee_id: str | None = None) -> dict[str, int]:
    """Summary over every leave in scope, not just the page being shown."""
    supabase = get_supabase_client(service_role=True)
    query = supabase.table(LEAVES_TABLE).select("status")
    if employee_id:
        query = query.eq("employee_id", employee_id)
    return summary(query.execute().data or [])


def _fetch(leave_id: str) -> dict[str, Any]:
    supabase = get_supabase_client(service_role=True)
    result = supabase.table(LEAVES_TABLE).select("*").eq("id", leave_id).limit(1).execute()
    if not result.data:
        raise NotFound(f"Leave '{leave_id}' not found")
    return result.data[0]


def review(
    reviewer: "AuthUser",
    leave_id: str,
    status: str,
    comment: str | None = None,
) -> dict[str, Any]:
    if reviewer.role not in REVIEWER_ROLES:
        raise PermissionDenied("Only hr or admins can review leave")
    leave = _fetch(leave_id)
    if leave.get("employee_id") == reviewer.user_id:
        raise PermissionDenied("You cannot review your own leave")
    if leave.get("status") != "pending":
        raise Conflict(f"Leave is already {leave.get('status')}")

    changes = {
        "status": status,
        "reviewed_by": reviewer.user_id,
        "reviewed_at": utc_now().isoformat(),
        "review_comment": comment,
    }
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(LEAVES_TABLE)
        .update(changes)
        .eq("id", leave_id)
        .eq("status", "pending")
        .execute()
    )
    log.info("leave_reviewed", leave_id=leave_id, status=status, reviewer=reviewer.user_id)
    return result.data[0] if result.data else {**leave, **changes}


def withdraw(user: "AuthUser", leave_id: str) -> dict[str, Any]:
    leave = _fetch(leave_id)
    if leave.get("employee_id") != user.user_id:
        raise NotFound(f"Leave '{leave_id}' not found")
    if leave.get("status") != "pending":
        raise Conflict(f"Leave is already {leave.get('status')}")

    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(LEAVES_TABLE)
        .update({"status": "withdrawn"})
        .eq("id", leave_id)
        .execute()
    )
    log.info("leave_withdrawn", leave_id=leave_id)
    return result.data[0] if result.data else {**leave, "status": "withdrawn"}
