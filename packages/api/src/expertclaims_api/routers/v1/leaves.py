"""Leave management endpoints."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from expertclaims_api.dependencies import AuthUser, PaginationParams, require_roles, require_staff
from expertclaims_api.responses import paginated_response, wrap_response
from expertclaims_api.schemas import LeaveApply, ReviewDecision
from expertclaims_api.services import leave_service
from expertclaims_api.utils.notifier import notifier

router = APIRouter(prefix="/leaves", tags=["leaves"])


@router.post("", status_code=201)
async def apply_leave(body: LeaveApply, user: AuthUser = Depends(require_staff)):
    return wrap_response(leave_service.apply(user, body))


@router.get("/mine")
async def my_leaves(
    pagination: PaginationParams = Depends(),
    status: str | None = Query(None),
    user: AuthUser = Depends(require_staff),
):
    data, total = leave_service.list_own(user, pagination, status=status)
    return paginated_response(
        data, total, pagination, "/v1/leaves/mine", {"status": status},
        summary=leave_service.status_counts(employee_id=user.user_id),
    )


@router.get("")
async def all_leaves(
    pagination: PaginationParams = Depends(),
    status: str | None = Query(None),
    employee_id: str | None = Query(None),
    user: AuthUser = Depends(require_roles("hr", "admin")),
):
    data, total = leave_service.list_all(pagination, status=status, employee_id=employee_id)
    return paginated_response(
        data, total, pagination, "/v1/leaves", {"status": status, "employee_id": employee_id},
        summary=leave_service.status_counts(employee_id=employee_id),
    )


@router.post("/{leave_id}/review")
async def review_leave(
    leave_id: str,
    body: ReviewDecision,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(require_roles("hr", "admin")),
):
    data = leave_service.review(user, leave_id, body.status, body.comment)
    background_tasks.add_task(
        notifier.emit_event,
        "leave_reviewed",
        leave_id=leave_id,
        employee_id=data.get("employee_id"),
        status=body.status,
        reviewed_by=user.user_id,
    )
    return wrap_response(data)


@router.post("/{leave_id}/withdraw")
async def withdraw_leave(leave_id: str, user: AuthUser = Depends(require_staff)):
    return wrap_response(leave_service.withdraw(user, leave_id))
