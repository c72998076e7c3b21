"""Expense claim endpoints."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from expertclaims_api.dependencies import AuthUser, PaginationParams, require_roles, require_staff
from expertclaims_api.responses import paginated_response, wrap_response
from expertclaims_api.schemas import ExpenseSubmit, ReviewDecision
from expertclaims_api.services import expense_service
from expertclaims_api.utils.notifier import notifier

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.post("", status_code=201)
async def submit_expense(body: ExpenseSubmit, user: AuthUser = Depends(require_staff)):
    return wrap_response(expense_service.submit(user, body))


@router.get("/mine")
async def my_expenses(
    pagination: PaginationParams = Depends(),
    status: str | None = Query(None),
    user: AuthUser = Depends(require_staff),
):
    data, total = expense_service.list_own(user, pagination, status=status)
    return paginated_response(data, total, pagination, "/v1/expenses/mine", {"status": status})


@router.get("")
async def all_expenses(
    pagination: PaginationParams = Depends(),
    status: str | None = Query(None),
    employee_id: str | None = Query(None),
    user: AuthUser = Depends(require_roles("hr", "admin")),
):
    data, total = expense_service.list_all(pagination, status=status, employee_id=employee_id)
    return paginated_response(
        data, total, pagination, "/v1/expenses", {"status": status, "employee_id": employee_id},
    )


@router.post("/{expense_id}/review")
async def review_expense(
    expense_id: str,
    body: ReviewDecision,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(require_roles("hr", "admin")),
):
    data = expense_service.review(user, expense_id, body.status)
    background_tasks.add_task(
        notifier.emit_event,
        "expense_reviewed",
        expense_id=expense_id,
        employee_id=data.get("employee_id"),
        status=body.status,
        reviewed_by=user.user_id,
    )
    return wrap_response(data)
