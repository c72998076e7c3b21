"""Case (backlog / task) endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile

from expertclaims_api.dependencies import (
    AuthUser,
    PaginationParams,
    SortParams,
    require_admin,
    require_roles,
    require_staff,
    require_user,
)
from expertclaims_api.responses import paginated_response, wrap_response
from expertclaims_api.schemas import (
    CaseCreate,
    CaseUpdate,
    CommentCreate,
    PaymentPhaseCreate,
    StakeholderCreate,
)
from expertclaims_api.services import case_service
from expertclaims_api.utils.notifier import notifier

router = APIRouter(prefix="/cases", tags=["cases"])


@router.get("")
async def list_cases(
    pagination: PaginationParams = Depends(),
    sort: SortParams = Depends(),
    status: str | None = Query(None),
    stage: str | None = Query(None),
    priority: str | None = Query(None),
    assigned_to: str | None = Query(None),
    q: str | None = Query(None, description="Search case titles"),
    due_after: date | None = Query(None),
    due_before: date | None = Query(None),
    user: AuthUser = Depends(require_user),
):
    data, total = case_service.list_cases(
        user,
        pagination,
        status=status,
        stage=stage,
        priority=priority,
        assigned_to=assigned_to,
        q=q,
        due_after=due_after,
        due_before=due_before,
        sort_by=sort.sort_by,
        sort_dir=sort.sort_dir,
    )
    return paginated_response(
        data,
        total,
        pagination,
        "/v1/cases",
        {
            "status": status, "stage": stage, "priority": priority,
            "assigned_to": assigned_to, "q": q,
            "due_after": due_after.isoformat() if due_after else None,
            "due_before": due_before.isoformat() if due_before else None,
            "sort_by": sort.sort_by, "sort_dir": sort.sort_dir if sort.sort_by else None,
        },
    )


@router.get("/summary")
async def case_summary(user: AuthUser = Depends(require_user)):
    return wrap_response(case_service.summarize(user))


@router.post("", status_code=201)
async def create_case(
    body: CaseCreate,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(require_roles("employee", "hr", "admin", "partner")),
):
    data = case_service.create_case(user, body)
    background_tasks.add_task(
        notifier.emit_event,
        "case_created",
        case_id=data.get("id"),
        task_id=data.get("task_id"),
        created_by=user.user_id,
        role=user.role,
    )
    return wrap_response(data)


@router.get("/{case_id}")
async def get_case(case_id: str, user: AuthUser = Depends(require_user)):
    return wrap_response(case_service.get_case(user, case_id))


@router.patch("/{case_id}")
async def update_case(
    case_id: str,
    body: CaseUpdate,
    user: AuthUser = Depends(require_staff),
):
    return wrap_response(case_service.update_case(user, case_id, body))


@router.delete("/{case_id}", status_code=204)
async def delete_case(case_id: str, user: AuthUser = Depends(require_admin)):
    case_service.delete_case(user, case_id)


@router.post("/{case_id}/comments", status_code=201)
async def add_comment(
    case_id: str,
    body: CommentCreate,
    user: AuthUser = Depends(require_user),
):
    data = case_service.add_comment(
        user, case_id, body.comment_text,
        is_internal=body.is_internal, hours_spent=body.hours_spent,
    )
    return wrap_response(data)


@router.get("/{case_id}/stakeholders")
async def list_stakeholders(case_id: str, user: AuthUser = Depends(require_staff)):
    return wrap_response(case_service.list_stakeholders(user, case_id))


@router.post("/{case_id}/stakeholders", status_code=201)
async def add_stakeholder(
    case_id: str,
    body: StakeholderCreate,
    user: AuthUser = Depends(require_staff),
):
    return wrap_response(case_service.add_stakeholder(user, case_id, body))


@router.delete("/{case_id}/stakeholders/{stakeholder_id}", status_code=204)
async def remove_stakeholder(
    case_id: str,
    stakeholder_id: str,
    user: AuthUser = Depends(require_staff),
):
    case_service.remove_stakeholder(user, case_id, stakeholder_id)


@router.post("/{case_id}/documents", status_code=201)
async def upload_document(
    case_id: str,
    file: UploadFile = File(...),
    user: AuthUser = Depends(require_user),
):
    content = await file.read()
    data = case_service.upload_document(
        user,
        case_id,
        filename=file.filename or "document",
        content=content,
        content_type=file.content_type,
    )
    return wrap_response(data)


@router.get("/{case_id}/payment-phases")
async def list_payment_phases(case_id: str, user: AuthUser = Depends(require_user)):
    return wrap_response(case_service.list_payment_phases(user, case_id))


@router.post("/{case_id}/payment-phases", status_code=201)
async def add_payment_phase(
    case_id: str,
    body: PaymentPhaseCreate,
    user: AuthUser = Depends(require_staff),
):
    return wrap_response(case_service.add_payment_phase(user, case_id, body))
