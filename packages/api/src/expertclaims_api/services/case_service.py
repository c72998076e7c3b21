"""
Case (task / backlog item) service.

Every read and write goes through the caller's visibility scope:
admins see all cases, employees and hr see cases assigned to or created by
them, partners see cases they referred and customers see their own. A case
outside the scope answers NotFound, never PermissionDenied, so callers cannot
probe for case ids.
"""

from __future__ import annotations

import re
import uuid
from collections import Counter
from datetime import date
from typing import TYPE_CHECKING, Any

import structlog

from expertclaims_shared.config import settings
from expertclaims_shared.constants import (
    EXTERNAL_ROLES,
    ID_SORT_COLUMNS,
    STAFF_ROLES,
    STATUS_TRANSITIONS,
    TASK_STATUSES,
    TERMINAL_STATUSES,
)
from expertclaims_shared.db import get_supabase_client
from expertclaims_shared.models.cases import (
    Case,
    CaseAttachment,
    CaseComment,
    CaseStakeholder,
    PaymentPhase,
    StatusHistoryEntry,
)

from expertclaims_api.errors import Conflict, InvalidRequest, NotFound, PermissionDenied
from expertclaims_api.schemas import (
    CaseCreate,
    CaseUpdate,
    PaymentPhaseCreate,
    StakeholderCreate,
)
from expertclaims_api.utils.filtering import apply_date_filters, apply_eq_filters, apply_text_search
from expertclaims_api.utils.pagination import PaginationParams
from expertclaims_api.utils.sorting import sort_rows

if TYPE_CHECKING:
    from expertclaims_api.middleware.auth import AuthUser

log = structlog.get_logger(__name__)

TASKS_TABLE = "tasks"
COMMENTS_TABLE = "task_comments"
STAKEHOLDERS_TABLE = "task_stakeholders"
HISTORY_TABLE = "task_status_history"
ATTACHMENTS_TABLE = "task_attachments"
PHASES_TABLE = "case_payment_phases"

SORTABLE_COLUMNS = frozenset({
    "title", "current_status", "ticket_stage", "priority", "due_date",
    "created_at", "updated_at", "case_value",
})

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


def _scope(query: Any, user: "AuthUser") -> Any:
    if user.role == "admin":
        return query
    if user.role in ("employee", "hr"):
        return query.or_(f"assigned_to.eq.{user.user_id},created_by.eq.{user.user_id}")
    if user.role == "partner":
        return query.eq("referring_partner_id", user.user_id)
    if user.role == "customer":
        return query.eq("customer_id", user.user_id)
    raise PermissionDenied("Your role cannot view cases")


def _fetch_case(user: "AuthUser", case_id: str) -> dict[str, Any]:
    supabase = get_supabase_client(service_role=True)
    query = (
        supabase.table(TASKS_TABLE)
        .select("*")
        .eq("id", case_id)
        .eq("deleted_flag", False)
    )
    result = _scope(query, user).limit(1).execute()
    if not result.data:
        raise NotFound(f"Case '{case_id}' not found")
    return result.data[0]


def _children(table: str, case_id: str, *, order: str = "created_at", desc: bool = False) -> list[dict[str, Any]]:
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(table)
        .select("*")
        .eq("task_id", case_id)
        .order(order, desc=desc)
        .execute()
    )
    return result.data or []


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def list_cases(
    user: "AuthUser",
    pagination: PaginationParams,
    *,
    status: str | None = None,
    stage: str | None = None,
    priority: str | None = None,
    assigned_to: str | None = None,
    q: str | None = None,
    due_after: date | None = None,
    due_before: date | None = None,
    sort_by: str | None = None,
    sort_dir: str = "asc",
) -> tuple[list[dict[str, Any]], int]:
    supabase = get_supabase_client(service_role=True)
    query = (
        supabase.table(TASKS_TABLE)
        .select("*", count="exact")
        .eq("deleted_flag", False)
    )
    query = _scope(query, user)
    query = apply_eq_filters(query, {
        "current_status": status,
        "ticket_stage": stage,
        "priority": priority,
        "assigned_to": assigned_to,
    })
    query = apply_text_search(query, "title", q)
    query = apply_date_filters(query, "due_date", due_after, due_before)

    if sort_by in ID_SORT_COLUMNS:
        # case numbers sort on their trailing sequence, which Postgres can't order by
        result = query.limit(settings.max_sort_rows).execute()
        rows = sort_rows(result.data or [], sort_by, sort_dir)
        total = result.count if result.count is not None else len(rows)
        return pagination.slice(rows), total

    sort_by = sort_by or "created_at"
    if sort_by not in SORTABLE_COLUMNS:
        raise InvalidRequest(
            f"Cannot sort by '{sort_by}'",
            details={"sortable": sorted(SORTABLE_COLUMNS | ID_SORT_COLUMNS)},
        )
    result = (
        query.order(sort_by, desc=sort_dir == "desc")
        .range(pagination.offset, pagination.range_end)
        .execute()
    )
    return result.data or [], result.count or 0


def get_case(user: "AuthUser", case_id: str) -> dict[str, Any]:
    """A case with its comments, stakeholders, history, attachments and payment phases."""
    case = _fetch_case(user, case_id)
    comments = _children(COMMENTS_TABLE, case_id)
    if user.role in EXTERNAL_ROLES:
        comments = [c for c in comments if not c.get("is_internal")]
    return {
        **case,
        "comments": comments,
        "stakeholders": _children(STAKEHOLDERS_TABLE, case_id, order="stakeholder_name"),
        "status_history": _children(HISTORY_TABLE, case_id, desc=True),
        "attachments": _children(ATTACHMENTS_TABLE, case_id),
        "payment_phases": _children(PHASES_TABLE, case_id, order="due_date"),
    }


def summarize(user: "AuthUser") -> dict[str, int]:
    """Case counts by status within the caller's scope."""
    supabase = get_supabase_client(service_role=True)
    query = (
        supabase.table(TASKS_TABLE)
        .select("current_status")
        .eq("deleted_flag", False)
    )
    result = _scope(query, user).execute()
    counts = Counter(row.get("current_status") for row in result.data or [])
    summary = {status: counts.get(status, 0) for status in TASK_STATUSES}
    summary["total"] = sum(counts.values())
    return summary


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def _next_task_id() -> str:
    supabase = get_supabase_client(service_role=True)
    result = supabase.rpc("generate_task_id", {}).execute()
    task_id = result.data
    if isinstance(task_id, list):
        task_id = task_id[0] if task_id else None
    if isinstance(task_id, dict):
        task_id = next(iter(task_id.values()), None)
    if not task_id:
        raise RuntimeError("generate_task_id returned no case number")
    return str(task_id)


def _record_history(
    case_id: str,
    user: "AuthUser",
    *,
    previous_status: str | None,
    new_status: str,
    previous_stage: str | None,
    new_stage: str,
    reason: str | None,
) -> None:
    entry = StatusHistoryEntry(
        task_id=case_id,
        changed_by=user.user_id,
        previous_status=previous_status,
        new_status=new_status,
        previous_stage=previous_stage,
        new_stage=new_stage,
        change_reason=reason,
    )
    supabase = get_supabase_client(service_role=True)
    supabase.table(HISTORY_TABLE).insert(entry.to_insert_dict()).execute()


def create_case(user: "AuthUser", payload: CaseCreate) -> dict[str, Any]:
    if user.role not in (*STAFF_ROLES, "partner"):
        raise PermissionDenied("Only staff and partners can open cases")

    case = Case(
        task_id=_next_task_id(),
        created_by=user.user_id,
        referring_partner_id=user.user_id if user.role == "partner" else None,
        **payload.model_dump(),
    )
    supabase = get_supabase_client(service_role=True)
    result = supabase.table(TASKS_TABLE).insert(case.to_insert_dict()).execute()
    row = result.data[0] if result.data else case.to_insert_dict()

    _record_history(
        str(case.id),
        user,
        previous_status=None,
        new_status=case.current_status,
        previous_stage=None,
        new_stage=case.ticket_stage,
        reason="Case created",
    )
    log.info("case_created", case_id=str(case.id), task_id=case.task_id, created_by=user.user_id)
    return row


def check_transition(current: str, new: str, role: str) -> None:
    """Raise Conflict unless ``role`` may move a case from ``current`` to ``new``."""
    if current == new:
        return
    if current in TERMINAL_STATUSES:
        if role == "admin":
            return
        raise Conflict(
            f"Case is {current}; only an admin can reopen it",
            details={"from": current, "to": new},
        )
    if new not in STATUS_TRANSITIONS.get(current, frozenset()):
        raise Conflict(
            f"Cannot move a case from '{current}' to '{new}'",
            details={"from": current, "to": new},
        )


def update_case(user: "AuthUser", case_id: str, changes: CaseUpdate) -> dict[str, Any]:
    if not user.is_staff:
        raise PermissionDenied("Only staff can edit cases")
    case = _fetch_case(user, case_id)
    updates = changes.model_dump(mode="json", exclude_unset=True, exclude={"change_reason"})
    if not updates:
        return case

    old_status, old_stage = case.get("current_status"), case.get("ticket_stage")
    new_status = updates.get("current_status") or old_status
    new_stage = updates.get("ticket_stage") or old_stage
    check_transition(old_status, new_status, user.role)

    supabase = get_supabase_client(service_role=True)
    result = supabase.table(TASKS_TABLE).update(updates).eq("id", case_id).execute()

    if new_status != old_status or new_stage != old_stage:
        _record_history(
            case_id,
            user,
            previous_status=old_status,
            new_status=new_status,
            previous_stage=old_stage,
            new_stage=new_stage,
            reason=changes.change_reason,
        )
        log.info(
            "case_status_changed",
            case_id=case_id,
            status=f"{old_status}->{new_status}",
            stage=f"{old_stage}->{new_stage}",
        )
    return result.data[0] if result.data else {**case, **updates}


def delete_case(user: "AuthUser", case_id: str) -> None:
    if user.role != "admin":
        raise PermissionDenied("Only admins can delete cases")
    _fetch_case(user, case_id)
    supabase = get_supabase_client(service_role=True)
    supabase.table(TASKS_TABLE).update({"deleted_flag": True}).eq("id", case_id).execute()
    log.info("case_deleted", case_id=case_id)


# ---------------------------------------------------------------------------
# Comments, stakeholders, attachments, payment phases
# ---------------------------------------------------------------------------


def add_comment(
    user: "AuthUser",
    case_id: str,
    text: str,
    *,
    is_internal: bool = False,
    hours_spent: Any = None,
) -> dict[str, Any]:
    text = (text or "").strip()
    if not text:
        raise InvalidRequest("Comment cannot be empty")
    if is_internal and user.is_external:
        raise PermissionDenied("Only staff can post internal comments")
    _fetch_case(user, case_id)

    comment = CaseComment(
        task_id=case_id,
        created_by=user.user_id,
        comment_text=text,
        is_internal=is_internal,
        hours_spent=hours_spent,
    )
    supabase = get_supabase_client(service_role=True)
    result = supabase.table(COMMENTS_TABLE).insert(comment.to_insert_dict()).execute()
    return result.data[0] if result.data else comment.to_insert_dict()


def list_stakeholders(user: "AuthUser", case_id: str) -> list[dict[str, Any]]:
    _fetch_case(user, case_id)
    return _children(STAKEHOLDERS_TABLE, case_id, order="stakeholder_name")


def add_stakeholder(user: "AuthUser", case_id: str, payload: StakeholderCreate) -> dict[str, Any]:
    _fetch_case(user, case_id)
    stakeholder = CaseStakeholder(task_id=case_id, **payload.model_dump())
    supabase = get_supabase_client(service_role=True)
    result = supabase.table(STAKEHOLDERS_TABLE).insert(stakeholder.to_insert_dict()).execute()
    return result.data[0] if result.data else stakeholder.to_insert_dict()


def remove_stakeholder(user: "AuthUser", case_id: str, stakeholder_id: str) -> None:
    _fetch_case(user, case_id)
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table(STAKEHOLDERS_TABLE)
        .delete()
        .eq("id", stakeholder_id)
        .eq("task_id", case_id)
        .execute()
    )
    if not result.data:
        raise NotFound(f"Stakeholder '{stakeholder_id}' not found")


def safe_filename(name: str) -> str:
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _UNSAFE_FILENAME.sub("_", base).strip("._")
    return cleaned or "document"


def upload_document(
    user: "AuthUser",
    case_id: str,
    *,
    filename: str,
    content: bytes,
    content_type: str | None = None,
) -> dict[str, Any]:
    """Store a file in the case bucket and record it against the case."""
    if not content:
        raise InvalidRequest("Uploaded file is empty")
    _fetch_case(user, case_id)

    path = f"cases/{case_id}/{uuid.uuid4().hex}-{safe_filename(filename)}"
    supabase = get_supabase_client(service_role=True)
    supabase.storage.from_(settings.storage_bucket).upload(
        path,
        content,
        {"content-type": content_type or "application/octet-stream"},
    )

    attachment = CaseAttachment(
        task_id=case_id,
        uploaded_by=user.user_id,
        file_name=filename,
        file_path=path,
        file_size=len(content),
        file_type=content_type,
    )
    result = supabase.table(ATTACHMENTS_TABLE).insert(attachment.to_insert_dict()).execute()
    log.info("document_uploaded", case_id=case_id, path=path, size=len(content))
    return result.data[0] if result.data else attachment.to_insert_dict()


def list_payment_phases(user: "AuthUser", case_id: str) -> list[dict[str, Any]]:
    _fetch_case(user, case_id)
    return _children(PHASES_TABLE, case_id, order="due_date")


def add_payment_phase(user: "AuthUser", case_id: str, payload: PaymentPhaseCreate) -> dict[str, Any]:
    if not user.is_staff:
        raise PermissionDenied("Only staff can add payment phases")
    _fetch_case(user, case_id)
    phase = PaymentPhase(task_id=case_id, created_by=user.user_id, **payload.model_dump())
    supabase = get_supabase_client(service_role=True)
    result = supabase.table(PHASES_TABLE).insert(phase.to_insert_dict()).execute()
    return result.data[0] if result.data else phase.to_insert_dict()
