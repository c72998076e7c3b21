"""
models/cases.py: Pydantic models for the tasks table and its child tables.

A case (also called a task or backlog item in the portal) is one tasks row.
Comments, stakeholders, status history, attachments and payment phases hang
off it by ``task_id`` (the row's UUID, not the human-readable case number).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expertclaims_shared.constants import TaskPriority, TaskStatus, TicketStage


class Case(BaseModel):
    """Matches the tasks table row."""

    id: UUID = Field(default_factory=uuid4)
    task_id: str                     # human case number, e.g. "ECSI-25-242"
    title: str
    description: str | None = None
    task_summary: str | None = None
    current_status: TaskStatus = "new"
    ticket_stage: TicketStage = "analysis"
    priority: TaskPriority = "medium"
    case_type_id: int | None = None
    assigned_to: str | None = None
    customer_id: str | None = None
    referring_partner_id: str | None = None
    created_by: str
    due_date: date | None = None
    case_value: Decimal | None = None
    value_currency: str = "INR"
    deleted_flag: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Case":
        return cls(**row)

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "task_id": self.task_id,
            "title": self.title,
            "description": self.description,
            "task_summary": self.task_summary,
            "current_status": self.current_status,
            "ticket_stage": self.ticket_stage,
            "priority": self.priority,
            "case_type_id": self.case_type_id,
            "assigned_to": self.assigned_to,
            "customer_id": self.customer_id,
            "referring_partner_id": self.referring_partner_id,
            "created_by": self.created_by,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "case_value": float(self.case_value) if self.case_value is not None else None,
            "value_currency": self.value_currency,
            "deleted_flag": self.deleted_flag,
        }


class CaseComment(BaseModel):
    """Matches the task_comments table row."""

    id: UUID = Field(default_factory=uuid4)
    task_id: str
    created_by: str
    comment_text: str
    is_internal: bool = False
    hours_spent: Decimal | None = None
    created_at: datetime | None = None

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "task_id": self.task_id,
            "created_by": self.created_by,
            "comment_text": self.comment_text,
            "is_internal": self.is_internal,
            "hours_spent": float(self.hours_spent) if self.hours_spent is not None else None,
        }


class CaseStakeholder(BaseModel):
    """Matches the task_stakeholders table row."""

    id: UUID = Field(default_factory=uuid4)
    task_id: str
    stakeholder_name: str
    contact_email: str | None = None
    contact: str | None = None
    role: str | None = None
    notes: str | None = None

    def to_insert_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class StatusHistoryEntry(BaseModel):
    """Matches the task_status_history table row."""

    id: UUID = Field(default_factory=uuid4)
    task_id: str
    changed_by: str
    previous_status: TaskStatus | None = None
    new_status: TaskStatus
    previous_stage: TicketStage | None = None
    new_stage: TicketStage
    change_reason: str | None = None
    created_at: datetime | None = None

    def to_insert_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"created_at"})


class CaseAttachment(BaseModel):
    """Matches the task_attachments table row."""

    id: UUID = Field(default_factory=uuid4)
    task_id: str
    uploaded_by: str
    file_name: str
    file_path: str
    file_size: int | None = None
    file_type: str | None = None
    created_at: datetime | None = None

    def to_insert_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"created_at"}, exclude_none=True)


class PaymentPhase(BaseModel):
    """Matches the case_payment_phases table row."""

    id: UUID = Field(default_factory=uuid4)
    task_id: str
    phase_name: str
    due_date: date | None = None
    phase_amount: Decimal = Field(gt=0)
    created_by: str

    def to_insert_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "task_id": self.task_id,
            "phase_name": self.phase_name,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "phase_amount": float(self.phase_amount),
            "created_by": self.created_by,
        }
