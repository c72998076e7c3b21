"""Pydantic schemas for API request bodies."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from expertclaims_shared.constants import LoginStep, Role, TaskPriority, TaskStatus, TicketStage


def _normalize_email(v: Any) -> Any:
    return v.strip().lower() if isinstance(v, str) else v


def _reject_null(v: Any) -> Any:
    if v is None:
        raise ValueError("may be omitted but not set to null")
    return v


# ============================================================================
# Auth schemas
# ============================================================================


class LoginRequest(BaseModel):
    """
    Body of POST /v1/auth/login.

    ``step`` selects the stage of the login handshake; OTP roles send
    credential_validation, send_otp and final_login in turn.
    """

    role: Role
    email: str = Field(min_length=3, max_length=320)
    password: str | None = None
    mobile: str | None = None
    step: LoginStep = "login"
    otp: str | None = None
    challenge_id: UUID | None = None

    normalize_email = field_validator("email", mode="before")(_normalize_email)


class RefreshRequest(BaseModel):
    jwt_token: str | None = None


# ============================================================================
# Case schemas
# ============================================================================


class CaseCreate(BaseModel):
    """Schema for opening a new case."""

    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    task_summary: str | None = None
    priority: TaskPriority = "medium"
    ticket_stage: TicketStage = "analysis"
    case_type_id: int | None = None
    assigned_to: str | None = None
    customer_id: str | None = None
    due_date: date | None = None
    case_value: Decimal | None = Field(default=None, ge=0)
    value_currency: str = "INR"


class CaseUpdate(BaseModel):
    """Schema for editing a case. Only the fields sent are changed."""

    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    task_summary: str | None = None
    current_status: TaskStatus | None = None
    ticket_stage: TicketStage | None = None
    priority: TaskPriority | None = None
    case_type_id: int | None = None
    assigned_to: str | None = None
    customer_id: str | None = None
    due_date: date | None = None
    case_value: Decimal | None = Field(default=None, ge=0)
    change_reason: str | None = None

    required_columns = field_validator(
        "title", "current_status", "ticket_stage", "priority", mode="before"
    )(_reject_null)


class CommentCreate(BaseModel):
    comment_text: str
    is_internal: bool = False
    hours_spent: Decimal | None = Field(default=None, ge=0)


class StakeholderCreate(BaseModel):
    stakeholder_name: str = Field(min_length=1)
    contact_email: str | None = None
    contact: str | None = None
    role: str | None = None
    notes: str | None = None


class PaymentPhaseCreate(BaseModel):
    phase_name: str = Field(min_length=1)
    due_date: date | None = None
    phase_amount: Decimal = Field(gt=0)


# ============================================================================
# HR schemas
# ============================================================================


class LeaveApply(BaseModel):
    leave_type: str = Field(min_length=1)
    from_date: date
    to_date: date
    reason: str | None = None


class ReviewDecision(BaseModel):
    """Approve or reject a pending leave or expense."""

    status: Literal["approved", "rejected"]
    comment: str | None = None


class ExpenseSubmit(BaseModel):
    expense_type: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    expense_date: date
    description: str | None = None
    receipt_path: str | None = None


class PayslipCreate(BaseModel):
    employee_id: str
    month: str = Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    gross_pay: Decimal = Field(ge=0)
    net_pay: Decimal = Field(ge=0)
    payslip_file: str | None = None
    compensation_letter: str | None = None


# ============================================================================
# Partner and user schemas
# ============================================================================


class PartnerSignup(BaseModel):
    """Public partner registration form."""

    email: str = Field(min_length=3, max_length=320)
    password: str
    full_name: str = Field(min_length=1)
    phone: str | None = None
    company_name: str | None = None
    address: str | None = None
    pan_number: str | None = None
    gst_number: str | None = None

    normalize_email = field_validator("email", mode="before")(_normalize_email)


class UserCreate(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    full_name: str = Field(min_length=1)
    role: Role
    password: str
    phone: str | None = None
    department: str | None = None
    designation: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    normalize_email = field_validator("email", mode="before")(_normalize_email)


class UserUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1)
    role: Role | None = None
    phone: str | None = None
    department: str | None = None
    designation: str | None = None
    password: str | None = None
    details: dict[str, Any] | None = None

    required_columns = field_validator("full_name", "role", mode="before")(_reject_null)


class ActiveToggle(BaseModel):
    is_active: bool


# ============================================================================
# Invoice schemas
# ============================================================================


class InvoicePreviewRequest(BaseModel):
    phase_id: str
