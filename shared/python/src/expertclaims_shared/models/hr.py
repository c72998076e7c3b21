"""
models/hr.py: Pydantic models for the employee_leaves, employee_expenses
and employee_payslips tables.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expertclaims_shared.constants import ReviewStatus


class LeaveApplication(BaseModel):
    """Matches the employee_leaves table row."""

    id: UUID = Field(default_factory=uuid4)
    employee_id: str
    leave_type: str
    from_date: date
    to_date: date
    total_days: int
    reason: str | None = None
    status: ReviewStatus = "pending"
    applied_at: datetime | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_comment: str | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "LeaveApplication":
        return cls(**row)

    def to_insert_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Expense(BaseModel):
    """Matches the employee_expenses table row."""

    id: UUID = Field(default_factory=uuid4)
    employee_id: str
    expense_type: str
    amount: Decimal = Field(gt=0)
    expense_date: date
    description: str | None = None
    receipt_path: str | None = None
    status: ReviewStatus = "pending"
    submitted_at: datetime | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Expense":
        return cls(**row)

    def to_insert_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", exclude_none=True)
        data["amount"] = float(self.amount)
        return data


class Payslip(BaseModel):
    """
    Matches the employee_payslips table row.

    Unique on (employee_id, month); month is "YYYY-MM".
    """

    id: UUID = Field(default_factory=uuid4)
    employee_id: str
    month: str
    gross_pay: Decimal = Field(ge=0)
    net_pay: Decimal = Field(ge=0)
    payslip_file: str | None = None
    compensation_letter: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Payslip":
        return cls(**row)

    def to_insert_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", exclude={"created_at"}, exclude_none=True)
        data["gross_pay"] = float(self.gross_pay)
        data["net_pay"] = float(self.net_pay)
        return data
