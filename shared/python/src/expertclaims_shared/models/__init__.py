"""
expertclaims_shared.models: Pydantic models matching each database table.

These models are used by the API services to validate rows before writing
to Supabase and to read typed records (sessions, login challenges) back.

Most models provide:
  .from_db_row(row: dict) -> Model
  .to_insert_dict() -> dict
"""

from expertclaims_shared.models.cases import (
    Case,
    CaseAttachment,
    CaseComment,
    CaseStakeholder,
    PaymentPhase,
    StatusHistoryEntry,
)
from expertclaims_shared.models.hr import Expense, LeaveApplication, Payslip
from expertclaims_shared.models.partners import BonusCalculation
from expertclaims_shared.models.sessions import IssuedSession, LoginChallenge, SessionRecord
from expertclaims_shared.models.users import Profile, public_profile

__all__ = [
    "Profile",
    "public_profile",
    "SessionRecord",
    "IssuedSession",
    "LoginChallenge",
    "Case",
    "CaseComment",
    "CaseStakeholder",
    "StatusHistoryEntry",
    "CaseAttachment",
    "PaymentPhase",
    "LeaveApplication",
    "Expense",
    "Payslip",
    "BonusCalculation",
]
