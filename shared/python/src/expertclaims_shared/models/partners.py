"""
models/partners.py: Pydantic model for the bonus_calculations table.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel


class BonusCalculation(BaseModel):
    """Matches the bonus_calculations table row (one stage bonus owed to a partner)."""

    calculation_id: int
    partner_id: str
    case_id: str
    stage_bonus_amount: Decimal
    case_value: Decimal | None = None
    customer_first_name: str | None = None
    customer_last_name: str | None = None
    payment_date: date | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "BonusCalculation":
        return cls(**row)
