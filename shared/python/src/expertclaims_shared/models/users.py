"""
models/users.py: Pydantic model for the profiles table.

Every portal account (admin, hr, employee, partner, customer) is one
profiles row; role-specific details live in the ``details`` JSON column.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expertclaims_shared.constants import Role

PRIVATE_FIELDS = frozenset({"password_hash"})


class Profile(BaseModel):
    """Matches the profiles table row."""

    id: UUID = Field(default_factory=uuid4)
    email: str
    full_name: str
    role: Role
    phone: str | None = None
    department: str | None = None
    designation: str | None = None
    password_hash: str | None = None
    is_active: bool = True
    deleted_flag: bool = False
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Profile":
        return cls(**row)

    def to_insert_dict(self) -> dict[str, Any]:
        return self.model_dump(
            mode="json", exclude={"created_at", "updated_at"}, exclude_none=True
        )

    def to_public_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude=set(PRIVATE_FIELDS))


def public_profile(row: dict[str, Any]) -> dict[str, Any]:
    """Strip private columns from a raw profiles row."""
    return {k: v for k, v in row.items() if k not in PRIVATE_FIELDS}
