"""Partner registration, referred cases and stage bonuses."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any

import structlog

from expertclaims_shared.db import get_supabase_client
from expertclaims_shared.models.partners import BonusCalculation
from expertclaims_shared.models.users import Profile
from expertclaims_shared.security import hash_password, password_problems

from expertclaims_api.errors import Conflict, InvalidRequest, PermissionDenied
from expertclaims_api.schemas import PartnerSignup
from expertclaims_api.utils.pagination import PaginationParams

if TYPE_CHECKING:
    from expertclaims_api.middleware.auth import AuthUser

log = structlog.get_logger(__name__)


def signup(payload: PartnerSignup) -> dict[str, Any]:
    """Register a partner. The account stays inactive until an admin activates it."""
    problems = password_problems(payload.password)
    if problems:
        raise InvalidRequest("Password does not meet the policy", details={"password": problems})

    supabase = get_supabase_client(service_role=True)
    existing = supabase.table("profiles").select("id").eq("email", payload.email).limit(1).execute()
    if existing.data:
        raise Conflict("An account with this email already exists")

    profile = Profile(
        email=payload.email,
        full_name=payload.full_name,
        role="partner",
        phone=payload.phone,
        password_hash=hash_password(payload.password),
        is_active=False,
        details=payload.model_dump(
            include={"company_name", "address", "pan_number", "gst_number"},
            exclude_none=True,
        ),
    )
    result = supabase.table("profiles").insert(profile.to_insert_dict()).execute()
    log.info("partner_registered", partner_id=str(profile.id))
    row = result.data[0] if result.data else profile.to_insert_dict()
    return {k: v for k, v in row.items() if k != "password_hash"}


def referrals(user: "AuthUser", pagination: PaginationParams) -> tuple[list[dict[str, Any]], int]:
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table("tasks")
        .select("id, task_id, title, current_status, ticket_stage, customer_id, created_at", count="exact")
        .eq("referring_partner_id", user.user_id)
        .eq("deleted_flag", False)
        .order("created_at", desc=True)
        .range(pagination.offset, pagination.range_end)
        .execute()
    )
    return result.data or [], result.count or 0


def bonus_status(user: "AuthUser", partner_id: str) -> dict[str, Any]:
    """Stage bonuses owed to a partner. Partners may only read their own."""
    if user.role != "admin" and not (user.role == "partner" and user.user_id == partner_id):
        raise PermissionDenied("You can only view your own bonus status")

    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table("bonus_calculations")
        .select("*")
        .eq("partner_id", partner_id)
        .order("calculation_id", desc=True)
        .execute()
    )
    calculations = [BonusCalculation.from_db_row(row) for row in result.data or []]
    total = sum((c.stage_bonus_amount for c in calculations), Decimal("0"))
    return {
        "partner_id": partner_id,
        "total_calculations": len(calculations),
        "total_bonus_amount": str(total),
        "calculations": [c.model_dump(mode="json") for c in calculations],
    }
