"""Reference data for case forms: case types, required documents, stages and people pickers."""

from __future__ import annotations

from typing import Any

from expertclaims_shared.constants import TICKET_STAGES
from expertclaims_shared.db import get_supabase_client
from expertclaims_shared.models.users import public_profile

from expertclaims_api.utils.cache import directory_cache, lookup_cache
from expertclaims_api.utils.filtering import apply_in_filter, apply_text_search

_DIRECTORY_COLUMNS = "id, email, full_name, phone, role, department, designation"


def list_case_types() -> list[dict[str, Any]]:
    def load() -> list[dict[str, Any]]:
        supabase = get_supabase_client(service_role=True)
        result = (
            supabase.table("case_types")
            .select("*")
            .eq("is_active", True)
            .order("case_type_name")
            .execute()
        )
        return result.data or []

    return lookup_cache.get_or_load("case_types", load)


def required_documents(case_type_id: int) -> list[dict[str, Any]]:
    def load() -> list[dict[str, Any]]:
        supabase = get_supabase_client(service_role=True)
        result = (
            supabase.table("document_categories")
            .select("*")
            .eq("case_type_id", case_type_id)
            .eq("is_active", True)
            .order("document_name")
            .execute()
        )
        return result.data or []

    return lookup_cache.get_or_load(f"documents:{case_type_id}", load)


def list_stages() -> list[dict[str, str]]:
    return [{"value": stage, "label": stage.title()} for stage in TICKET_STAGES]


def _directory(roles: tuple[str, ...], q: str | None) -> list[dict[str, Any]]:
    def load() -> list[dict[str, Any]]:
        supabase = get_supabase_client(service_role=True)
        query = (
            supabase.table("profiles")
            .select(_DIRECTORY_COLUMNS)
            .eq("is_active", True)
            .eq("deleted_flag", False)
        )
        query = apply_in_filter(query, "role", roles)
        query = apply_text_search(query, "full_name", q)
        result = query.order("full_name").execute()
        return [public_profile(row) for row in result.data or []]

    return directory_cache.get_or_load(f"{','.join(roles)}:{q or ''}", load)


def list_customers(q: str | None = None) -> list[dict[str, Any]]:
    return _directory(("customer",), q)


def list_employees(q: str | None = None) -> list[dict[str, Any]]:
    return _directory(("employee", "hr"), q)
