"""
PostgREST filter builders shared by the list endpoints.

Every helper takes a Supabase query builder and returns it, so calls chain:

    query = apply_eq_filters(query, {"current_status": status, "priority": None})
    query = apply_text_search(query, "title", q)

``None`` and empty values never add a filter.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any

# Characters with meaning inside a PostgREST or=(...) expression or an ilike pattern
_RESERVED = re.compile(r"[,()%*\\]")


def search_term(raw: str | None) -> str:
    """Strip characters that would change the meaning of an ilike filter."""
    return _RESERVED.sub(" ", raw or "").strip()


def apply_eq_filters(query: Any, filters: dict[str, Any]) -> Any:
    for column, value in filters.items():
        if value is not None and value != "":
            query = query.eq(column, value)
    return query


def apply_in_filter(query: Any, column: str, values: Iterable[Any] | None) -> Any:
    values = list(values or ())
    if values:
        query = query.in_(column, values)
    return query


def apply_date_filters(query: Any, column: str, after: date | None, before: date | None) -> Any:
    """Inclusive date range on ``column``."""
    if after is not None:
        query = query.gte(column, after.isoformat())
    if before is not None:
        query = query.lte(column, before.isoformat())
    return query


def apply_text_search(query: Any, column: str, raw: str | None) -> Any:
    term = search_term(raw)
    if term:
        query = query.ilike(column, f"%{term}%")
    return query


def apply_any_text_search(query: Any, columns: Sequence[str], raw: str | None) -> Any:
    """Case-insensitive substring match on any of ``columns``."""
    term = search_term(raw)
    if term:
        query = query.or_(",".join(f"{column}.ilike.%{term}%" for column in columns))
    return query
