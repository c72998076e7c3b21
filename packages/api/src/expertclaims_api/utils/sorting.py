"""
Table sorting with the portal's column rules.

Case numbers such as "ECSI-GA-25-080" must sort by their trailing sequence
(80), not lexically, so ID columns get a numeric key. Other columns sort
case-insensitively, ISO dates chronologically, and missing values as "".
"""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Any

from expertclaims_shared.constants import ID_SORT_COLUMNS, SortDirection
from expertclaims_shared.time_utils import parse_timestamp

_TRAILING_DIGITS = re.compile(r"(\d{3,})$")
_ALL_DIGITS = re.compile(r"^\d+$")


def toggle_direction(current: tuple[str, SortDirection] | None, column: str) -> SortDirection:
    """Clicking the active ascending column flips it; anything else sorts ascending."""
    if current is not None and current[0] == column and current[1] == "asc":
        return "desc"
    return "asc"


def trailing_number(value: Any) -> int:
    if value is None:
        return 0
    m = _TRAILING_DIGITS.search(str(value))
    return int(m.group(1)) if m else 0


def _application_number(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _ALL_DIGITS.match(value):
        return int(value)
    return 0


def _id_value(row: dict[str, Any], column: str) -> Any:
    if column == "id":
        return row.get("id") or row.get("task_id") or row.get("case_id")
    return row.get(column)


def _looks_like_date(value: Any) -> bool:
    return isinstance(value, str) and ("T" in value or "-" in value)


def _compare_plain(a: Any, b: Any) -> int:
    if a and _looks_like_date(a) and _looks_like_date(b):
        a_dt, b_dt = parse_timestamp(a), parse_timestamp(b)
        if a_dt is not None and b_dt is not None:
            return (a_dt > b_dt) - (a_dt < b_dt)
    if isinstance(a, str) and isinstance(b, str):
        a, b = a.lower(), b.lower()
    a = "" if a is None else a
    b = "" if b is None else b
    try:
        return (a > b) - (a < b)
    except TypeError:
        # mixed types: fall back to their string forms
        a, b = str(a), str(b)
        return (a > b) - (a < b)


def sort_rows(
    rows: list[dict[str, Any]],
    column: str,
    direction: SortDirection = "asc",
) -> list[dict[str, Any]]:
    """Return a new, stably sorted list of rows."""
    if not rows:
        return list(rows)
    reverse = direction == "desc"

    if column in ID_SORT_COLUMNS:
        return sorted(rows, key=lambda r: trailing_number(_id_value(r, column)), reverse=reverse)

    if column == "application_id":
        return sorted(rows, key=lambda r: _application_number(r.get(column)), reverse=reverse)

    def _cmp(x: dict[str, Any], y: dict[str, Any]) -> int:
        result = _compare_plain(x.get(column), y.get(column))
        return -result if reverse else result

    return sorted(rows, key=cmp_to_key(_cmp))
