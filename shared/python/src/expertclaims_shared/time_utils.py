"""
time_utils.py: timestamp parsing and duration formatting utilities.

Supabase returns timestamps as ISO-8601 strings with varying precision and
offsets ("2024-06-15T10:00:00+00:00", "2024-06-15T10:00:00.123456Z",
"2024-06-15"). Clients receive session expiry as epoch milliseconds.

Usage:
    from expertclaims_shared.time_utils import parse_timestamp, format_remaining

    ts = parse_timestamp("2024-06-15T10:00:00Z")     # aware datetime, UTC
    format_remaining(90061)                          # "1d 1h"
    inclusive_days(date(2024, 1, 1), date(2024, 1, 3))  # 3
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

from dateutil import parser as date_parser

_MONTH_RE = re.compile(r"(\d{4})-(\d{2})")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(raw: Any) -> datetime | None:
    """
    Parse a database timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC. Returns None for empty or
    unparseable input.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, date):
        dt = datetime(raw.year, raw.month, raw.day)
    else:
        try:
            dt = date_parser.isoparse(str(raw))
        except (ValueError, OverflowError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def format_display(dt: datetime) -> str:
    """Human-readable UTC time, e.g. "15/06/2024, 10:00:00 UTC"."""
    return dt.astimezone(timezone.utc).strftime("%d/%m/%Y, %H:%M:%S UTC")


def format_remaining(seconds: float) -> str:
    """
    Format a remaining duration the way the portal navbar shows it.

    More than 24 hours: "2d 3h"; at least an hour: "5h 12m";
    at least a minute: "4m 30s"; otherwise "42s". Zero or less is "Expired".
    """
    total = int(seconds)
    if total <= 0:
        return "Expired"
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 24:
        days, hours = divmod(hours, 24)
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def inclusive_days(start: date, end: date) -> int:
    """Number of calendar days from start to end, counting both ends."""
    return (end - start).days + 1


def parse_month(raw: str) -> date | None:
    """Parse a "YYYY-MM" payroll month into the first day of that month."""
    m = _MONTH_RE.fullmatch(raw.strip()) if raw else None
    if not m:
        return None
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        return None
    return date(year, month, 1)
