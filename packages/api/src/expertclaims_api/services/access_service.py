"""Portal page access rules: which roles may open which client routes."""

from __future__ import annotations

import re
from typing import Any

from expertclaims_shared.constants import DASHBOARDS, PAGE_ACCESS


def _compile(pattern: str) -> re.Pattern[str]:
    parts = [
        r"[^/]+" if segment.startswith(":") else re.escape(segment)
        for segment in pattern.split("/")
    ]
    return re.compile("^" + "/".join(parts) + "$")


_PAGES: list[tuple[str, re.Pattern[str], tuple[str, ...] | None]] = [
    (pattern, _compile(pattern), roles) for pattern, roles in PAGE_ACCESS.items()
]


def _normalize(path: str) -> str:
    path = path.split("?", 1)[0].split("#", 1)[0].strip() or "/"
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def match_page(path: str) -> tuple[str, tuple[str, ...] | None] | None:
    """Return (pattern, allowed roles) for a client path, or None when unknown."""
    path = _normalize(path)
    for pattern, regex, roles in _PAGES:
        if regex.match(path):
            return pattern, roles
    return None


def dashboard_for(role: str | None) -> str:
    """Landing page after login. Unknown roles land on /unauthorized."""
    return DASHBOARDS.get(role or "", "/unauthorized")


def check_page_access(path: str, role: str | None) -> dict[str, Any]:
    """
    Decide whether a user with ``role`` (None when signed out) may open ``path``.

    Unknown paths are allowed so the client can render its own 404 page.
    """
    matched = match_page(path)
    decision: dict[str, Any] = {
        "path": _normalize(path),
        "pattern": matched[0] if matched else None,
        "allowed": True,
        "redirect": None,
        "allowed_roles": list(matched[1]) if matched and matched[1] else None,
    }
    if matched is None or matched[1] is None:
        return decision

    roles = matched[1]
    if role is None:
        decision.update(allowed=False, redirect="/login")
    elif role not in roles:
        decision.update(allowed=False, redirect="/unauthorized")
    return decision
