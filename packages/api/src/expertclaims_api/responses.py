"""
Response envelopes.

Success:  {"data": ..., "meta": {...}, "links": {...}}
Failure:  {"error": {"code": "NOT_FOUND", "message": "...", "details": {...}}}

List endpoints report ``total_count``, ``page``, ``page_size`` and
``total_pages`` in meta and self/next/prev URLs in links.
"""

from __future__ import annotations

from typing import Any

from expertclaims_api.utils.pagination import PaginationParams, build_links, page_count


def wrap_response(
    data: Any,
    *,
    total_count: int | None = None,
    page: int | None = None,
    page_size: int | None = None,
    links: dict[str, str] | None = None,
    **extra_meta: Any,
) -> dict[str, Any]:
    meta: dict[str, Any] = {"total_count": total_count, "page": page, "page_size": page_size}
    if page_size:
        meta["total_pages"] = page_count(total_count, page_size)
    meta.update(extra_meta)
    return {
        "data": data,
        "meta": {k: v for k, v in meta.items() if v is not None},
        "links": links or {},
    }


def paginated_response(
    data: list[Any],
    total: int,
    pagination: PaginationParams,
    path: str,
    params: dict[str, Any] | None = None,
    **extra_meta: Any,
) -> dict[str, Any]:
    """Envelope for one page of a list, with links that keep the caller's filters."""
    return wrap_response(
        data,
        total_count=total,
        page=pagination.page,
        page_size=pagination.page_size,
        links=build_links(path, params or {}, pagination.page, pagination.page_size, total),
        **extra_meta,
    )


def error_response(
    code: str,
    message: str,
    *,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"error": error}
