"""Page-number pagination helpers for list endpoints."""

from __future__ import annotations

import math
from typing import Any
from urllib.parse import urlencode

from fastapi import Query

from expertclaims_shared.config import settings


def page_count(total: int | None, page_size: int) -> int:
    if not total or page_size <= 0:
        return 0
    return math.ceil(total / page_size)


class PaginationParams:
    """Dependency for extracting pagination query params."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="1-based page number"),
        page_size: int = Query(10, ge=1, description="Number of results per page"),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.max_page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def range_end(self) -> int:
        """Inclusive end index for PostgREST range()."""
        return self.offset + self.page_size - 1

    def slice(self, rows: list[Any]) -> list[Any]:
        return rows[self.offset : self.offset + self.page_size]


def build_links(
    path: str,
    params: dict[str, Any],
    page: int,
    page_size: int,
    total: int | None,
) -> dict[str, str]:
    """Build self/next/prev links for a paginated response."""

    def _link(p: int) -> str:
        query = {k: v for k, v in params.items() if v is not None}
        query.update(page=p, page_size=page_size)
        return f"{path}?{urlencode(query)}"

    links: dict[str, str] = {"self": _link(page)}
    pages = page_count(total, page_size)
    if page < pages:
        links["next"] = _link(page + 1)
    if page > 1:
        links["prev"] = _link(min(page - 1, max(pages, 1)))
    return links
