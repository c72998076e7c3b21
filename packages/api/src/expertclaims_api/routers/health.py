"""Health check and build version endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from expertclaims_shared.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": settings.app_version}


@router.get("/ready")
async def ready() -> dict:
    return {"status": "ready"}


@router.get("/version")
async def version() -> dict:
    """Clients compare this with their cached build and clear stale caches on mismatch."""
    return {
        "version": settings.app_version,
        "build_timestamp": settings.build_timestamp or None,
    }
