"""FastAPI application factory."""

from __future__ import annotations

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from expertclaims_shared.config import settings

from expertclaims_api.errors import setup_exception_handlers
from expertclaims_api.middleware.logging import LoggingMiddleware
from expertclaims_api.middleware.rate_limit import RateLimitMiddleware
from expertclaims_api.routers.health import router as health_router
from expertclaims_api.routers.legacy import router as legacy_router
from expertclaims_api.routers.v1 import v1_router
from expertclaims_api.utils.logging import configure_logging

logger = structlog.get_logger()


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="ExpertClaims API",
        description="Insurance claims portal API",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    # Custom middleware (order matters: last added = first executed)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(v1_router)
    app.include_router(legacy_router)

    logger.info("app_created", cors_origins=settings.cors_origins_list)
    return app
