"""
Error taxonomy and FastAPI exception handlers.

Services raise PortalError subclasses for business-rule failures; the
handlers below render them (and HTTPException / validation errors) in the
standard ``{"error": {...}}`` envelope. Anything unhandled is logged with an
error id and rendered as a 500.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from expertclaims_api.responses import error_response

logger = structlog.get_logger(__name__)


class PortalError(Exception):
    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthenticationFailed(PortalError):
    status_code = 401
    code = "AUTHENTICATION_FAILED"


class SessionExpired(PortalError):
    status_code = 401
    code = "SESSION_EXPIRED"


class PermissionDenied(PortalError):
    status_code = 403
    code = "PERMISSION_DENIED"


class NotFound(PortalError):
    status_code = 404
    code = "NOT_FOUND"


class Conflict(PortalError):
    status_code = 409
    code = "CONFLICT"


class InvalidRequest(PortalError):
    status_code = 422
    code = "INVALID_REQUEST"


class TooManyAttempts(PortalError):
    status_code = 429
    code = "TOO_MANY_ATTEMPTS"


class UpstreamUnavailable(PortalError):
    status_code = 502
    code = "UPSTREAM_UNAVAILABLE"


_HTTP_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_REQUIRED",
    403: "PERMISSION_DENIED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
}


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    logger.info(
        "portal_error",
        error_code=exc.code,
        status=exc.status_code,
        path=request.url.path,
        message=exc.message,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message, details=exc.details),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
        content = error_response(code, str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=error_response(
            "INVALID_REQUEST", "Request validation failed", details={"errors": errors}
        ),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    error_id = uuid.uuid4().hex[:12]
    logger.error(
        "unhandled_exception",
        error_id=error_id,
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content=error_response(
            "INTERNAL_ERROR", "Internal server error", details={"error_id": error_id}
        ),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PortalError, portal_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
