"""
Per-IP sliding-window rate limiting.

Login endpoints get their own, much smaller budget so password and OTP
guessing is throttled without slowing down ordinary portal traffic.
Limits are read from settings on every request.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from expertclaims_shared.config import settings

from expertclaims_api.responses import error_response

WINDOW_SECONDS = 60.0
EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})
LOGIN_PATHS = frozenset({"/v1/auth/login", "/api/login"})


class SlidingWindow:
    """Timestamps of recent hits per key; a hit is allowed while fewer than ``limit`` are in the window."""

    def __init__(self, window: float = WINDOW_SECONDS) -> None:
        self.window = window
        self._hits: defaultdict[str, deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()
        self._last_sweep = 0.0

    def __len__(self) -> int:
        return len(self._hits)

    def _sweep(self, now: float) -> None:
        """Forget keys whose newest hit has left the window. Caller holds the lock."""
        if now - self._last_sweep < self.window:
            return
        self._last_sweep = now
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= self.window]
        for key in stale:
            del self._hits[key]

    def hit(self, key: str, limit: int, now: float | None = None) -> tuple[bool, int, float]:
        """Record a hit. Returns (allowed, remaining, seconds until a slot frees up)."""
        now = time.monotonic() if now is None else now
        with self._lock:
            self._sweep(now)
            hits = self._hits[key]
            while hits and now - hits[0] >= self.window:
                hits.popleft()
            if len(hits) >= limit:
                return False, 0, self.window - (now - hits[0])
            hits.append(now)
            return True, limit - len(hits), 0.0


def _scope(path: str) -> tuple[str, int]:
    if path in LOGIN_PATHS:
        return "login", settings.rate_limit_login_per_minute
    return "default", settings.rate_limit_default_per_minute


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app):
        super().__init__(app)
        self.limiter = SlidingWindow()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        scope, limit = _scope(request.url.path)
        ip = request.client.host if request.client else "unknown"
        allowed, remaining, retry_after = self.limiter.hit(f"{scope}:{ip}", limit)

        if not allowed:
            return JSONResponse(
                status_code=429,
                content=error_response(
                    "RATE_LIMIT_EXCEEDED",
                    f"Too many requests. Limit: {limit} per minute.",
                ),
                headers={
                    "Retry-After": str(max(1, round(retry_after))),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
