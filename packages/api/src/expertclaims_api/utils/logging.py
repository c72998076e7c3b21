"""
structlog setup shared by the API server and the CLI.

Events render as JSON lines in deployed environments and as coloured console
output locally (settings.log_format). Credentials that end up in an event's
key/value pairs are masked before rendering, so a careless
``log.info("login_attempt", password=...)`` never reaches the log stream.

Usage:
    configure_logging()
    log = structlog.get_logger(__name__)
    log.info("leave_reviewed", leave_id=leave_id, status="approved")
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from expertclaims_shared.config import settings

SENSITIVE_KEYS = frozenset(
    {"password", "new_password", "otp", "code", "jwt_token", "token", "authorization"}
)
MASK = "***"


def redact_sensitive(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = MASK
    return event_dict


def configure_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """Configure stdlib logging and structlog. Safe to call more than once."""
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    json_output = (log_format or settings.log_format) == "json"

    # uvicorn and httpx log through the stdlib; keep them on the same stream
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_sensitive,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
