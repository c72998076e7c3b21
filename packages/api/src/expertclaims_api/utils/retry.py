"""
Retry policy for outbound webhook calls.

Transport errors and 5xx answers are retried with exponential backoff;
anything else (a 4xx, a bug) propagates on the first attempt. Once the
attempts are used up the last exception is re-raised unchanged, so callers
catch the same types they would without retries.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

log = structlog.get_logger(__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    error = outcome.exception() if outcome is not None else None
    log.warning(
        "retry_scheduled",
        function=getattr(retry_state.fn, "__qualname__", None),
        attempt=retry_state.attempt_number,
        wait_s=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
        error=str(error) if error else None,
    )


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    retry_on: type[Exception] | tuple[type[Exception], ...] = Exception,
) -> Callable[[Any], Any]:
    """
    Decorate a sync or async callable with retries.

    Waits base_delay * 2^(attempt-1) seconds between attempts, capped at
    max_delay. Only ``retry_on`` exceptions trigger another attempt.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, max=max_delay),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        reraise=True,
    )
