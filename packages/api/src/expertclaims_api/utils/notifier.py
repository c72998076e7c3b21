"""
utils/notifier.py: outbound webhook client (n8n flows).

Two kinds of delivery:
  - OTP codes: must arrive, so failures raise UpstreamUnavailable and the
    login step fails.
  - Domain events (case_created, leave_reviewed, ...): best-effort, failures
    are logged and swallowed so the user's request still succeeds.

An empty webhook URL disables that delivery kind (useful in development).

Usage:
    from expertclaims_api.utils.notifier import notifier

    await notifier.send_otp(channel="sms", destination="+919876543210",
                            code="482913", expires_in=300)
    await notifier.emit_event("leave_reviewed", leave_id=..., status="approved")
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from expertclaims_shared.config import settings

from expertclaims_api.errors import UpstreamUnavailable
from expertclaims_api.utils.retry import with_retry

log = structlog.get_logger(__name__)


class RetryableWebhookError(Exception):
    """Webhook answered with a 5xx status."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"webhook returned HTTP {status_code}")
        self.status_code = status_code


class WebhookNotifier:
    def __init__(
        self,
        *,
        otp_url: str | None = None,
        events_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._otp_url = otp_url
        self._events_url = events_url
        self._token = token
        self._timeout = timeout
        self._transport = transport

    # Settings are read at call time so a reloaded .env or a patched
    # settings object takes effect without rebuilding the notifier.
    @property
    def otp_url(self) -> str:
        return self._otp_url if self._otp_url is not None else settings.otp_webhook_url

    @property
    def events_url(self) -> str:
        return self._events_url if self._events_url is not None else settings.events_webhook_url

    def _headers(self) -> dict[str, str]:
        token = self._token if self._token is not None else settings.webhook_token
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @with_retry(max_attempts=3, retry_on=(httpx.TransportError, RetryableWebhookError))
    async def _deliver(self, url: str, payload: dict[str, Any]) -> None:
        timeout = self._timeout or settings.webhook_timeout_seconds
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            response = await client.post(url, json=payload, headers=self._headers())
        if response.status_code >= 500:
            raise RetryableWebhookError(response.status_code)
        response.raise_for_status()

    async def send_otp(
        self,
        *,
        channel: str,
        destination: str,
        code: str,
        expires_in: int,
    ) -> bool:
        url = self.otp_url
        if not url:
            log.warning("webhook_disabled", kind="otp", channel=channel)
            return False
        payload = {
            "event": "otp",
            "channel": channel,
            "destination": destination,
            "code": code,
            "expires_in": expires_in,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self._deliver(url, payload)
        except (httpx.HTTPError, RetryableWebhookError) as exc:
            log.error("otp_delivery_failed", channel=channel, error=str(exc))
            raise UpstreamUnavailable("Could not deliver the one-time password") from exc
        log.info("otp_delivered", channel=channel)
        return True

    async def emit_event(self, event: str, **data: Any) -> bool:
        url = self.events_url
        if not url:
            log.debug("webhook_disabled", kind="event", event_name=event)
            return False
        payload = {
            "event": event,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self._deliver(url, payload)
        except (httpx.HTTPError, RetryableWebhookError) as exc:
            log.warning("event_delivery_failed", event_name=event, error=str(exc))
            return False
        log.debug("event_delivered", event_name=event)
        return True


notifier = WebhookNotifier()
