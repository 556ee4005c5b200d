"""
Outbound webhook dispatcher.

Performs exactly one POST per call. There are no retries and redirects are
not followed; retry policy belongs to whoever called the guard.
"""

import asyncio
import json
import time
from typing import Any, Optional

import httpx

from ..config.settings import DEFAULT_USER_AGENT, MAX_TIMEOUT_MS
from ..models.webhook import DeliveryFailureKind, DeliveryOutcome
from ..utils.logger import get_logger
from ..utils.metrics import record_webhook_call

logger = get_logger(__name__)


def clamp_timeout(timeout_ms: int) -> int:
    """Apply the hard timeout ceiling to a requested timeout."""
    return min(timeout_ms, MAX_TIMEOUT_MS)


class WebhookDispatcher:
    """Delivers an opaque JSON payload to a validated destination."""

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.user_agent = user_agent
        # Injected in tests; None means a real network transport
        self._transport = transport

    async def deliver(self, url: httpx.URL, payload: Any, timeout_ms: int) -> DeliveryOutcome:
        """
        POST payload to url within the clamped timeout

        Args:
            url: Parsed destination from a valid ValidationVerdict
            payload: JSON-serialisable payload, forwarded as-is
            timeout_ms: Requested timeout in milliseconds

        Returns:
            DeliveryOutcome describing the attempt
        """
        applied_timeout_ms = clamp_timeout(timeout_ms)
        timeout_seconds = applied_timeout_ms / 1000.0
        body = json.dumps(payload).encode("utf-8")
        started = time.perf_counter()

        def outcome(**kwargs) -> DeliveryOutcome:
            return DeliveryOutcome(
                applied_timeout_ms=applied_timeout_ms,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                **kwargs,
            )

        async def post(client: httpx.AsyncClient) -> int:
            # Only the status matters; the body is closed unread
            async with client.stream(
                "POST",
                url,
                content=body,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": self.user_agent,
                },
            ) as response:
                return response.status_code

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=timeout_seconds,
                follow_redirects=False,
            ) as client:
                status_code = await asyncio.wait_for(post(client), timeout=timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            result = outcome(delivered=False, failure_kind=DeliveryFailureKind.TIMEOUT)
            logger.warning(
                "Webhook request timed out",
                extra={
                    "event_type": "webhook_dispatch_timeout",
                    "destination_host": url.host,
                    "applied_timeout_ms": applied_timeout_ms,
                    "error_type": type(exc).__name__,
                },
            )
            record_webhook_call("timeout", result.duration_ms / 1000)
            return result
        except httpx.HTTPError as exc:
            result = outcome(delivered=False, failure_kind=DeliveryFailureKind.DELIVERY_FAILED)
            logger.error(
                "Webhook delivery failed",
                extra={
                    "event_type": "webhook_dispatch_failed",
                    "destination_host": url.host,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                },
            )
            record_webhook_call("delivery_failed", result.duration_ms / 1000)
            return result

        result = outcome(delivered=True, http_status=status_code)
        logger.info(
            f"Webhook call completed: status={status_code}, ok={result.success}",
            extra={
                "event_type": "webhook_dispatch_completed",
                "destination_host": url.host,
                "status_code": status_code,
                "success": result.success,
                "duration_ms": result.duration_ms,
            },
        )
        record_webhook_call(
            "success" if result.success else "destination_error",
            result.duration_ms / 1000,
        )
        return result
