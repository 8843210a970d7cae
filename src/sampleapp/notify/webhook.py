# src/sampleapp/notify/webhook.py

"""
Notifiers used by background work.

Both are registered as *scoped* services: every work item that asks for a
Notifier gets its own instance, and the scope closes it afterwards. For the
webhook that means one httpx.AsyncClient per work item, always closed.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class NotificationError(RuntimeError):
    pass


class LogNotifier:
    """Fallback when no webhook is configured: notifications become log lines."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []

    async def notify(self, event: str, payload: dict[str, Any]) -> None:
        self.sent.append((event, payload))
        logger.info("Notification %s: %s", event, payload)

    async def aclose(self) -> None:
        return None


def _make_timeout(total_s: float) -> httpx.Timeout:
    # Connect fails fast; read/write may use the full budget.
    return httpx.Timeout(total_s, connect=min(5.0, total_s))


class WebhookNotifier:
    """POSTs {"event", "payload", "ts"} as JSON to a configured URL."""

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not url:
            raise ValueError("WebhookNotifier needs a URL")
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=_make_timeout(timeout_seconds))
        self._closed = False

    async def notify(self, event: str, payload: dict[str, Any]) -> None:
        if self._closed:
            raise NotificationError("WebhookNotifier is closed")

        body = {"event": event, "payload": payload, "ts": time.time()}
        try:
            resp = await self._client.post(self._url, json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationError(
                f"Webhook rejected {event}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise NotificationError(f"Webhook request failed for {event}: {e}") from e

        logger.debug("Webhook notified %s -> %s", event, resp.status_code)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_client:
            await self._client.aclose()
