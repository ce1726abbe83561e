"""EventSink adapters — outbound notification fan-out."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

import httpx

from dispatch_engine.application.ports.event_sink import EventSink
from dispatch_engine.domain.value_objects.enums import EventName

logger = logging.getLogger(__name__)


class LoggingEventSink(EventSink):
    """Default sink: events only go to the application log."""

    async def emit(self, event: EventName, payload: dict) -> None:
        logger.info("event=%s payload=%s", event.value, payload)


class HttpEventSink(EventSink):
    """POST each event as JSON to a webhook (e.g. the socket broadcast service).

    emit() only schedules the POST: a slow or unreachable webhook never
    holds up the assignment that produced the event. Delivery failures are
    logged and swallowed in the background task.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url
        self._timeout = timeout
        self._transport = transport
        self._pending: set[asyncio.Task] = set()

    async def emit(self, event: EventName, payload: dict) -> None:
        body = {
            "event": event.value,
            "payload": payload,
            "emittedAt": datetime.now(timezone.utc).isoformat(),
        }
        task = asyncio.create_task(self._deliver(event, body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _deliver(self, event: EventName, body: dict) -> None:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.post(self._url, json=body)
                response.raise_for_status()
        except httpx.HTTPError:
            logger.warning("Webhook delivery of %s to %s failed", event.value, self._url, exc_info=True)
