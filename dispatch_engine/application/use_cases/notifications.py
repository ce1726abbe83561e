"""Fire-and-forget event publishing on top of the EventSink port."""

from __future__ import annotations

import logging
from typing import Any

from dispatch_engine.application.ports.event_sink import EventSink
from dispatch_engine.domain.value_objects.enums import EventName

logger = logging.getLogger(__name__)


async def publish(sink: EventSink | None, event: EventName, payload: dict[str, Any]) -> None:
    """Emit *event*; delivery problems are logged and never reach the caller."""
    if sink is None:
        return
    try:
        await sink.emit(event, payload)
    except Exception:
        logger.warning("Event %s could not be delivered", event.value, exc_info=True)
