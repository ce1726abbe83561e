"""Port interface for outbound notification fan-out."""

from abc import ABC, abstractmethod
from typing import Any

from dispatch_engine.domain.value_objects.enums import EventName


class EventSink(ABC):
    @abstractmethod
    async def emit(self, event: EventName, payload: dict[str, Any]) -> None:
        """Deliver a logical event. Delivery is the sink's concern."""
        ...

    async def drain(self) -> None:
        """Wait for deliveries still in flight (shutdown)."""
        return None
