"""Port interface for the append-only activity log."""

from abc import ABC, abstractmethod
from datetime import datetime

from dispatch_engine.domain.entities.activity import ActivityRecord
from dispatch_engine.domain.value_objects.enums import ActivityType


class ActivityLogRepository(ABC):
    @abstractmethod
    async def append(self, record: ActivityRecord) -> ActivityRecord:
        ...

    @abstractmethod
    async def list_recent(
        self,
        agent_id: str | None = None,
        activity_types: frozenset[ActivityType] | None = None,
        since: datetime | None = None,
        limit: int = 50,
    ) -> list[ActivityRecord]:
        """Newest first."""
        ...
