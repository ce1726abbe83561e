"""ActivityLogger — best-effort audit writer plus read access for analytics."""

from __future__ import annotations

import logging
from datetime import datetime

from dispatch_engine.application.clock import Clock, utc_now
from dispatch_engine.application.ports.activity_log import ActivityLogRepository
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.domain.entities.activity import ActivityRecord
from dispatch_engine.domain.value_objects.enums import ActivityType

logger = logging.getLogger(__name__)


class ActivityLogger:
    def __init__(
        self,
        activity_repo: ActivityLogRepository,
        call: BoundedCall | None = None,
        clock: Clock = utc_now,
    ):
        self._log = activity_repo
        self._call = call or BoundedCall()
        self._clock = clock

    async def record(
        self,
        agent_id: str,
        activity_type: ActivityType,
        description: str,
        order_id: str | None = None,
    ) -> ActivityRecord | None:
        """Append one record. Never raises: a lost audit line must not undo
        the assignment it describes."""
        record = ActivityRecord(
            agent_id=agent_id,
            activity_type=activity_type,
            description=description,
            created_at=self._clock(),
            order_id=order_id,
        )
        try:
            return await self._call(self._log.append(record), "append activity")
        except Exception:
            logger.warning(
                "Activity %s for agent %s not recorded",
                activity_type.value, agent_id, exc_info=True,
            )
            return None

    async def recent(
        self,
        agent_id: str | None = None,
        activity_types: frozenset[ActivityType] | None = None,
        since: datetime | None = None,
        limit: int = 50,
    ) -> list[ActivityRecord]:
        return await self._call(
            self._log.list_recent(
                agent_id=agent_id,
                activity_types=activity_types,
                since=since,
                limit=limit,
            ),
            "list activities",
        )
