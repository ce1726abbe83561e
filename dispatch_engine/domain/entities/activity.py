"""ActivityRecord — append-only audit entry for assignment-affecting events."""

from dataclasses import dataclass
from datetime import datetime

from dispatch_engine.domain.value_objects.enums import ActivityType


@dataclass(frozen=True)
class ActivityRecord:
    agent_id: str
    activity_type: ActivityType
    description: str
    created_at: datetime
    order_id: str | None = None
    id: int | None = None
