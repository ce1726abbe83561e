"""AssignmentAnalyticsUseCase — assignment history for dashboards."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from dispatch_engine.application.clock import Clock, utc_now
from dispatch_engine.application.ports.agent_repo import AgentDirectory
from dispatch_engine.application.ports.order_repo import OrderRepository
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.application.use_cases.activity_logger import ActivityLogger
from dispatch_engine.domain.entities.activity import ActivityRecord
from dispatch_engine.domain.policies.workload_rule import (
    COMPLETED_STATUSES,
    PENDING_WORK_STATUSES,
)
from dispatch_engine.domain.value_objects.enums import ActivityType, AnalyticsPeriod, UserRole

PERIOD_LENGTH: dict[AnalyticsPeriod, timedelta] = {
    AnalyticsPeriod.LAST_24H: timedelta(hours=24),
    AnalyticsPeriod.LAST_7D: timedelta(days=7),
    AnalyticsPeriod.LAST_30D: timedelta(days=30),
}

RECENT_ACTIVITY_LIMIT = 50

ASSIGNMENT_ACTIVITY_TYPES = frozenset({ActivityType.ORDER_ASSIGNED, ActivityType.ORDER_REDISTRIBUTED})


@dataclass
class AgentPerformance:
    agent_id: str
    agent_name: str
    agent_code: str | None
    assigned_count: int
    completed_count: int
    pending_count: int


@dataclass
class AssignmentAnalytics:
    period: AnalyticsPeriod
    total_assignments: int
    recent_activities: list[ActivityRecord] = field(default_factory=list)
    agent_performance: list[AgentPerformance] = field(default_factory=list)


class AssignmentAnalyticsUseCase:
    def __init__(
        self,
        order_repo: OrderRepository,
        agent_directory: AgentDirectory,
        activity_logger: ActivityLogger,
        call: BoundedCall | None = None,
        clock: Clock = utc_now,
    ):
        self._orders = order_repo
        self._agents = agent_directory
        self._activity = activity_logger
        self._call = call or BoundedCall()
        self._clock = clock

    async def execute(self, period: AnalyticsPeriod = AnalyticsPeriod.LAST_7D) -> AssignmentAnalytics:
        since = self._clock() - PERIOD_LENGTH[period]

        total = await self._call(self._orders.count_assigned_since(since), "count assignments")
        activities = await self._activity.recent(
            activity_types=ASSIGNMENT_ACTIVITY_TYPES, since=since, limit=RECENT_ACTIVITY_LIMIT
        )
        agents = await self._call(
            self._agents.list_eligible_agents(UserRole.AGENT_SUIVI, active_only=True),
            "list agents",
        )

        performance = []
        for agent in agents:
            orders = await self._call(
                self._orders.find_for_agent(agent.id, assigned_since=since), "find agent orders"
            )
            performance.append(
                AgentPerformance(
                    agent_id=agent.id,
                    agent_name=agent.display_name,
                    agent_code=agent.agent_code,
                    assigned_count=len(orders),
                    completed_count=sum(1 for o in orders if o.status in COMPLETED_STATUSES),
                    pending_count=sum(1 for o in orders if o.status in PENDING_WORK_STATUSES),
                )
            )

        return AssignmentAnalytics(
            period=period,
            total_assignments=total,
            recent_activities=activities,
            agent_performance=performance,
        )
