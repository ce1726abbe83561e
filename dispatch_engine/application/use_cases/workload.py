"""WorkloadReader — per-agent and global workload, read-only."""

from __future__ import annotations

import logging

from dispatch_engine.application.clock import Clock, start_of_day, utc_now
from dispatch_engine.application.ports.agent_repo import AgentDirectory
from dispatch_engine.application.ports.order_repo import OrderRepository
from dispatch_engine.application.ports.presence_store import PresenceStore
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.domain.entities.agent import Agent
from dispatch_engine.domain.entities.workload import (
    AgentStats,
    AgentWorkload,
    WorkloadSummary,
)
from dispatch_engine.domain.policies.workload_rule import (
    COMPLETED_STATUSES,
    PENDING_WORK_STATUSES,
    TERMINAL_STATUSES,
    utilization_rate,
)
from dispatch_engine.domain.value_objects.enums import UserRole

logger = logging.getLogger(__name__)


class WorkloadReader:
    """Single source of truth for "how loaded is each agent".

    Counting always excludes TERMINAL_STATUSES; nothing here mutates state.
    """

    def __init__(
        self,
        agent_directory: AgentDirectory,
        order_repo: OrderRepository,
        presence_store: PresenceStore,
        call: BoundedCall | None = None,
        clock: Clock = utc_now,
    ):
        self._agents = agent_directory
        self._orders = order_repo
        self._presence = presence_store
        self._call = call or BoundedCall()
        self._clock = clock

    async def workload_for(self, agent: Agent) -> AgentWorkload:
        assigned = await self._call(
            self._orders.count_assigned_for_agent(agent.id, TERMINAL_STATUSES),
            "count agent workload",
        )
        presence = await self._call(self._presence.get_presence(agent.id), "read presence")
        return AgentWorkload(
            agent_id=agent.id,
            agent_name=agent.display_name,
            agent_code=agent.agent_code,
            presence=presence,
            assigned_orders=assigned,
            max_orders=agent.max_orders,
            utilization_rate=utilization_rate(assigned, agent.max_orders),
        )

    async def get_workload(self, agent_id: str) -> AgentWorkload | None:
        agent = await self._call(self._agents.get_by_id(agent_id), "get agent")
        if agent is None or not agent.can_receive_orders():
            return None
        return await self.workload_for(agent)

    async def list_workloads(self) -> list[AgentWorkload]:
        """Workloads of every active follow-up agent, ordered by name."""
        agents = await self._call(
            self._agents.list_eligible_agents(UserRole.AGENT_SUIVI, active_only=True),
            "list agents",
        )
        return [await self.workload_for(a) for a in agents if a.can_receive_orders()]

    async def list_assignable(self, exclude_agent_id: str | None = None) -> list[AgentWorkload]:
        """Online agents with spare capacity."""
        return [
            w for w in await self.list_workloads()
            if w.is_online and w.has_capacity() and w.agent_id != exclude_agent_id
        ]

    async def get_summary(self) -> WorkloadSummary:
        workloads = await self.list_workloads()
        unassigned = await self._call(self._orders.count_unassigned(), "count unassigned")
        online = sum(1 for w in workloads if w.is_online)
        return WorkloadSummary(
            total_agents=len(workloads),
            online_agents=online,
            offline_agents=len(workloads) - online,
            unassigned_orders=unassigned,
            total_assigned_orders=sum(w.assigned_orders for w in workloads),
            agent_workloads=workloads,
        )

    async def agents_for_manual_assignment(self) -> list[AgentWorkload]:
        """Least utilized first, so operators see spare capacity at the top."""
        workloads = await self.list_workloads()
        return sorted(workloads, key=lambda w: (w.utilization_rate, w.agent_name, w.agent_id))

    async def get_agent_stats(self, agent_id: str) -> AgentStats | None:
        agent = await self._call(self._agents.get_by_id(agent_id), "get agent")
        if agent is None:
            return None

        assigned = await self._call(
            self._orders.count_assigned_for_agent(agent.id, TERMINAL_STATUSES),
            "count agent workload",
        )
        pending = await self._call(
            self._orders.count_for_agent(agent.id, PENDING_WORK_STATUSES),
            "count pending orders",
        )
        completed_today = await self._call(
            self._orders.count_for_agent(
                agent.id, COMPLETED_STATUSES, assigned_since=start_of_day(self._clock())
            ),
            "count completed orders",
        )
        return AgentStats(
            agent_id=agent.id,
            assigned_orders=assigned,
            pending_orders=pending,
            completed_today=completed_today,
            max_orders=agent.max_orders,
            utilization_rate=utilization_rate(assigned, agent.max_orders),
        )
