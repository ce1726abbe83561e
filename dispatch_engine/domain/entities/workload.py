"""Workload snapshots — read models produced by the workload reader."""

from dataclasses import dataclass, field

from dispatch_engine.domain.value_objects.enums import Presence


@dataclass
class AgentWorkload:
    agent_id: str
    agent_name: str
    agent_code: str | None
    presence: Presence
    assigned_orders: int
    max_orders: int
    utilization_rate: float

    @property
    def is_online(self) -> bool:
        return self.presence == Presence.ONLINE

    def has_capacity(self) -> bool:
        return self.utilization_rate < 1.0


@dataclass
class WorkloadSummary:
    total_agents: int
    online_agents: int
    offline_agents: int
    unassigned_orders: int
    total_assigned_orders: int
    agent_workloads: list[AgentWorkload] = field(default_factory=list)


@dataclass
class AgentStats:
    """Per-agent counters for the agent's own dashboard."""

    agent_id: str
    assigned_orders: int
    pending_orders: int
    completed_today: int
    max_orders: int
    utilization_rate: float
