"""RoundRobinPolicy — weighted round robin over the least-loaded agents."""

from __future__ import annotations

from dispatch_engine.domain.entities.workload import AgentWorkload
from dispatch_engine.domain.policies.workload_rule import utilization_rate


def pick_least_loaded(candidates: list[AgentWorkload]) -> AgentWorkload:
    """Deterministic pick of the lightest-loaded candidate.

    Candidates are ordered by (assigned_orders ASC, agent_id ASC); the first
    one wins. Feeding the winner's incremented load back in on the next call
    makes consecutive picks rotate across equally loaded agents.

    Raises:
        ValueError: if candidates list is empty.
    """
    if not candidates:
        raise ValueError("Cannot pick from an empty candidate list")

    return min(candidates, key=lambda w: (w.assigned_orders, w.agent_id))


class AssignmentPool:
    """In-process running counters for one assignment batch.

    Seeded from a workload snapshot; for the rest of the batch these counters
    are authoritative and the store is not re-queried.
    """

    def __init__(self, workloads: list[AgentWorkload]):
        self._eligible: dict[str, AgentWorkload] = {
            w.agent_id: w for w in workloads if w.has_capacity()
        }

    def __len__(self) -> int:
        return len(self._eligible)

    def __bool__(self) -> bool:
        return bool(self._eligible)

    @property
    def agent_ids(self) -> list[str]:
        return sorted(self._eligible)

    def pick(self, restrict_to: frozenset[str] | None = None) -> AgentWorkload | None:
        """Least-loaded eligible agent, optionally among *restrict_to* only."""
        candidates = [
            w for w in self._eligible.values()
            if restrict_to is None or w.agent_id in restrict_to
        ]
        if not candidates:
            return None
        return pick_least_loaded(candidates)

    def record_assignment(self, agent_id: str) -> None:
        workload = self._eligible.get(agent_id)
        if workload is None:
            return
        workload.assigned_orders += 1
        workload.utilization_rate = utilization_rate(
            workload.assigned_orders, workload.max_orders
        )
        if not workload.has_capacity():
            del self._eligible[agent_id]

    def discard(self, agent_id: str) -> None:
        self._eligible.pop(agent_id, None)
