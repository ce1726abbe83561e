"""Structured per-order outcomes shared by the assignment use cases."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class AssignmentResult:
    """Outcome of placing one order with one agent."""

    order_id: str
    success: bool
    message: str
    assigned_agent_id: str | None = None
    assigned_agent_name: str | None = None
    previous_agent_id: str | None = None


@dataclass
class BatchAssignmentResult:
    total_processed: int = 0
    successful_assignments: int = 0
    failed_assignments: int = 0
    results: list[AssignmentResult] = field(default_factory=list)

    def add(self, result: AssignmentResult) -> None:
        self.results.append(result)
        self.total_processed += 1
        if result.success:
            self.successful_assignments += 1
        else:
            self.failed_assignments += 1

    def assigned_by_agent(self) -> dict[str, list[str]]:
        by_agent: dict[str, list[str]] = {}
        for r in self.results:
            if r.success and r.assigned_agent_id:
                by_agent.setdefault(r.assigned_agent_id, []).append(r.order_id)
        return by_agent
