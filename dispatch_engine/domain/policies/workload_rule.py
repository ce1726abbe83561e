"""WorkloadRule — which order statuses count toward an agent's capacity.

Every reader of workload (auto-assigner, stats, dashboards) must go through
these sets so the counting rule stays identical everywhere.
"""

from dispatch_engine.domain.value_objects.enums import OrderStatus

# Orders in these statuses are finished: they do not count toward capacity
# and can no longer be (re)assigned.
TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.RETURNED}
)

# The agent has not acted on these yet; they follow the pool when the agent leaves.
REDISTRIBUTABLE_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.ASSIGNED})

PENDING_WORK_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.ASSIGNED, OrderStatus.IN_PROGRESS}
)

COMPLETED_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.DELIVERED}
)


def counts_toward_workload(status: OrderStatus) -> bool:
    return status not in TERMINAL_STATUSES


def is_reassignable(status: OrderStatus) -> bool:
    return status not in TERMINAL_STATUSES


def status_after_assignment(status: OrderStatus) -> OrderStatus:
    """A fresh order moves to ASSIGNED; any later status is left as is."""
    return OrderStatus.ASSIGNED if status == OrderStatus.PENDING else status


def utilization_rate(assigned_orders: int, max_orders: int) -> float:
    if max_orders <= 0:
        return 1.0
    return assigned_orders / max_orders
