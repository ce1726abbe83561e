"""RedistributeOrdersUseCase — move an absent agent's untouched orders."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dispatch_engine.application.ports.event_sink import EventSink
from dispatch_engine.application.ports.order_repo import OrderRepository
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.application.use_cases.notifications import publish
from dispatch_engine.application.use_cases.placement import OrderPlacer
from dispatch_engine.application.use_cases.results import AssignmentResult
from dispatch_engine.application.use_cases.workload import WorkloadReader
from dispatch_engine.domain.policies.round_robin import AssignmentPool
from dispatch_engine.domain.policies.workload_rule import REDISTRIBUTABLE_STATUSES
from dispatch_engine.domain.value_objects.enums import ActivityType, EventName

logger = logging.getLogger(__name__)


@dataclass
class RedistributionResult:
    agent_id: str
    redistributed: int = 0
    failed: int = 0
    results: list[AssignmentResult] = field(default_factory=list)


class RedistributeOrdersUseCase:
    """Re-run round-robin placement for one agent's ASSIGNED orders.

    Orders are moved with a conditional write that expects the original
    agent, so they are never unassigned first: when nobody else is eligible
    they simply stay where they are.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        workload_reader: WorkloadReader,
        placer: OrderPlacer,
        events: EventSink | None = None,
        call: BoundedCall | None = None,
    ):
        self._orders = order_repo
        self._workloads = workload_reader
        self._placer = placer
        self._events = events
        self._call = call or BoundedCall()

    async def execute(self, agent_id: str) -> RedistributionResult:
        result = RedistributionResult(agent_id=agent_id)

        orders = await self._call(
            self._orders.find_for_agent(agent_id, REDISTRIBUTABLE_STATUSES),
            "find agent orders",
        )
        if not orders:
            logger.info("Agent %s has no orders to redistribute", agent_id)
            return result

        pool = AssignmentPool(await self._workloads.list_assignable(exclude_agent_id=agent_id))
        if not pool:
            logger.warning(
                "No eligible agent to take %d orders from agent %s; orders stay assigned",
                len(orders), agent_id,
            )

        for order in orders:
            placed = await self._placer.place(
                order, pool,
                expected_agent_id=agent_id,
                activity_type=ActivityType.ORDER_REDISTRIBUTED,
            )
            result.results.append(placed)
            if placed.success:
                result.redistributed += 1
            else:
                result.failed += 1

        logger.info(
            "Redistribution from agent %s: %d moved, %d kept",
            agent_id, result.redistributed, result.failed,
        )
        await publish(
            self._events,
            EventName.ORDERS_REDISTRIBUTED,
            {
                "agentId": agent_id,
                "redistributed": result.redistributed,
                "failed": result.failed,
            },
        )
        return result
