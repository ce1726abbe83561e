"""BulkReassignUseCase — redistribute a batch of orders by exact percentages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dispatch_engine.application.errors import ValidationError
from dispatch_engine.application.ports.event_sink import EventSink
from dispatch_engine.application.ports.order_repo import AssignedOrderQuery, OrderRepository
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.application.use_cases.notifications import publish
from dispatch_engine.application.use_cases.reassign_order import ReassignOrderUseCase
from dispatch_engine.domain.policies.product_filter import ProductFilter
from dispatch_engine.domain.policies.ratio_distribution import (
    TargetAgentSpec,
    build_assignment_sequence,
    percentages_are_valid,
    plan_distribution,
)
from dispatch_engine.domain.value_objects.enums import EventName, SelectionType

logger = logging.getLogger(__name__)


@dataclass
class BulkReassignCommand:
    selection_type: SelectionType | str
    order_count: int
    target_agents: list[TargetAgentSpec]
    source_agent_ids: list[str] | None = None
    product_filter: ProductFilter = field(default_factory=ProductFilter)


@dataclass
class BulkOrderResult:
    order_id: str
    order_reference: str
    from_agent_id: str | None
    to_agent_id: str
    to_agent_name: str | None
    success: bool
    message: str


@dataclass
class BulkReassignResult:
    total_orders: int = 0
    successful: int = 0
    failed: int = 0
    results: list[BulkOrderResult] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.total_orders > 0

    def successful_by_agent(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for r in self.results:
            if r.success:
                counts[r.to_agent_id] = counts.get(r.to_agent_id, 0) + 1
        return counts


def validate_command(command: BulkReassignCommand) -> SelectionType:
    """Fail fast on anything that would make the batch meaningless.

    Returns the parsed selection type.
    """
    try:
        selection = SelectionType(command.selection_type)
    except ValueError:
        raise ValidationError('Invalid selectionType. Must be "global" or "agents"') from None

    if isinstance(command.order_count, bool) or not isinstance(command.order_count, int):
        raise ValidationError("orderCount must be an integer")
    if command.order_count <= 0:
        raise ValidationError("orderCount must be greater than zero")

    if not command.target_agents:
        raise ValidationError("At least one target agent is required")
    if any(not t.agent_id for t in command.target_agents):
        raise ValidationError("Every target agent needs an agentId")
    if any(t.percentage < 0 for t in command.target_agents):
        raise ValidationError("Target agent percentages cannot be negative")
    if not percentages_are_valid([t.percentage for t in command.target_agents]):
        raise ValidationError("Target agent percentages must sum to 100%")

    try:
        build_assignment_sequence([t.percentage for t in command.target_agents])
    except ValueError as e:
        raise ValidationError(str(e)) from e

    if selection == SelectionType.AGENTS and not command.source_agent_ids:
        raise ValidationError("sourceAgentIds is required for agent-based selection")

    return selection


class BulkReassignUseCase:
    """Select the newest assigned orders and deal them out in ratio order.

    The j-th selected order goes to target sequence[j mod len(sequence)],
    where the sequence is the gcd-reduced repetition of target indices.
    Every order passes through the manual reassignment checks; a failed order
    is reported and the batch continues.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        reassign: ReassignOrderUseCase,
        events: EventSink | None = None,
        call: BoundedCall | None = None,
    ):
        self._orders = order_repo
        self._reassign = reassign
        self._events = events
        self._call = call or BoundedCall()

    async def execute(self, command: BulkReassignCommand, acting_user_id: str) -> BulkReassignResult:
        selection = validate_command(command)

        query = AssignedOrderQuery(
            agent_ids=tuple(command.source_agent_ids) if selection == SelectionType.AGENTS else None,
            product_filter=command.product_filter,
            limit=command.order_count,
        )
        orders = await self._call(self._orders.find_assigned(query), "select orders")

        result = BulkReassignResult()
        if not orders:
            logger.info("Bulk reassignment by %s found no candidate orders", acting_user_id)
            return result

        by_id = {o.id: o for o in orders}
        plan = plan_distribution([o.id for o in orders], command.target_agents)
        logger.info(
            "Bulk reassigning %d orders across %d agents (requested by %s)",
            len(plan), len(command.target_agents), acting_user_id,
        )

        for order_id, target in plan:
            order = by_id[order_id]
            outcome = await self._reassign.execute(
                order_id, target.agent_id, acting_user_id, notify=False
            )
            result.results.append(
                BulkOrderResult(
                    order_id=order_id,
                    order_reference=order.reference,
                    from_agent_id=order.assigned_agent_id,
                    to_agent_id=target.agent_id,
                    to_agent_name=outcome.assigned_agent_name or target.agent_name,
                    success=outcome.success,
                    message=outcome.message,
                )
            )
            if outcome.success:
                result.successful += 1
            else:
                result.failed += 1
        result.total_orders = len(result.results)

        logger.info(
            "Bulk reassignment complete: %d successful, %d failed",
            result.successful, result.failed,
        )
        await self._notify(result, acting_user_id)
        return result

    async def _notify(self, result: BulkReassignResult, acting_user_id: str) -> None:
        if result.successful == 0:
            return
        await publish(
            self._events,
            EventName.BULK_REASSIGNMENT_COMPLETED,
            {
                "managerId": acting_user_id,
                "totalOrders": result.total_orders,
                "successful": result.successful,
                "failed": result.failed,
            },
        )
        for agent_id, count in result.successful_by_agent().items():
            await publish(
                self._events,
                EventName.ORDER_REASSIGNED,
                {"agentId": agent_id, "count": count, "source": "bulk_reassignment"},
            )
