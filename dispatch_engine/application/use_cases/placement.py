"""OrderPlacer — conditional placement of one order into an assignment pool."""

from __future__ import annotations

import logging

from dispatch_engine.application.ports.order_repo import OrderRepository
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.application.use_cases.activity_logger import ActivityLogger
from dispatch_engine.application.use_cases.results import AssignmentResult
from dispatch_engine.domain.entities.order import Order
from dispatch_engine.domain.policies.round_robin import AssignmentPool
from dispatch_engine.domain.value_objects.enums import ActivityType

logger = logging.getLogger(__name__)


class OrderPlacer:
    """Shared by the auto-assigner and the offline redistribution."""

    def __init__(
        self,
        order_repo: OrderRepository,
        activity_logger: ActivityLogger,
        call: BoundedCall | None = None,
    ):
        self._orders = order_repo
        self._activity = activity_logger
        self._call = call or BoundedCall()

    async def place(
        self,
        order: Order,
        pool: AssignmentPool,
        expected_agent_id: str | None = None,
        activity_type: ActivityType = ActivityType.ORDER_ASSIGNED,
        restrict_to: frozenset[str] | None = None,
    ) -> AssignmentResult:
        """Give *order* to the least-loaded agent in *pool* (or in *restrict_to*).

        Writes only if the order's assignee is still *expected_agent_id*.
        Failures are returned, never raised.
        """
        candidate = pool.pick(restrict_to)
        if candidate is None:
            return AssignmentResult(
                order_id=order.id,
                success=False,
                message=(
                    "No eligible agent available"
                    if restrict_to is None
                    else "No eligible agent assigned to the products in this order"
                ),
                previous_agent_id=expected_agent_id,
            )

        try:
            won = await self._call(
                self._orders.conditional_assign(order.id, candidate.agent_id, expected_agent_id),
                "assign order",
            )
        except Exception as e:
            logger.exception("Error assigning order %s", order.reference)
            return AssignmentResult(
                order_id=order.id,
                success=False,
                message=str(e) or "Assignment failed",
                previous_agent_id=expected_agent_id,
            )

        if not won:
            logger.info("Order %s changed hands concurrently, skipped", order.reference)
            return AssignmentResult(
                order_id=order.id,
                success=False,
                message="Order was assigned by another operation",
                previous_agent_id=expected_agent_id,
            )

        pool.record_assignment(candidate.agent_id)

        if expected_agent_id is None:
            description = f"Order {order.reference} auto-assigned to {candidate.agent_name}"
        else:
            description = (
                f"Order {order.reference} redistributed from agent {expected_agent_id} "
                f"to {candidate.agent_name}"
            )
        await self._activity.record(candidate.agent_id, activity_type, description, order_id=order.id)

        return AssignmentResult(
            order_id=order.id,
            success=True,
            message=f"Order assigned to {candidate.agent_name}",
            assigned_agent_id=candidate.agent_id,
            assigned_agent_name=candidate.agent_name,
            previous_agent_id=expected_agent_id,
        )
