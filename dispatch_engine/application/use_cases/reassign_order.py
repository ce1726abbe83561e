"""ReassignOrderUseCase — operator moves one order to one named agent."""

from __future__ import annotations

import logging

from dispatch_engine.application.ports.agent_repo import AgentDirectory
from dispatch_engine.application.ports.event_sink import EventSink
from dispatch_engine.application.ports.order_repo import OrderRepository
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.application.use_cases.activity_logger import ActivityLogger
from dispatch_engine.application.use_cases.notifications import publish
from dispatch_engine.application.use_cases.results import AssignmentResult
from dispatch_engine.domain.entities.agent import Agent
from dispatch_engine.domain.entities.order import Order
from dispatch_engine.domain.policies.workload_rule import is_reassignable
from dispatch_engine.domain.value_objects.enums import ActivityType, EventName

logger = logging.getLogger(__name__)


class ReassignOrderUseCase:
    """Manual (re)assignment.

    Capacity is deliberately not enforced: an operator override may push an
    agent past max_orders. Role and activity are enforced.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        agent_directory: AgentDirectory,
        activity_logger: ActivityLogger,
        events: EventSink | None = None,
        call: BoundedCall | None = None,
    ):
        self._orders = order_repo
        self._agents = agent_directory
        self._activity = activity_logger
        self._events = events
        self._call = call or BoundedCall()

    async def execute(
        self,
        order_id: str,
        target_agent_id: str,
        acting_user_id: str,
        notify: bool = True,
    ) -> AssignmentResult:
        """Never raises; every failure comes back as success=False."""
        try:
            return await self._reassign(order_id, target_agent_id, acting_user_id, notify)
        except Exception as e:
            logger.exception("Error reassigning order %s", order_id)
            return AssignmentResult(
                order_id=order_id,
                success=False,
                message=str(e) or "Reassignment failed",
            )

    async def _reassign(
        self, order_id: str, target_agent_id: str, acting_user_id: str, notify: bool
    ) -> AssignmentResult:
        order = await self._call(self._orders.get_by_id(order_id), "get order")
        if order is None:
            return AssignmentResult(order_id=order_id, success=False, message="Order not found")

        if not is_reassignable(order.status):
            return AssignmentResult(
                order_id=order_id,
                success=False,
                message=f"Order in status {order.status.value} cannot be reassigned",
                previous_agent_id=order.assigned_agent_id,
            )

        agent = await self._call(self._agents.get_by_id(target_agent_id), "get agent")
        if agent is None:
            return AssignmentResult(
                order_id=order_id,
                success=False,
                message="Agent not found",
                previous_agent_id=order.assigned_agent_id,
            )
        if not agent.can_receive_orders():
            return AssignmentResult(
                order_id=order_id,
                success=False,
                message="Invalid or inactive agent",
                previous_agent_id=order.assigned_agent_id,
            )

        if order.assigned_agent_id == agent.id:
            return AssignmentResult(
                order_id=order_id,
                success=True,
                message=f"Order is already assigned to {agent.display_name}",
                assigned_agent_id=agent.id,
                assigned_agent_name=agent.display_name,
                previous_agent_id=agent.id,
            )

        won = await self._call(
            self._orders.conditional_assign(order.id, agent.id, order.assigned_agent_id),
            "assign order",
        )
        if not won:
            return AssignmentResult(
                order_id=order_id,
                success=False,
                message="Order was changed by another operation, reload and retry",
                previous_agent_id=order.assigned_agent_id,
            )

        await self._activity.record(
            agent.id,
            ActivityType.ORDER_ASSIGNED,
            self._describe(order, agent, acting_user_id),
            order_id=order.id,
        )
        logger.info(
            "Order %s moved from %s to %s by %s",
            order.reference, order.assigned_agent_id, agent.id, acting_user_id,
        )

        if notify:
            event = EventName.ORDER_REASSIGNED if order.assigned_agent_id else EventName.ORDER_ASSIGNED
            await publish(
                self._events,
                event,
                {
                    "orderId": order.id,
                    "orderReference": order.reference,
                    "agentId": agent.id,
                    "previousAgentId": order.assigned_agent_id,
                    "actingUserId": acting_user_id,
                    "source": "manual",
                },
            )

        verb = "reassigned" if order.assigned_agent_id else "assigned"
        return AssignmentResult(
            order_id=order_id,
            success=True,
            message=f"Order {verb} to {agent.display_name}",
            assigned_agent_id=agent.id,
            assigned_agent_name=agent.display_name,
            previous_agent_id=order.assigned_agent_id,
        )

    @staticmethod
    def _describe(order: Order, agent: Agent, acting_user_id: str) -> str:
        if order.assigned_agent_id:
            return (
                f"Order {order.reference} reassigned by {acting_user_id} "
                f"from agent {order.assigned_agent_id} to {agent.display_name}"
            )
        return f"Order {order.reference} manually assigned by {acting_user_id} to {agent.display_name}"
