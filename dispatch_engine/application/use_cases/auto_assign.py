"""AutoAssignUseCase — round-robin placement of unassigned orders."""

from __future__ import annotations

import logging

from dispatch_engine.application.ports.event_sink import EventSink
from dispatch_engine.application.ports.order_repo import OrderRepository
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.application.use_cases.notifications import publish
from dispatch_engine.application.use_cases.placement import OrderPlacer
from dispatch_engine.application.use_cases.product_assignments import ProductAssignmentService
from dispatch_engine.application.use_cases.results import AssignmentResult, BatchAssignmentResult
from dispatch_engine.application.use_cases.workload import WorkloadReader
from dispatch_engine.domain.entities.order import Order
from dispatch_engine.domain.policies.round_robin import AssignmentPool
from dispatch_engine.domain.value_objects.enums import EventName

logger = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 1000


class AutoAssignUseCase:
    """Assign every unassigned order to an online agent with spare capacity.

    Orders are taken oldest first. Each order goes to the currently
    least-loaded eligible agent; the batch keeps its own running counters so
    capacity is enforced strictly within a run. When product assignments are
    wired in, an order whose products have assigned agents only goes to one
    of them.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        workload_reader: WorkloadReader,
        placer: OrderPlacer,
        events: EventSink | None = None,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
        call: BoundedCall | None = None,
        product_assignments: ProductAssignmentService | None = None,
    ):
        self._orders = order_repo
        self._workloads = workload_reader
        self._placer = placer
        self._events = events
        self._batch_limit = batch_limit
        self._call = call or BoundedCall()
        self._products = product_assignments

    async def execute(self, triggered_by: str | None = None) -> BatchAssignmentResult:
        orders = await self._call(
            self._orders.find_unassigned(self._batch_limit), "find unassigned orders"
        )
        pool = AssignmentPool(await self._workloads.list_assignable())
        logger.info(
            "Auto-assigning %d unassigned orders across %d eligible agents",
            len(orders), len(pool),
        )

        batch = BatchAssignmentResult()
        for order in orders:
            batch.add(await self._place(order, pool))

        logger.info(
            "Auto-assignment complete: %d/%d successful",
            batch.successful_assignments, batch.total_processed,
        )

        await publish(
            self._events,
            EventName.ASSIGNMENT_COMPLETED,
            {
                "triggeredBy": triggered_by,
                "totalProcessed": batch.total_processed,
                "successfulAssignments": batch.successful_assignments,
                "failedAssignments": batch.failed_assignments,
            },
        )
        for agent_id, order_ids in batch.assigned_by_agent().items():
            await publish(
                self._events,
                EventName.ORDER_ASSIGNED,
                {"agentId": agent_id, "orderIds": order_ids, "count": len(order_ids), "source": "auto"},
            )
        return batch

    async def _place(self, order: Order, pool: AssignmentPool) -> AssignmentResult:
        restrict_to = None
        if self._products is not None:
            try:
                restrict_to = await self._products.restriction_for(order)
            except Exception as e:
                logger.exception("Product lookup failed for order %s", order.reference)
                return AssignmentResult(
                    order_id=order.id, success=False, message=str(e) or "Product lookup failed"
                )
        return await self._placer.place(order, pool, restrict_to=restrict_to)
