"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest

from dispatch_engine.adapters.memory.stores import (
    InMemoryActivityLog,
    InMemoryAgentDirectory,
    InMemoryOrderRepository,
    InMemoryPresenceStore,
    InMemoryProductAssignments,
)
from dispatch_engine.application.ports.event_sink import EventSink
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.application.use_cases.activity_logger import ActivityLogger
from dispatch_engine.application.use_cases.analytics import AssignmentAnalyticsUseCase
from dispatch_engine.application.use_cases.auto_assign import AutoAssignUseCase
from dispatch_engine.application.use_cases.bulk_reassign import BulkReassignUseCase
from dispatch_engine.application.use_cases.placement import OrderPlacer
from dispatch_engine.application.use_cases.presence import PresenceService
from dispatch_engine.application.use_cases.product_assignments import ProductAssignmentService
from dispatch_engine.application.use_cases.reassign_order import ReassignOrderUseCase
from dispatch_engine.application.use_cases.redistribute import RedistributeOrdersUseCase
from dispatch_engine.application.use_cases.workload import WorkloadReader
from dispatch_engine.domain.entities.agent import Agent
from dispatch_engine.domain.entities.order import Order, OrderItem
from dispatch_engine.domain.value_objects.enums import EventName, OrderStatus, UserRole

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingEventSink(EventSink):
    def __init__(self):
        self.events: list[tuple[EventName, dict]] = []

    async def emit(self, event, payload):
        self.events.append((event, payload))

    def named(self, event: EventName) -> list[dict]:
        return [p for e, p in self.events if e == event]


@dataclass
class Harness:
    """Every use case wired onto in-memory stores sharing one clock."""

    clock: FakeClock
    orders: InMemoryOrderRepository
    agents: InMemoryAgentDirectory
    presence: InMemoryPresenceStore
    activity_log: InMemoryActivityLog
    events: RecordingEventSink
    activity_logger: ActivityLogger
    workloads: WorkloadReader
    placer: OrderPlacer
    auto_assign: AutoAssignUseCase
    redistribute: RedistributeOrdersUseCase
    reassign: ReassignOrderUseCase
    bulk: BulkReassignUseCase
    presence_service: PresenceService
    analytics: AssignmentAnalyticsUseCase
    products: InMemoryProductAssignments
    product_service: ProductAssignmentService
    _order_seq: int = field(default=0)

    def add_agent(
        self,
        agent_id: str,
        name: str | None = None,
        max_orders: int = 50,
        role: UserRole = UserRole.AGENT_SUIVI,
        is_active: bool = True,
    ) -> Agent:
        agent = Agent(
            id=agent_id,
            name=name or agent_id.title(),
            role=role,
            is_active=is_active,
            max_orders=max_orders,
            agent_code=f"AG-{agent_id}",
        )
        self.agents.agents[agent_id] = agent
        return agent

    def add_order(
        self,
        order_id: str,
        status: OrderStatus = OrderStatus.PENDING,
        assigned_to: str | None = None,
        order_date: datetime | None = None,
        items: list[OrderItem] | None = None,
        assigned_at: datetime | None = None,
    ) -> Order:
        # Insertion order is creation order.
        self._order_seq += 1
        created_at = NOW - timedelta(days=1) + timedelta(seconds=self._order_seq)
        if assigned_to is not None and status == OrderStatus.PENDING:
            status = OrderStatus.ASSIGNED
        return self.orders.add(
            Order(
                id=order_id,
                reference=f"REF-{order_id}",
                status=status,
                created_at=created_at,
                order_date=order_date or created_at,
                assigned_agent_id=assigned_to,
                assigned_at=assigned_at or (created_at if assigned_to else None),
                items=list(items or []),
            )
        )

    async def online(self, *agent_ids: str) -> None:
        for agent_id in agent_ids:
            await self.presence.set_online(agent_id)

    def load_of(self, agent_id: str) -> int:
        return sum(1 for o in self.orders.orders.values() if o.assigned_agent_id == agent_id)


def build_harness(clock: FakeClock | None = None, batch_limit: int = 1000) -> Harness:
    clock = clock or FakeClock()
    call = BoundedCall(timeout_seconds=1.0)
    orders = InMemoryOrderRepository(clock=clock)
    agents = InMemoryAgentDirectory()
    presence = InMemoryPresenceStore(activity_timeout=timedelta(minutes=15), clock=clock)
    activity_log = InMemoryActivityLog()
    events = RecordingEventSink()
    products = InMemoryProductAssignments(agents)
    product_service = ProductAssignmentService(products, agents, call=call)

    activity_logger = ActivityLogger(activity_log, call=call, clock=clock)
    workloads = WorkloadReader(agents, orders, presence, call=call, clock=clock)
    placer = OrderPlacer(orders, activity_logger, call=call)
    redistribute = RedistributeOrdersUseCase(orders, workloads, placer, events=events, call=call)
    reassign = ReassignOrderUseCase(orders, agents, activity_logger, events=events, call=call)

    return Harness(
        clock=clock,
        orders=orders,
        agents=agents,
        presence=presence,
        activity_log=activity_log,
        events=events,
        activity_logger=activity_logger,
        workloads=workloads,
        placer=placer,
        auto_assign=AutoAssignUseCase(
            orders,
            workloads,
            placer,
            events=events,
            batch_limit=batch_limit,
            call=call,
            product_assignments=product_service,
        ),
        redistribute=redistribute,
        reassign=reassign,
        bulk=BulkReassignUseCase(orders, reassign, events=events, call=call),
        presence_service=PresenceService(
            presence, agents, redistribute, activity_logger, events=events, call=call
        ),
        analytics=AssignmentAnalyticsUseCase(
            orders, agents, activity_logger, call=call, clock=clock
        ),
        products=products,
        product_service=product_service,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def harness(clock):
    return build_harness(clock)


@pytest.fixture
def make_harness(clock):
    def _make(**kwargs) -> Harness:
        return build_harness(clock, **kwargs)

    return _make
