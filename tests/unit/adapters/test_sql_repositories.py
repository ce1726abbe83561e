"""SQL adapters against a throwaway SQLite file (aiosqlite)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from dispatch_engine.adapters.persistence.database import Base
from dispatch_engine.adapters.persistence.models import (
    AgentModel,
    AgentPresenceModel,
    OrderItemModel,
    OrderModel,
)
from dispatch_engine.adapters.persistence.repositories import (
    SqlActivityLogRepository,
    SqlOrderRepository,
    SqlPresenceStore,
    SqlProductAssignmentRepository,
)
from dispatch_engine.application.ports.order_repo import AssignedOrderQuery
from dispatch_engine.application.use_cases.activity_logger import ActivityLogger
from dispatch_engine.domain.policies.product_filter import ProductFilter, ProductSpec
from dispatch_engine.domain.value_objects.enums import (
    ActivityType,
    FilterLogic,
    OrderStatus,
    Presence,
)

T0 = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'dispatch.db'}")

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves.
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


def _agent(agent_id, is_active=True):
    return AgentModel(id=agent_id, name=agent_id, role="AGENT_SUIVI", is_active=is_active, max_orders=50)


def _order(order_id, minutes=0, agent=None, status=OrderStatus.PENDING, items=()):
    return OrderModel(
        id=order_id,
        reference=order_id,
        status=status.value,
        created_at=T0 + timedelta(minutes=minutes),
        assigned_agent_id=agent,
        items=[OrderItemModel(title=title, sku=sku) for title, sku in items],
    )


async def _seed(factory, *rows):
    async with factory() as s:
        s.add_all(rows)
        await s.commit()


async def _load(factory, order_id):
    async with factory() as s:
        return await SqlOrderRepository(s).get_by_id(order_id)


# ─── Conditional assignment ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_first_claim_wins_and_promotes_pending(factory):
    await _seed(factory, _agent("a"), _agent("b"), _order("o1"))

    async with factory() as s:
        repo = SqlOrderRepository(s, clock=lambda: T0)
        first = await repo.conditional_assign("o1", "a")
        second = await repo.conditional_assign("o1", "b")

    assert first is True
    assert second is False
    order = await _load(factory, "o1")
    assert order.assigned_agent_id == "a"
    assert order.status == OrderStatus.ASSIGNED


@pytest.mark.asyncio
async def test_move_requires_expected_owner(factory):
    await _seed(
        factory, _agent("a"), _agent("b"), _agent("c"),
        _order("o1", agent="a", status=OrderStatus.IN_PROGRESS),
    )

    async with factory() as s:
        repo = SqlOrderRepository(s)
        stale = await repo.conditional_assign("o1", "b", expected_agent_id="c")
        moved = await repo.conditional_assign("o1", "b", expected_agent_id="a")

    assert stale is False
    assert moved is True
    order = await _load(factory, "o1")
    assert order.assigned_agent_id == "b"
    assert order.status == OrderStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_terminal_orders_are_never_claimed(factory):
    await _seed(factory, _agent("a"), _order("o1", status=OrderStatus.CANCELLED))

    async with factory() as s:
        assert await SqlOrderRepository(s).conditional_assign("o1", "a") is False

    assert (await _load(factory, "o1")).assigned_agent_id is None


@pytest.mark.asyncio
async def test_reads_after_claim_see_new_owner(factory):
    await _seed(factory, _agent("a"), _order("o1"))

    async with factory() as s:
        repo = SqlOrderRepository(s)
        [before] = await repo.find_unassigned(10)
        await repo.conditional_assign("o1", "a")
        after = await repo.get_by_id("o1")

    assert before.assigned_agent_id is None
    assert after.assigned_agent_id == "a"


# ─── Activity log ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_rejected_activity_row_leaves_session_usable(factory):
    await _seed(factory, _agent("a"), _order("o1"), _order("o2", minutes=1))

    async with factory() as s:
        activity = ActivityLogger(SqlActivityLogRepository(s), clock=lambda: T0)
        orders = SqlOrderRepository(s)
        # description is NOT NULL
        lost = await activity.record("a", ActivityType.ORDER_ASSIGNED, None, order_id="o1")
        claimed = await orders.conditional_assign("o1", "a")
        kept = await activity.record("a", ActivityType.ORDER_ASSIGNED, "Assigned o2", order_id="o2")
        claimed_next = await orders.conditional_assign("o2", "a")
        await s.commit()

    assert lost is None
    assert claimed is True
    assert kept is not None and kept.id is not None
    assert claimed_next is True
    async with factory() as s:
        records = await SqlActivityLogRepository(s).list_recent(agent_id="a")
    assert [r.description for r in records] == ["Assigned o2"]


# ─── Product filter ──────────────────────────────────────────────────


@pytest.fixture
def catalogue():
    return [
        _order("sku-match", 1, agent="a", items=[("Serum", "SER")]),
        _order("title-only", 2, agent="a", items=[(" serum ", None)]),
        _order("sku-differs", 3, agent="a", items=[("Serum", "OTHER")]),
        _order("both", 4, agent="a", items=[("Serum", "SER"), ("Soap", None)]),
        _order("unassigned", 5, items=[("Serum", "SER")]),
    ]


async def _assigned_ids(factory, product_filter):
    async with factory() as s:
        orders = await SqlOrderRepository(s).find_assigned(AssignedOrderQuery(product_filter=product_filter))
    return {o.id for o in orders}


@pytest.mark.asyncio
async def test_any_filter_prefers_sku_when_both_sides_have_one(factory, catalogue):
    await _seed(factory, _agent("a"), *catalogue)

    ids = await _assigned_ids(
        factory, ProductFilter(enabled=True, products=(ProductSpec(title="Serum", sku="ser"),))
    )

    assert ids == {"sku-match", "title-only", "both"}


@pytest.mark.asyncio
async def test_all_filter_needs_every_product(factory, catalogue):
    await _seed(factory, _agent("a"), *catalogue)

    ids = await _assigned_ids(
        factory,
        ProductFilter(
            enabled=True,
            products=(ProductSpec(title="Serum", sku="SER"), ProductSpec(title="SOAP")),
            logic=FilterLogic.ALL,
        ),
    )

    assert ids == {"both"}


@pytest.mark.asyncio
async def test_disabled_filter_returns_every_assigned_order(factory, catalogue):
    await _seed(factory, _agent("a"), *catalogue)

    ids = await _assigned_ids(factory, ProductFilter(enabled=False, products=(ProductSpec(title="x"),)))

    assert ids == {"sku-match", "title-only", "sku-differs", "both"}


# ─── Presence ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_offline_edge_reported_once(factory):
    await _seed(
        factory, _agent("a"),
        AgentPresenceModel(agent_id="a", presence=Presence.ONLINE.value, last_activity_at=T0),
    )

    async with factory() as s:
        store = SqlPresenceStore(s, clock=lambda: T0)
        first = await store.set_offline("a")
        second = await store.set_offline("a")
        unknown = await store.set_offline("ghost")

    assert (first, second, unknown) == (True, False, False)


# ─── Product assignments ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_product_assignments_replace_and_skip_inactive_agents(factory):
    await _seed(factory, _agent("a"), _agent("b", is_active=False))

    async with factory() as s:
        repo = SqlProductAssignmentRepository(s)
        await repo.replace_products_for_agent("a", ["soap", "serum"])
        await repo.replace_products_for_agent("b", ["serum"])
        await s.commit()

    async with factory() as s:
        repo = SqlProductAssignmentRepository(s)
        assert await repo.agents_for_products(["serum"]) == {"a"}
        assert await repo.agents_for_products([]) == set()
        assert await repo.products_for_agent("a") == ["serum", "soap"]
        assert await repo.replace_products_for_agent("a", ["cream"]) == ["cream"]
        await s.commit()

    async with factory() as s:
        assert await SqlProductAssignmentRepository(s).products_for_agent("a") == ["cream"]
