"""Tests for the in-memory store adapters."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from dispatch_engine.adapters.memory.stores import (
    InMemoryAgentDirectory,
    InMemoryOrderRepository,
    InMemoryPresenceStore,
)
from dispatch_engine.application.ports.order_repo import AssignedOrderQuery
from dispatch_engine.domain.entities.agent import Agent
from dispatch_engine.domain.entities.order import Order
from dispatch_engine.domain.value_objects.enums import OrderStatus, Presence, UserRole

T0 = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self):
        self.now = T0

    def __call__(self):
        return self.now


def _order(order_id, minutes, agent=None, status=OrderStatus.PENDING, order_date=None):
    return Order(
        id=order_id, reference=order_id, status=status,
        created_at=T0 + timedelta(minutes=minutes), order_date=order_date,
        assigned_agent_id=agent,
    )


# ─── Orders ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_find_unassigned_oldest_first():
    repo = InMemoryOrderRepository([_order("b", 5), _order("a", 1), _order("c", 3, agent="x")])
    assert [o.id for o in await repo.find_unassigned(10)] == ["a", "b"]


@pytest.mark.asyncio
async def test_find_assigned_falls_back_to_created_at():
    repo = InMemoryOrderRepository([
        _order("dated", 1, agent="x", order_date=T0 + timedelta(days=1)),
        _order("undated", 50, agent="x"),
    ])
    result = await repo.find_assigned(AssignedOrderQuery())
    assert [o.id for o in result] == ["dated", "undated"]


@pytest.mark.asyncio
async def test_returned_orders_are_copies():
    repo = InMemoryOrderRepository([_order("a", 1)])
    copy = await repo.get_by_id("a")
    copy.assigned_agent_id = "x"
    assert repo.orders["a"].assigned_agent_id is None


@pytest.mark.asyncio
async def test_conditional_assign_checks_expected_owner():
    repo = InMemoryOrderRepository([_order("a", 1, agent="x", status=OrderStatus.ASSIGNED)])

    assert await repo.conditional_assign("a", "y", expected_agent_id=None) is False
    assert await repo.conditional_assign("a", "y", expected_agent_id="x") is True
    assert repo.orders["a"].assigned_agent_id == "y"


# ─── Agents ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_directory_lists_active_agents_by_name():
    directory = InMemoryAgentDirectory([
        Agent(id="2", name="Zoe", role=UserRole.AGENT_SUIVI),
        Agent(id="1", name="Adam", role=UserRole.AGENT_SUIVI),
        Agent(id="3", name="Bea", role=UserRole.AGENT_SUIVI, is_active=False),
        Agent(id="4", name="Carl", role=UserRole.ADMIN),
    ])
    assert [a.id for a in await directory.list_eligible_agents()] == ["1", "2"]
    assert [a.id for a in await directory.list_eligible_agents(active_only=False)] == ["1", "3", "2"]


# ─── Presence ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_presence_edge_reported_once():
    store = InMemoryPresenceStore()

    assert await store.set_online("a") is True
    assert await store.set_online("a") is False
    assert await store.set_offline("a") is True
    assert await store.set_offline("a") is False
    assert await store.set_offline("never-seen") is False


@pytest.mark.asyncio
async def test_presence_expiry():
    clock = Clock()
    store = InMemoryPresenceStore(activity_timeout=timedelta(minutes=15), clock=clock)
    await store.set_online("a")
    await store.set_online("b")

    clock.now += timedelta(minutes=10)
    await store.touch_activity("b")
    clock.now += timedelta(minutes=6)

    assert await store.get_presence("a") == Presence.OFFLINE
    assert await store.list_online_ids() == {"b"}
    assert await store.list_expired_ids() == {"a"}


@pytest.mark.asyncio
async def test_set_presence_returns_previous():
    store = InMemoryPresenceStore()
    assert await store.set_presence("a", Presence.BUSY) == Presence.OFFLINE
    assert await store.set_presence("a", Presence.BREAK) == Presence.BUSY
