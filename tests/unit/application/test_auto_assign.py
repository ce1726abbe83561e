"""Tests for AutoAssignUseCase with in-memory stores."""

from __future__ import annotations

import pytest

from dispatch_engine.application.errors import StoreTimeoutError
from dispatch_engine.domain.value_objects.enums import ActivityType, EventName, OrderStatus, Presence


@pytest.mark.asyncio
async def test_single_agent_takes_all_orders_within_capacity(harness):
    harness.add_agent("a", max_orders=5)
    await harness.online("a")
    for i in range(3):
        harness.add_order(f"o{i}")

    batch = await harness.auto_assign.execute()

    assert batch.total_processed == 3
    assert batch.successful_assignments == 3
    assert batch.failed_assignments == 0
    workload = await harness.workloads.get_workload("a")
    assert workload.assigned_orders == 3


@pytest.mark.asyncio
async def test_capacity_is_never_exceeded(harness):
    harness.add_agent("a", max_orders=2)
    harness.add_agent("b", max_orders=3)
    await harness.online("a", "b")
    for i in range(10):
        harness.add_order(f"o{i:02d}")

    batch = await harness.auto_assign.execute()

    assert batch.successful_assignments == 5
    assert batch.failed_assignments == 5
    assert harness.load_of("a") == 2
    assert harness.load_of("b") == 3
    failures = [r for r in batch.results if not r.success]
    assert {r.message for r in failures} == {"No eligible agent available"}
    assert all(harness.orders.orders[r.order_id].assigned_agent_id is None for r in failures)


@pytest.mark.asyncio
async def test_least_loaded_agent_gets_next_order(harness):
    harness.add_agent("a", max_orders=10)
    harness.add_agent("b", max_orders=10)
    await harness.online("a", "b")
    for i in range(3):
        harness.add_order(f"old{i}", assigned_to="a")
    for i in range(4):
        harness.add_order(f"new{i}")

    batch = await harness.auto_assign.execute()

    assert [r.assigned_agent_id for r in batch.results] == ["b", "b", "b", "a"]
    assert harness.load_of("a") == 4
    assert harness.load_of("b") == 3


@pytest.mark.asyncio
async def test_equal_agents_share_round_robin(harness):
    harness.add_agent("a")
    harness.add_agent("b")
    await harness.online("a", "b")
    for i in range(4):
        harness.add_order(f"o{i}")

    batch = await harness.auto_assign.execute()

    assert [r.assigned_agent_id for r in batch.results] == ["a", "b", "a", "b"]


@pytest.mark.asyncio
async def test_offline_busy_and_inactive_agents_are_skipped(harness):
    harness.add_agent("online")
    harness.add_agent("offline")
    harness.add_agent("busy")
    harness.add_agent("inactive", is_active=False)
    await harness.online("online", "inactive")
    await harness.presence.set_presence("busy", Presence.BUSY)
    await harness.presence.touch_activity("busy")
    for i in range(3):
        harness.add_order(f"o{i}")

    batch = await harness.auto_assign.execute()

    assert {r.assigned_agent_id for r in batch.results} == {"online"}


@pytest.mark.asyncio
async def test_expired_activity_marker_means_not_online(harness, clock):
    harness.add_agent("a")
    await harness.online("a")
    clock.advance(minutes=16)
    harness.add_order("o1")

    batch = await harness.auto_assign.execute()

    assert batch.successful_assignments == 0
    assert harness.orders.orders["o1"].assigned_agent_id is None


@pytest.mark.asyncio
async def test_terminal_orders_do_not_count_toward_capacity(harness):
    harness.add_agent("a", max_orders=2)
    await harness.online("a")
    harness.add_order("done1", status=OrderStatus.DELIVERED, assigned_to="a")
    harness.add_order("done2", status=OrderStatus.CANCELLED, assigned_to="a")
    harness.add_order("o1")
    harness.add_order("o2")

    batch = await harness.auto_assign.execute()

    assert batch.successful_assignments == 2


@pytest.mark.asyncio
async def test_terminal_unassigned_orders_are_not_processed(harness):
    harness.add_agent("a")
    await harness.online("a")
    harness.add_order("cancelled", status=OrderStatus.CANCELLED)
    harness.add_order("o1")

    batch = await harness.auto_assign.execute()

    assert [r.order_id for r in batch.results] == ["o1"]


@pytest.mark.asyncio
async def test_oldest_orders_first_with_batch_limit(make_harness):
    harness = make_harness(batch_limit=2)
    harness.add_agent("a")
    await harness.online("a")
    for i in range(4):
        harness.add_order(f"o{i}")

    batch = await harness.auto_assign.execute()

    assert [r.order_id for r in batch.results] == ["o0", "o1"]


@pytest.mark.asyncio
async def test_assignment_updates_order_and_logs_activity(harness, clock):
    harness.add_agent("a", name="Sara")
    await harness.online("a")
    harness.add_order("o1")

    await harness.auto_assign.execute(triggered_by="m1")

    order = harness.orders.orders["o1"]
    assert order.status == OrderStatus.ASSIGNED
    assert order.assigned_at == clock.now
    records = harness.activity_log.of_type(ActivityType.ORDER_ASSIGNED)
    assert len(records) == 1
    assert records[0].agent_id == "a"
    assert records[0].order_id == "o1"


@pytest.mark.asyncio
async def test_events_published(harness):
    harness.add_agent("a")
    harness.add_agent("b")
    await harness.online("a", "b")
    for i in range(3):
        harness.add_order(f"o{i}")

    await harness.auto_assign.execute(triggered_by="m1")

    [completed] = harness.events.named(EventName.ASSIGNMENT_COMPLETED)
    assert completed["triggeredBy"] == "m1"
    assert completed["successfulAssignments"] == 3
    per_agent = {p["agentId"]: p["count"] for p in harness.events.named(EventName.ORDER_ASSIGNED)}
    assert per_agent == {"a": 2, "b": 1}


@pytest.mark.asyncio
async def test_no_agents_online_fails_every_order(harness):
    harness.add_agent("a")
    harness.add_order("o1")
    harness.add_order("o2")

    batch = await harness.auto_assign.execute()

    assert batch.total_processed == 2
    assert batch.failed_assignments == 2


@pytest.mark.asyncio
async def test_store_timeout_fails_only_that_order(harness, monkeypatch):
    harness.add_agent("a", max_orders=10)
    await harness.online("a")
    for i in range(3):
        harness.add_order(f"o{i}")
    original = harness.orders.conditional_assign

    async def stalls_on_o1(order_id, agent_id, expected_agent_id=None):
        if order_id == "o1":
            raise StoreTimeoutError("assign order", 1.0)
        return await original(order_id, agent_id, expected_agent_id)

    monkeypatch.setattr(harness.orders, "conditional_assign", stalls_on_o1)

    batch = await harness.auto_assign.execute()

    outcome = {r.order_id: r for r in batch.results}
    assert batch.successful_assignments == 2
    assert batch.failed_assignments == 1
    assert not outcome["o1"].success
    assert "timed out" in outcome["o1"].message
    assert outcome["o2"].assigned_agent_id == "a"
    assert harness.orders.orders["o1"].assigned_agent_id is None
    assert harness.load_of("a") == 2
