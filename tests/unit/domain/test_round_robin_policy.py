"""Tests for RoundRobinPolicy."""

import pytest

from dispatch_engine.domain.entities.workload import AgentWorkload
from dispatch_engine.domain.policies.round_robin import AssignmentPool, pick_least_loaded
from dispatch_engine.domain.value_objects.enums import Presence


def _wl(agent_id: str, load: int = 0, max_orders: int = 10) -> AgentWorkload:
    return AgentWorkload(
        agent_id=agent_id, agent_name=agent_id.upper(), agent_code=None,
        presence=Presence.ONLINE, assigned_orders=load, max_orders=max_orders,
        utilization_rate=load / max_orders,
    )


def test_pick_single_candidate():
    assert pick_least_loaded([_wl("a")]).agent_id == "a"


def test_pick_sorts_by_load_then_id():
    chosen = pick_least_loaded([_wl("a", load=5), _wl("c", load=0), _wl("b", load=0)])
    # b and c are both empty, b has the lower id
    assert chosen.agent_id == "b"


def test_pick_equal_load_sorted_by_id():
    chosen = pick_least_loaded([_wl("c"), _wl("a"), _wl("b")])
    assert chosen.agent_id == "a"


def test_pick_empty_raises():
    with pytest.raises(ValueError, match="empty candidate list"):
        pick_least_loaded([])


def test_pool_rotates_across_equally_loaded_agents():
    pool = AssignmentPool([_wl("a"), _wl("b"), _wl("c")])
    picks = []
    for _ in range(6):
        chosen = pool.pick()
        picks.append(chosen.agent_id)
        pool.record_assignment(chosen.agent_id)
    assert picks == ["a", "b", "c", "a", "b", "c"]


def test_pool_prefers_lighter_agent_until_levelled():
    pool = AssignmentPool([_wl("a", load=3), _wl("b", load=0)])
    picks = []
    for _ in range(4):
        chosen = pool.pick()
        picks.append(chosen.agent_id)
        pool.record_assignment(chosen.agent_id)
    assert picks == ["b", "b", "b", "a"]


def test_pool_drops_agent_at_capacity():
    pool = AssignmentPool([_wl("a", load=1, max_orders=2), _wl("b", load=5, max_orders=10)])
    pool.record_assignment("a")
    assert pool.agent_ids == ["b"]
    assert pool.pick().agent_id == "b"


def test_pool_ignores_full_agents_from_the_start():
    pool = AssignmentPool([_wl("a", load=2, max_orders=2), _wl("b", load=0, max_orders=0)])
    assert len(pool) == 0
    assert not pool
    assert pool.pick() is None


def test_pool_updates_utilization():
    workload = _wl("a", load=1, max_orders=4)
    pool = AssignmentPool([workload])
    pool.record_assignment("a")
    assert workload.assigned_orders == 2
    assert workload.utilization_rate == 0.5


def test_pool_discard():
    pool = AssignmentPool([_wl("a"), _wl("b")])
    pool.discard("a")
    pool.discard("missing")
    assert pool.agent_ids == ["b"]


def test_pool_pick_restricted_to_subset():
    pool = AssignmentPool([_wl("a", load=0), _wl("b", load=3), _wl("c", load=1)])
    assert pool.pick(frozenset({"b", "c"})).agent_id == "c"


def test_pool_pick_restriction_outside_pool_returns_none():
    pool = AssignmentPool([_wl("a")])
    assert pool.pick(frozenset({"ghost"})) is None
