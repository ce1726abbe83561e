"""Tests for domain entities."""

from datetime import datetime, timezone

from dispatch_engine.domain.entities.agent import Agent
from dispatch_engine.domain.entities.order import Order
from dispatch_engine.domain.entities.workload import AgentWorkload
from dispatch_engine.domain.value_objects.enums import OrderStatus, Presence, UserRole


def test_agent_display_name_falls_back_to_code():
    assert Agent(id="a1", name=None, role=UserRole.AGENT_SUIVI, agent_code="AG-7").display_name == "AG-7"
    assert Agent(id="a1", name=None, role=UserRole.AGENT_SUIVI).display_name == "Unknown"


def test_active_follow_up_agent_can_receive_orders():
    assert Agent(id="a1", name="Sara", role=UserRole.AGENT_SUIVI).can_receive_orders()


def test_inactive_agent_cannot_receive_orders():
    assert not Agent(id="a1", name="Sara", role=UserRole.AGENT_SUIVI, is_active=False).can_receive_orders()


def test_manager_cannot_receive_orders():
    assert not Agent(id="m1", name="Omar", role=UserRole.TEAM_MANAGER).can_receive_orders()


def test_order_is_assigned():
    order = Order(
        id="o1", reference="REF-1", status=OrderStatus.PENDING,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    assert not order.is_assigned()
    order.assigned_agent_id = "a1"
    assert order.is_assigned()


def test_workload_capacity_and_presence():
    w = AgentWorkload(
        agent_id="a1", agent_name="Sara", agent_code=None, presence=Presence.BREAK,
        assigned_orders=4, max_orders=5, utilization_rate=0.8,
    )
    assert w.has_capacity()
    assert not w.is_online
    w.utilization_rate = 1.0
    assert not w.has_capacity()
