"""Tests for ProductAffinityPolicy."""

from datetime import datetime, timezone

from dispatch_engine.domain.entities.order import Order, OrderItem
from dispatch_engine.domain.policies.product_affinity import (
    order_product_names,
    restrict_to_product_agents,
)
from dispatch_engine.domain.value_objects.enums import OrderStatus


def _order(*titles):
    return Order(
        id="o1",
        reference="REF-1",
        status=OrderStatus.PENDING,
        created_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
        items=[OrderItem(title=t) for t in titles],
    )


def test_product_names_are_normalized_and_distinct():
    order = _order(" Serum ", "serum", "Soap", None, "  ")
    assert order_product_names(order) == ["serum", "soap"]


def test_order_without_items_has_no_products():
    assert order_product_names(_order()) == []


def test_no_assigned_agents_means_no_restriction():
    assert restrict_to_product_agents(set()) is None


def test_assigned_agents_become_the_restriction():
    assert restrict_to_product_agents({"a", "b"}) == frozenset({"a", "b"})
