"""ProductAffinityPolicy — which agents may take an order, by product."""

from __future__ import annotations

from dispatch_engine.domain.entities.order import Order


def normalize_product_name(name: str) -> str:
    return name.strip().lower()


def order_product_names(order: Order) -> list[str]:
    """Distinct normalized item titles, in item order."""
    names: list[str] = []
    for item in order.items:
        if not item.title or not item.title.strip():
            continue
        name = normalize_product_name(item.title)
        if name not in names:
            names.append(name)
    return names


def restrict_to_product_agents(assigned_agent_ids: set[str]) -> frozenset[str] | None:
    """Pool restriction for an order whose products map to *assigned_agent_ids*.

    None means no restriction: when nobody is assigned to any of the order's
    products, every eligible agent may take it.
    """
    if not assigned_agent_ids:
        return None
    return frozenset(assigned_agent_ids)
