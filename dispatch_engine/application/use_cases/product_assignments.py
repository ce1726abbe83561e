"""ProductAssignmentService — which agents handle which products."""

from __future__ import annotations

import logging

from dispatch_engine.application.errors import ValidationError
from dispatch_engine.application.ports.agent_repo import AgentDirectory
from dispatch_engine.application.ports.product_assignment_repo import ProductAssignmentRepository
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.domain.entities.order import Order
from dispatch_engine.domain.policies.product_affinity import (
    normalize_product_name,
    order_product_names,
    restrict_to_product_agents,
)

logger = logging.getLogger(__name__)


class ProductAssignmentService:
    def __init__(
        self,
        assignments: ProductAssignmentRepository,
        agent_directory: AgentDirectory,
        call: BoundedCall | None = None,
    ):
        self._assignments = assignments
        self._agents = agent_directory
        self._call = call or BoundedCall()

    async def assign_products(self, agent_id: str, product_names: list[str]) -> list[str] | None:
        """Replace the agent's product list. None if the agent is unknown."""
        agent = await self._call(self._agents.get_by_id(agent_id), "get agent")
        if agent is None:
            return None
        if not agent.can_receive_orders():
            raise ValidationError("Products can only be assigned to active follow-up agents")

        names: list[str] = []
        for raw in product_names:
            if raw and raw.strip() and normalize_product_name(raw) not in names:
                names.append(normalize_product_name(raw))

        stored = await self._call(
            self._assignments.replace_products_for_agent(agent_id, names),
            "replace product assignments",
        )
        logger.info("Agent %s now handles %d products", agent_id, len(stored))
        return stored

    async def products_for(self, agent_id: str) -> list[str] | None:
        if await self._call(self._agents.get_by_id(agent_id), "get agent") is None:
            return None
        return await self._call(
            self._assignments.products_for_agent(agent_id), "list agent products"
        )

    async def restriction_for(self, order: Order) -> frozenset[str] | None:
        """Agents allowed to take *order*, or None when anyone may."""
        names = order_product_names(order)
        if not names:
            return None
        agent_ids = await self._call(
            self._assignments.agents_for_products(names), "find product agents"
        )
        return restrict_to_product_agents(agent_ids)
