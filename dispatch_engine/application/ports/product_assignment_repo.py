"""Port interface for agent ↔ product assignments."""

from abc import ABC, abstractmethod


class ProductAssignmentRepository(ABC):
    @abstractmethod
    async def agents_for_products(self, product_names: list[str]) -> set[str]:
        """Ids of active agents with an active assignment to any of the
        (normalized) *product_names*."""
        ...

    @abstractmethod
    async def products_for_agent(self, agent_id: str) -> list[str]:
        """Normalized product names, sorted."""
        ...

    @abstractmethod
    async def replace_products_for_agent(self, agent_id: str, product_names: list[str]) -> list[str]:
        ...
