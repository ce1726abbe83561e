"""Port interface for the authoritative order store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from dispatch_engine.domain.entities.order import Order
from dispatch_engine.domain.policies.product_filter import ProductFilter
from dispatch_engine.domain.value_objects.enums import OrderStatus


@dataclass(frozen=True)
class AssignedOrderQuery:
    """Selection of currently-assigned orders, newest order date first."""

    agent_ids: tuple[str, ...] | None = None  # None = system-wide
    product_filter: ProductFilter = field(default_factory=ProductFilter)
    limit: int | None = None


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Order | None:
        ...

    @abstractmethod
    async def find_unassigned(self, limit: int) -> list[Order]:
        """Unassigned, non-terminal orders, oldest creation time first."""
        ...

    @abstractmethod
    async def find_assigned(self, query: AssignedOrderQuery) -> list[Order]:
        """Assigned orders matching *query*, ordered by order date descending.

        The product filter is applied before the limit.
        """
        ...

    @abstractmethod
    async def find_for_agent(
        self,
        agent_id: str,
        statuses: frozenset[OrderStatus] | None = None,
        assigned_since: datetime | None = None,
    ) -> list[Order]:
        ...

    @abstractmethod
    async def conditional_assign(
        self, order_id: str, agent_id: str, expected_agent_id: str | None = None
    ) -> bool:
        """Atomically assign *order_id* to *agent_id*.

        The write happens only if the order's current assignee equals
        *expected_agent_id* (None means "currently unassigned") and the order
        is not in a terminal status. Sets assigned_at and moves PENDING to
        ASSIGNED. Returns False when the condition did not hold.
        """
        ...

    @abstractmethod
    async def count_assigned_for_agent(
        self, agent_id: str, excluded_statuses: frozenset[OrderStatus]
    ) -> int:
        ...

    @abstractmethod
    async def count_for_agent(
        self,
        agent_id: str,
        statuses: frozenset[OrderStatus],
        assigned_since: datetime | None = None,
    ) -> int:
        ...

    @abstractmethod
    async def count_unassigned(self) -> int:
        ...

    @abstractmethod
    async def count_assigned_since(self, since: datetime) -> int:
        ...
