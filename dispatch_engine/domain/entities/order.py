"""Order entity — a customer order that a follow-up agent handles."""

from dataclasses import dataclass, field
from datetime import datetime

from dispatch_engine.domain.value_objects.enums import OrderStatus


@dataclass(frozen=True)
class OrderItem:
    title: str | None
    sku: str | None = None
    quantity: int = 1


@dataclass
class Order:
    id: str
    reference: str
    status: OrderStatus
    created_at: datetime
    order_date: datetime | None = None
    assigned_agent_id: str | None = None
    assigned_at: datetime | None = None
    items: list[OrderItem] = field(default_factory=list)

    def is_assigned(self) -> bool:
        return self.assigned_agent_id is not None
