"""Agent entity — a follow-up operator who owns orders."""

from dataclasses import dataclass

from dispatch_engine.domain.policies.permissions import Permission, has_permission
from dispatch_engine.domain.value_objects.enums import UserRole


@dataclass
class Agent:
    id: str
    name: str | None
    role: UserRole
    is_active: bool = True
    max_orders: int = 50
    agent_code: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.agent_code or "Unknown"

    def can_receive_orders(self) -> bool:
        """Active and holding a role allowed to own orders."""
        return self.is_active and has_permission(self.role, Permission.RECEIVE_ORDERS)
