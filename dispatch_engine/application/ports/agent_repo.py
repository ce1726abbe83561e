"""Port interface for the agent/user directory."""

from abc import ABC, abstractmethod

from dispatch_engine.domain.entities.agent import Agent
from dispatch_engine.domain.value_objects.enums import UserRole


class AgentDirectory(ABC):
    @abstractmethod
    async def get_by_id(self, agent_id: str) -> Agent | None:
        ...

    @abstractmethod
    async def list_eligible_agents(
        self, role: UserRole = UserRole.AGENT_SUIVI, active_only: bool = True
    ) -> list[Agent]:
        """Agents holding *role*, ordered by name."""
        ...
