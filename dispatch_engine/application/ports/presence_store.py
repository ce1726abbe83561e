"""Port interface for the presence store (connectivity + activity markers).

Best effort: reads may be stale by one heartbeat interval.
"""

from abc import ABC, abstractmethod

from dispatch_engine.domain.value_objects.enums import Presence


class PresenceStore(ABC):
    @abstractmethod
    async def set_online(self, agent_id: str) -> bool:
        """Mark ONLINE and refresh the activity marker. True if presence changed."""
        ...

    @abstractmethod
    async def set_offline(self, agent_id: str) -> bool:
        """Mark OFFLINE. True only for the call that performed the transition."""
        ...

    @abstractmethod
    async def set_presence(self, agent_id: str, presence: Presence) -> Presence:
        """Store *presence* and return the previous stored value."""
        ...

    @abstractmethod
    async def get_presence(self, agent_id: str) -> Presence:
        """Effective presence: an expired activity marker reads as OFFLINE."""
        ...

    @abstractmethod
    async def is_online(self, agent_id: str) -> bool:
        ...

    @abstractmethod
    async def touch_activity(self, agent_id: str) -> None:
        ...

    @abstractmethod
    async def list_online_ids(self) -> set[str]:
        ...

    @abstractmethod
    async def list_expired_ids(self) -> set[str]:
        """Agents not stored as OFFLINE whose activity marker has expired."""
        ...
