"""PresenceService — agent login/logout/heartbeat and the offline trigger."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from dispatch_engine.application.ports.agent_repo import AgentDirectory
from dispatch_engine.application.ports.event_sink import EventSink
from dispatch_engine.application.ports.presence_store import PresenceStore
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.application.use_cases.activity_logger import ActivityLogger
from dispatch_engine.application.use_cases.notifications import publish
from dispatch_engine.application.use_cases.redistribute import (
    RedistributeOrdersUseCase,
    RedistributionResult,
)
from dispatch_engine.domain.policies.presence import activity_for_presence, is_offline_edge
from dispatch_engine.domain.value_objects.enums import EventName, Presence

logger = logging.getLogger(__name__)


@dataclass
class PresenceChange:
    agent_id: str
    previous: Presence
    current: Presence
    redistribution: RedistributionResult | None = None
    redistribution_error: str | None = None

    @property
    def changed(self) -> bool:
        return self.previous != self.current


class PresenceService:
    """Owns every presence mutation so the online→offline edge is seen once.

    The store reports whether a set_offline call performed the transition;
    only that call runs the redistribution.
    """

    def __init__(
        self,
        presence_store: PresenceStore,
        agent_directory: AgentDirectory,
        redistribute: RedistributeOrdersUseCase,
        activity_logger: ActivityLogger,
        events: EventSink | None = None,
        call: BoundedCall | None = None,
    ):
        self._presence = presence_store
        self._agents = agent_directory
        self._redistribute = redistribute
        self._activity = activity_logger
        self._events = events
        self._call = call or BoundedCall()

    async def login(self, agent_id: str) -> PresenceChange | None:
        return await self.update_availability(agent_id, Presence.ONLINE)

    async def logout(self, agent_id: str) -> PresenceChange | None:
        return await self.update_availability(agent_id, Presence.OFFLINE)

    async def heartbeat(self, agent_id: str) -> bool:
        """Refresh the activity marker of a connected agent.

        Returns False for unknown or offline agents; they must log in again.
        """
        if await self._call(self._agents.get_by_id(agent_id), "get agent") is None:
            return False
        presence = await self._call(self._presence.get_presence(agent_id), "read presence")
        if presence == Presence.OFFLINE:
            return False
        await self._call(self._presence.touch_activity(agent_id), "touch activity")
        return True

    async def update_availability(self, agent_id: str, presence: Presence) -> PresenceChange | None:
        if await self._call(self._agents.get_by_id(agent_id), "get agent") is None:
            return None

        if presence == Presence.OFFLINE:
            return await self._go_offline(agent_id, reason="logout")

        previous = await self._call(self._presence.set_presence(agent_id, presence), "set presence")
        await self._call(self._presence.touch_activity(agent_id), "touch activity")
        change = PresenceChange(agent_id=agent_id, previous=previous, current=presence)
        await self._announce(change)
        return change

    async def sweep_expired(self) -> list[PresenceChange]:
        """Mark agents whose activity marker expired as offline.

        Safe to call from a polling loop: an agent already marked offline
        is not reported again.
        """
        expired = await self._call(self._presence.list_expired_ids(), "list expired presence")
        changes = []
        for agent_id in sorted(expired):
            change = await self._go_offline(agent_id, reason="inactivity")
            if change.changed:
                changes.append(change)
        if changes:
            logger.info("Presence sweep marked %d agents offline", len(changes))
        return changes

    async def _go_offline(self, agent_id: str, reason: str) -> PresenceChange:
        previous = await self._call(self._presence.get_presence(agent_id), "read presence")
        transitioned = await self._call(self._presence.set_offline(agent_id), "set offline")
        if not transitioned:
            return PresenceChange(agent_id=agent_id, previous=Presence.OFFLINE, current=Presence.OFFLINE)

        # The effective presence may already read OFFLINE when the marker expired.
        if not is_offline_edge(previous, Presence.OFFLINE):
            previous = Presence.ONLINE
        change = PresenceChange(agent_id=agent_id, previous=previous, current=Presence.OFFLINE)
        logger.info("Agent %s went offline (%s)", agent_id, reason)

        try:
            change.redistribution = await self._redistribute.execute(agent_id)
        except Exception as e:
            logger.exception("Redistribution after agent %s went offline failed", agent_id)
            change.redistribution_error = str(e) or "Redistribution failed"

        await self._announce(change)
        return change

    async def _announce(self, change: PresenceChange) -> None:
        await self._activity.record(
            change.agent_id,
            activity_for_presence(change.current),
            f"Agent availability changed to {change.current.value}",
        )
        await publish(
            self._events,
            EventName.AGENT_AVAILABILITY_CHANGED,
            {
                "agentId": change.agent_id,
                "availability": change.current.value,
                "previous": change.previous.value,
            },
        )
