"""In-memory adapters for every store port.

Single-process only. Compare-and-set writes run under an asyncio.Lock so
concurrent tasks see the same conditional semantics as the SQL adapters.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta

from dispatch_engine.application.clock import Clock, utc_now
from dispatch_engine.application.ports.activity_log import ActivityLogRepository
from dispatch_engine.application.ports.agent_repo import AgentDirectory
from dispatch_engine.application.ports.order_repo import AssignedOrderQuery, OrderRepository
from dispatch_engine.application.ports.presence_store import PresenceStore
from dispatch_engine.application.ports.product_assignment_repo import ProductAssignmentRepository
from dispatch_engine.domain.entities.activity import ActivityRecord
from dispatch_engine.domain.entities.agent import Agent
from dispatch_engine.domain.entities.order import Order
from dispatch_engine.domain.policies.workload_rule import (
    TERMINAL_STATUSES,
    status_after_assignment,
)
from dispatch_engine.domain.value_objects.enums import ActivityType, OrderStatus, Presence, UserRole


class InMemoryOrderRepository(OrderRepository):
    def __init__(self, orders: list[Order] | None = None, clock: Clock = utc_now):
        self.orders: dict[str, Order] = {o.id: o for o in orders or []}
        self._clock = clock
        self._lock = asyncio.Lock()

    def add(self, order: Order) -> Order:
        self.orders[order.id] = order
        return order

    async def get_by_id(self, order_id):
        order = self.orders.get(order_id)
        return replace(order) if order else None

    async def find_unassigned(self, limit):
        candidates = [
            o for o in self.orders.values()
            if o.assigned_agent_id is None and o.status not in TERMINAL_STATUSES
        ]
        candidates.sort(key=lambda o: (o.created_at, o.id))
        return [replace(o) for o in candidates[:limit]]

    async def find_assigned(self, query: AssignedOrderQuery):
        candidates = [
            o for o in self.orders.values()
            if o.assigned_agent_id is not None
            and (query.agent_ids is None or o.assigned_agent_id in query.agent_ids)
            and query.product_filter.accepts(o)
        ]
        candidates.sort(key=lambda o: (o.order_date or o.created_at, o.id), reverse=True)
        if query.limit is not None:
            candidates = candidates[: query.limit]
        return [replace(o) for o in candidates]

    async def find_for_agent(self, agent_id, statuses=None, assigned_since=None):
        return [
            replace(o) for o in sorted(self.orders.values(), key=lambda o: (o.created_at, o.id))
            if self._matches_agent(o, agent_id, statuses, assigned_since)
        ]

    async def conditional_assign(self, order_id, agent_id, expected_agent_id=None):
        async with self._lock:
            order = self.orders.get(order_id)
            if order is None or order.status in TERMINAL_STATUSES:
                return False
            if order.assigned_agent_id != expected_agent_id:
                return False
            order.assigned_agent_id = agent_id
            order.assigned_at = self._clock()
            order.status = status_after_assignment(order.status)
            return True

    async def count_assigned_for_agent(self, agent_id, excluded_statuses):
        return sum(
            1 for o in self.orders.values()
            if o.assigned_agent_id == agent_id and o.status not in excluded_statuses
        )

    async def count_for_agent(self, agent_id, statuses, assigned_since=None):
        return sum(
            1 for o in self.orders.values()
            if self._matches_agent(o, agent_id, statuses, assigned_since)
        )

    async def count_unassigned(self):
        return sum(
            1 for o in self.orders.values()
            if o.assigned_agent_id is None and o.status not in TERMINAL_STATUSES
        )

    async def count_assigned_since(self, since):
        return sum(
            1 for o in self.orders.values()
            if o.assigned_agent_id is not None and o.assigned_at is not None and o.assigned_at >= since
        )

    @staticmethod
    def _matches_agent(
        order: Order,
        agent_id: str,
        statuses: frozenset[OrderStatus] | None,
        assigned_since: datetime | None,
    ) -> bool:
        if order.assigned_agent_id != agent_id:
            return False
        if statuses is not None and order.status not in statuses:
            return False
        if assigned_since is not None and (order.assigned_at is None or order.assigned_at < assigned_since):
            return False
        return True


class InMemoryAgentDirectory(AgentDirectory):
    def __init__(self, agents: list[Agent] | None = None):
        self.agents: dict[str, Agent] = {a.id: a for a in agents or []}

    async def get_by_id(self, agent_id):
        return self.agents.get(agent_id)

    async def list_eligible_agents(self, role=UserRole.AGENT_SUIVI, active_only=True):
        agents = [
            a for a in self.agents.values()
            if a.role == role and (a.is_active or not active_only)
        ]
        return sorted(agents, key=lambda a: (a.name or "", a.id))


class InMemoryPresenceStore(PresenceStore):
    def __init__(self, activity_timeout: timedelta = timedelta(minutes=15), clock: Clock = utc_now):
        self._presence: dict[str, Presence] = {}
        self._last_activity: dict[str, datetime] = {}
        self._timeout = activity_timeout
        self._clock = clock
        self._lock = asyncio.Lock()

    async def set_online(self, agent_id):
        previous = await self.set_presence(agent_id, Presence.ONLINE)
        await self.touch_activity(agent_id)
        return previous != Presence.ONLINE

    async def set_offline(self, agent_id):
        async with self._lock:
            previous = self._presence.get(agent_id, Presence.OFFLINE)
            self._presence[agent_id] = Presence.OFFLINE
            self._last_activity.pop(agent_id, None)
            return previous != Presence.OFFLINE

    async def set_presence(self, agent_id, presence):
        async with self._lock:
            previous = self._presence.get(agent_id, Presence.OFFLINE)
            self._presence[agent_id] = presence
            return previous

    async def get_presence(self, agent_id):
        presence = self._presence.get(agent_id, Presence.OFFLINE)
        if presence != Presence.OFFLINE and self._expired(agent_id):
            return Presence.OFFLINE
        return presence

    async def is_online(self, agent_id):
        return await self.get_presence(agent_id) == Presence.ONLINE

    async def touch_activity(self, agent_id):
        self._last_activity[agent_id] = self._clock()

    async def list_online_ids(self):
        return {agent_id for agent_id in self._presence if await self.is_online(agent_id)}

    async def list_expired_ids(self):
        return {
            agent_id for agent_id, presence in self._presence.items()
            if presence != Presence.OFFLINE and self._expired(agent_id)
        }

    def _expired(self, agent_id: str) -> bool:
        last = self._last_activity.get(agent_id)
        return last is None or self._clock() - last > self._timeout


class InMemoryActivityLog(ActivityLogRepository):
    def __init__(self):
        self.records: list[ActivityRecord] = []

    async def append(self, record):
        stored = replace(record, id=len(self.records) + 1)
        self.records.append(stored)
        return stored

    async def list_recent(self, agent_id=None, activity_types=None, since=None, limit=50):
        matching = [
            r for r in reversed(self.records)
            if (agent_id is None or r.agent_id == agent_id)
            and (activity_types is None or r.activity_type in activity_types)
            and (since is None or r.created_at >= since)
        ]
        return matching[:limit]

    def of_type(self, activity_type: ActivityType) -> list[ActivityRecord]:
        return [r for r in self.records if r.activity_type == activity_type]


class InMemoryProductAssignments(ProductAssignmentRepository):
    def __init__(self, agent_directory: InMemoryAgentDirectory | None = None):
        self.products: dict[str, set[str]] = {}
        self._agents = agent_directory

    async def agents_for_products(self, product_names):
        wanted = set(product_names)
        return {
            agent_id for agent_id, names in self.products.items()
            if names & wanted and self._is_active(agent_id)
        }

    async def products_for_agent(self, agent_id):
        return sorted(self.products.get(agent_id, set()))

    async def replace_products_for_agent(self, agent_id, product_names):
        self.products[agent_id] = set(product_names)
        return sorted(product_names)

    def _is_active(self, agent_id: str) -> bool:
        if self._agents is None:
            return True
        agent = self._agents.agents.get(agent_id)
        return agent is not None and agent.is_active
