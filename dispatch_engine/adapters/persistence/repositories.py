"""SQLAlchemy repository implementations."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import and_, case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from dispatch_engine.adapters.persistence.models import (
    AgentActivityModel,
    AgentModel,
    AgentPresenceModel,
    OrderItemModel,
    OrderModel,
    ProductAssignmentModel,
)
from dispatch_engine.application.clock import Clock, utc_now
from dispatch_engine.application.ports.activity_log import ActivityLogRepository
from dispatch_engine.application.ports.agent_repo import AgentDirectory
from dispatch_engine.application.ports.order_repo import AssignedOrderQuery, OrderRepository
from dispatch_engine.application.ports.presence_store import PresenceStore
from dispatch_engine.application.ports.product_assignment_repo import ProductAssignmentRepository
from dispatch_engine.domain.entities.activity import ActivityRecord
from dispatch_engine.domain.entities.agent import Agent
from dispatch_engine.domain.entities.order import Order, OrderItem
from dispatch_engine.domain.policies.product_filter import ProductFilter, ProductSpec
from dispatch_engine.domain.policies.workload_rule import TERMINAL_STATUSES
from dispatch_engine.domain.value_objects.enums import (
    ActivityType,
    FilterLogic,
    OrderStatus,
    Presence,
    UserRole,
)

_TERMINAL = [s.value for s in TERMINAL_STATUSES]

# ─── Mappers ─────────────────────────────────────────────────────────


def _agent_to_domain(m: AgentModel) -> Agent:
    return Agent(
        id=m.id,
        name=m.name,
        role=UserRole(m.role),
        is_active=m.is_active,
        max_orders=m.max_orders,
        agent_code=m.agent_code,
    )


def _order_to_domain(m: OrderModel) -> Order:
    return Order(
        id=m.id,
        reference=m.reference,
        status=OrderStatus(m.status),
        created_at=m.created_at,
        order_date=m.order_date,
        assigned_agent_id=m.assigned_agent_id,
        assigned_at=m.assigned_at,
        items=[OrderItem(title=i.title, sku=i.sku, quantity=i.quantity) for i in m.items],
    )


def _activity_to_domain(m: AgentActivityModel) -> ActivityRecord:
    return ActivityRecord(
        id=m.id,
        agent_id=m.agent_id,
        activity_type=ActivityType(m.activity_type),
        description=m.description,
        created_at=m.created_at,
        order_id=m.order_id,
    )


# ─── Product filter → SQL ────────────────────────────────────────────


def _norm(column):
    return func.lower(func.trim(column))


def _item_condition(spec: ProductSpec):
    """Same rule as ProductSpec.matches: SKU wins when both sides carry one."""
    has_sku = func.coalesce(OrderItemModel.sku, "") != ""
    conditions = []
    if spec.sku:
        conditions.append(and_(has_sku, _norm(OrderItemModel.sku) == spec.sku.strip().lower()))
    if spec.title:
        title_match = _norm(OrderItemModel.title) == spec.title.strip().lower()
        conditions.append(and_(~has_sku, title_match) if spec.sku else title_match)
    return or_(*conditions)


def _product_filter_clause(product_filter: ProductFilter):
    if not product_filter.is_active():
        return None
    exists_clauses = [
        select(OrderItemModel.id)
        .where(OrderItemModel.order_id == OrderModel.id, _item_condition(spec))
        .exists()
        for spec in product_filter.products
        if not spec.is_empty()
    ]
    if product_filter.logic == FilterLogic.ALL:
        return and_(*exists_clauses)
    return or_(*exists_clauses)


# ─── Repositories ────────────────────────────────────────────────────


class SqlOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession, clock: Clock = utc_now):
        self._s = session
        self._clock = clock

    def _select(self):
        return (
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .execution_options(populate_existing=True)
        )

    async def get_by_id(self, order_id):
        result = await self._s.execute(self._select().where(OrderModel.id == order_id))
        m = result.scalar_one_or_none()
        return _order_to_domain(m) if m else None

    async def find_unassigned(self, limit):
        result = await self._s.execute(
            self._select()
            .where(OrderModel.assigned_agent_id.is_(None), OrderModel.status.not_in(_TERMINAL))
            .order_by(OrderModel.created_at, OrderModel.id)
            .limit(limit)
        )
        return [_order_to_domain(m) for m in result.scalars()]

    async def find_assigned(self, query: AssignedOrderQuery):
        stmt = self._select().where(OrderModel.assigned_agent_id.is_not(None))
        if query.agent_ids is not None:
            stmt = stmt.where(OrderModel.assigned_agent_id.in_(query.agent_ids))
        product_clause = _product_filter_clause(query.product_filter)
        if product_clause is not None:
            stmt = stmt.where(product_clause)
        stmt = stmt.order_by(
            func.coalesce(OrderModel.order_date, OrderModel.created_at).desc(),
            OrderModel.id.desc(),
        )
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        result = await self._s.execute(stmt)
        return [_order_to_domain(m) for m in result.scalars()]

    async def find_for_agent(self, agent_id, statuses=None, assigned_since=None):
        stmt = self._select().where(*self._agent_filter(agent_id, statuses, assigned_since))
        result = await self._s.execute(stmt.order_by(OrderModel.created_at, OrderModel.id))
        return [_order_to_domain(m) for m in result.scalars()]

    async def conditional_assign(self, order_id, agent_id, expected_agent_id=None):
        if expected_agent_id is None:
            owner_matches = OrderModel.assigned_agent_id.is_(None)
        else:
            owner_matches = OrderModel.assigned_agent_id == expected_agent_id

        result = await self._s.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, owner_matches, OrderModel.status.not_in(_TERMINAL))
            .values(
                assigned_agent_id=agent_id,
                assigned_at=self._clock(),
                status=case(
                    (OrderModel.status == OrderStatus.PENDING.value, OrderStatus.ASSIGNED.value),
                    else_=OrderModel.status,
                ),
            )
            .returning(OrderModel.id)
            .execution_options(synchronize_session=False)
        )
        won = result.scalar_one_or_none() is not None
        # Each placement is its own unit of work: a batch interrupted midway
        # keeps what it already committed.
        await self._s.commit()
        return won

    async def count_assigned_for_agent(self, agent_id, excluded_statuses):
        return await self._count(
            OrderModel.assigned_agent_id == agent_id,
            OrderModel.status.not_in([s.value for s in excluded_statuses]),
        )

    async def count_for_agent(self, agent_id, statuses, assigned_since=None):
        return await self._count(*self._agent_filter(agent_id, statuses, assigned_since))

    async def count_unassigned(self):
        return await self._count(
            OrderModel.assigned_agent_id.is_(None), OrderModel.status.not_in(_TERMINAL)
        )

    async def count_assigned_since(self, since):
        return await self._count(
            OrderModel.assigned_agent_id.is_not(None), OrderModel.assigned_at >= since
        )

    async def _count(self, *conditions) -> int:
        result = await self._s.execute(select(func.count(OrderModel.id)).where(*conditions))
        return result.scalar() or 0

    @staticmethod
    def _agent_filter(agent_id, statuses, assigned_since) -> list:
        conditions = [OrderModel.assigned_agent_id == agent_id]
        if statuses is not None:
            conditions.append(OrderModel.status.in_([s.value for s in statuses]))
        if assigned_since is not None:
            conditions.append(OrderModel.assigned_at >= assigned_since)
        return conditions


class SqlAgentDirectory(AgentDirectory):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def get_by_id(self, agent_id):
        m = await self._s.get(AgentModel, agent_id)
        return _agent_to_domain(m) if m else None

    async def list_eligible_agents(self, role=UserRole.AGENT_SUIVI, active_only=True):
        stmt = select(AgentModel).where(AgentModel.role == role.value)
        if active_only:
            stmt = stmt.where(AgentModel.is_active.is_(True))
        result = await self._s.execute(stmt.order_by(AgentModel.name, AgentModel.id))
        return [_agent_to_domain(m) for m in result.scalars()]


class SqlActivityLogRepository(ActivityLogRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def append(self, record):
        m = AgentActivityModel(
            agent_id=record.agent_id,
            order_id=record.order_id,
            activity_type=record.activity_type.value,
            description=record.description,
            created_at=record.created_at,
        )
        # A rejected audit row rolls back to this savepoint only.
        async with self._s.begin_nested():
            self._s.add(m)
        return _activity_to_domain(m)

    async def list_recent(self, agent_id=None, activity_types=None, since=None, limit=50):
        stmt = select(AgentActivityModel)
        if agent_id is not None:
            stmt = stmt.where(AgentActivityModel.agent_id == agent_id)
        if activity_types is not None:
            stmt = stmt.where(AgentActivityModel.activity_type.in_([t.value for t in activity_types]))
        if since is not None:
            stmt = stmt.where(AgentActivityModel.created_at >= since)
        result = await self._s.execute(
            stmt.order_by(AgentActivityModel.created_at.desc(), AgentActivityModel.id.desc()).limit(limit)
        )
        return [_activity_to_domain(m) for m in result.scalars()]


class SqlPresenceStore(PresenceStore):
    """Presence kept in the agent_presence table.

    The online→offline edge is a single conditional UPDATE, so of several
    concurrent set_offline calls exactly one sees the transition.
    """

    def __init__(
        self,
        session: AsyncSession,
        activity_timeout: timedelta = timedelta(minutes=15),
        clock: Clock = utc_now,
    ):
        self._s = session
        self._timeout = activity_timeout
        self._clock = clock

    def _cutoff(self) -> datetime:
        return self._clock() - self._timeout

    async def set_online(self, agent_id):
        previous = await self.set_presence(agent_id, Presence.ONLINE)
        await self.touch_activity(agent_id)
        return previous != Presence.ONLINE

    async def set_offline(self, agent_id):
        result = await self._s.execute(
            update(AgentPresenceModel)
            .where(
                AgentPresenceModel.agent_id == agent_id,
                AgentPresenceModel.presence != Presence.OFFLINE.value,
            )
            .values(presence=Presence.OFFLINE.value, last_activity_at=None)
            .returning(AgentPresenceModel.agent_id)
            .execution_options(synchronize_session=False)
        )
        transitioned = result.scalar_one_or_none() is not None
        await self._s.commit()
        return transitioned

    async def set_presence(self, agent_id, presence):
        result = await self._s.execute(
            select(AgentPresenceModel)
            .where(AgentPresenceModel.agent_id == agent_id)
            .with_for_update()
        )
        m = result.scalar_one_or_none()
        if m is None:
            self._s.add(AgentPresenceModel(agent_id=agent_id, presence=presence.value))
            await self._s.flush()
            await self._s.commit()
            return Presence.OFFLINE
        previous = Presence(m.presence)
        m.presence = presence.value
        await self._s.flush()
        await self._s.commit()
        return previous

    async def get_presence(self, agent_id):
        m = await self._s.get(AgentPresenceModel, agent_id, populate_existing=True)
        if m is None:
            return Presence.OFFLINE
        presence = Presence(m.presence)
        if presence != Presence.OFFLINE and (
            m.last_activity_at is None or m.last_activity_at < self._cutoff()
        ):
            return Presence.OFFLINE
        return presence

    async def is_online(self, agent_id):
        return await self.get_presence(agent_id) == Presence.ONLINE

    async def touch_activity(self, agent_id):
        await self._s.execute(
            update(AgentPresenceModel)
            .where(AgentPresenceModel.agent_id == agent_id)
            .values(last_activity_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        await self._s.commit()

    async def list_online_ids(self):
        result = await self._s.execute(
            select(AgentPresenceModel.agent_id).where(
                AgentPresenceModel.presence == Presence.ONLINE.value,
                AgentPresenceModel.last_activity_at >= self._cutoff(),
            )
        )
        return set(result.scalars())

    async def list_expired_ids(self):
        result = await self._s.execute(
            select(AgentPresenceModel.agent_id).where(
                AgentPresenceModel.presence != Presence.OFFLINE.value,
                or_(
                    AgentPresenceModel.last_activity_at.is_(None),
                    AgentPresenceModel.last_activity_at < self._cutoff(),
                ),
            )
        )
        return set(result.scalars())


class SqlProductAssignmentRepository(ProductAssignmentRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def agents_for_products(self, product_names):
        if not product_names:
            return set()
        result = await self._s.execute(
            select(ProductAssignmentModel.user_id)
            .join(AgentModel, AgentModel.id == ProductAssignmentModel.user_id)
            .where(
                ProductAssignmentModel.product_name.in_(product_names),
                ProductAssignmentModel.is_active.is_(True),
                AgentModel.is_active.is_(True),
            )
            .distinct()
        )
        return set(result.scalars())

    async def products_for_agent(self, agent_id):
        result = await self._s.execute(
            select(ProductAssignmentModel.product_name)
            .where(
                ProductAssignmentModel.user_id == agent_id,
                ProductAssignmentModel.is_active.is_(True),
            )
            .order_by(ProductAssignmentModel.product_name)
        )
        return list(result.scalars())

    async def replace_products_for_agent(self, agent_id, product_names):
        await self._s.execute(
            delete(ProductAssignmentModel).where(ProductAssignmentModel.user_id == agent_id)
        )
        self._s.add_all(
            ProductAssignmentModel(user_id=agent_id, product_name=name) for name in product_names
        )
        await self._s.flush()
        return sorted(product_names)
