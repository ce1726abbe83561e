"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_engine.adapters.events.sinks import HttpEventSink, LoggingEventSink
from dispatch_engine.adapters.persistence.database import get_session
from dispatch_engine.adapters.persistence.repositories import (
    SqlActivityLogRepository,
    SqlAgentDirectory,
    SqlOrderRepository,
    SqlPresenceStore,
    SqlProductAssignmentRepository,
)
from dispatch_engine.application.errors import (
    AssignmentError,
    InfrastructureError,
    ValidationError,
)
from dispatch_engine.application.ports.activity_log import ActivityLogRepository
from dispatch_engine.application.ports.agent_repo import AgentDirectory
from dispatch_engine.application.ports.event_sink import EventSink
from dispatch_engine.application.ports.order_repo import OrderRepository
from dispatch_engine.application.ports.presence_store import PresenceStore
from dispatch_engine.application.ports.product_assignment_repo import ProductAssignmentRepository
from dispatch_engine.application.timeouts import BoundedCall
from dispatch_engine.application.use_cases.activity_logger import ActivityLogger
from dispatch_engine.application.use_cases.analytics import AssignmentAnalyticsUseCase
from dispatch_engine.application.use_cases.auto_assign import AutoAssignUseCase
from dispatch_engine.application.use_cases.bulk_reassign import BulkReassignUseCase
from dispatch_engine.application.use_cases.placement import OrderPlacer
from dispatch_engine.application.use_cases.presence import PresenceService
from dispatch_engine.application.use_cases.product_assignments import ProductAssignmentService
from dispatch_engine.application.use_cases.reassign_order import ReassignOrderUseCase
from dispatch_engine.application.use_cases.redistribute import RedistributeOrdersUseCase
from dispatch_engine.application.use_cases.workload import WorkloadReader
from dispatch_engine.config import settings
from dispatch_engine.domain.policies.permissions import Permission, has_permission
from dispatch_engine.domain.value_objects.enums import UserRole

logger = logging.getLogger(__name__)

# Re-export session dependency
get_db_session = get_session

# Singleton adapters (stateless)
if settings.event_webhook_url:
    _event_sink: EventSink = HttpEventSink(
        settings.event_webhook_url, timeout=settings.event_webhook_timeout_seconds
    )
    logger.info("Publishing assignment events to %s", settings.event_webhook_url)
else:
    _event_sink = LoggingEventSink()


# ─── Acting user ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class ActingUser:
    user_id: str
    role: UserRole


async def get_acting_user(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> ActingUser:
    """Identity forwarded by the auth gateway."""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        role = UserRole(x_user_role)
    except ValueError:
        raise HTTPException(status_code=403, detail=f"Unknown role: {x_user_role}") from None
    return ActingUser(user_id=x_user_id, role=role)


def require_permission(permission: Permission):
    async def _check(user: ActingUser = Depends(get_acting_user)) -> ActingUser:
        if not has_permission(user.role, permission):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return _check


def http_error(e: AssignmentError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, InfrastructureError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ─── Ports ───────────────────────────────────────────────────────────


def get_bounded_call() -> BoundedCall:
    return BoundedCall(settings.store_timeout_seconds)


def get_event_sink() -> EventSink:
    return _event_sink


def get_order_repo(session: AsyncSession = Depends(get_session)) -> OrderRepository:
    return SqlOrderRepository(session)


def get_agent_directory(session: AsyncSession = Depends(get_session)) -> AgentDirectory:
    return SqlAgentDirectory(session)


def get_activity_repo(session: AsyncSession = Depends(get_session)) -> ActivityLogRepository:
    return SqlActivityLogRepository(session)


def get_presence_store(session: AsyncSession = Depends(get_session)) -> PresenceStore:
    return SqlPresenceStore(
        session,
        activity_timeout=timedelta(seconds=settings.presence_activity_timeout_seconds),
    )


def get_product_assignment_repo(
    session: AsyncSession = Depends(get_session),
) -> ProductAssignmentRepository:
    return SqlProductAssignmentRepository(session)


# ─── Use cases ───────────────────────────────────────────────────────


def get_activity_logger(
    activity_repo: ActivityLogRepository = Depends(get_activity_repo),
    call: BoundedCall = Depends(get_bounded_call),
) -> ActivityLogger:
    return ActivityLogger(activity_repo, call=call)


def get_workload_reader(
    agent_directory: AgentDirectory = Depends(get_agent_directory),
    order_repo: OrderRepository = Depends(get_order_repo),
    presence_store: PresenceStore = Depends(get_presence_store),
    call: BoundedCall = Depends(get_bounded_call),
) -> WorkloadReader:
    return WorkloadReader(agent_directory, order_repo, presence_store, call=call)


def get_product_assignment_service(
    assignments: ProductAssignmentRepository = Depends(get_product_assignment_repo),
    agent_directory: AgentDirectory = Depends(get_agent_directory),
    call: BoundedCall = Depends(get_bounded_call),
) -> ProductAssignmentService:
    return ProductAssignmentService(assignments, agent_directory, call=call)


def get_order_placer(
    order_repo: OrderRepository = Depends(get_order_repo),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
    call: BoundedCall = Depends(get_bounded_call),
) -> OrderPlacer:
    return OrderPlacer(order_repo, activity_logger, call=call)


def get_auto_assign_uc(
    order_repo: OrderRepository = Depends(get_order_repo),
    workload_reader: WorkloadReader = Depends(get_workload_reader),
    placer: OrderPlacer = Depends(get_order_placer),
    products: ProductAssignmentService = Depends(get_product_assignment_service),
    events: EventSink = Depends(get_event_sink),
    call: BoundedCall = Depends(get_bounded_call),
) -> AutoAssignUseCase:
    return AutoAssignUseCase(
        order_repo=order_repo,
        workload_reader=workload_reader,
        placer=placer,
        events=events,
        batch_limit=settings.auto_assign_batch_limit,
        call=call,
        product_assignments=products,
    )


def get_redistribute_uc(
    order_repo: OrderRepository = Depends(get_order_repo),
    workload_reader: WorkloadReader = Depends(get_workload_reader),
    placer: OrderPlacer = Depends(get_order_placer),
    events: EventSink = Depends(get_event_sink),
    call: BoundedCall = Depends(get_bounded_call),
) -> RedistributeOrdersUseCase:
    return RedistributeOrdersUseCase(order_repo, workload_reader, placer, events=events, call=call)


def get_reassign_uc(
    order_repo: OrderRepository = Depends(get_order_repo),
    agent_directory: AgentDirectory = Depends(get_agent_directory),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
    events: EventSink = Depends(get_event_sink),
    call: BoundedCall = Depends(get_bounded_call),
) -> ReassignOrderUseCase:
    return ReassignOrderUseCase(order_repo, agent_directory, activity_logger, events=events, call=call)


def get_bulk_reassign_uc(
    order_repo: OrderRepository = Depends(get_order_repo),
    reassign: ReassignOrderUseCase = Depends(get_reassign_uc),
    events: EventSink = Depends(get_event_sink),
    call: BoundedCall = Depends(get_bounded_call),
) -> BulkReassignUseCase:
    return BulkReassignUseCase(order_repo, reassign, events=events, call=call)


def get_presence_service(
    presence_store: PresenceStore = Depends(get_presence_store),
    agent_directory: AgentDirectory = Depends(get_agent_directory),
    redistribute: RedistributeOrdersUseCase = Depends(get_redistribute_uc),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
    events: EventSink = Depends(get_event_sink),
    call: BoundedCall = Depends(get_bounded_call),
) -> PresenceService:
    return PresenceService(
        presence_store,
        agent_directory,
        redistribute,
        activity_logger,
        events=events,
        call=call,
    )


def get_analytics_uc(
    order_repo: OrderRepository = Depends(get_order_repo),
    agent_directory: AgentDirectory = Depends(get_agent_directory),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
    call: BoundedCall = Depends(get_bounded_call),
) -> AssignmentAnalyticsUseCase:
    return AssignmentAnalyticsUseCase(order_repo, agent_directory, activity_logger, call=call)


def build_presence_service(session: AsyncSession) -> PresenceService:
    """Wire a PresenceService outside a request (background sweep)."""
    call = get_bounded_call()
    events = get_event_sink()
    order_repo = get_order_repo(session)
    agent_directory = get_agent_directory(session)
    presence_store = get_presence_store(session)
    activity_logger = get_activity_logger(get_activity_repo(session), call)
    reader = get_workload_reader(agent_directory, order_repo, presence_store, call)
    placer = get_order_placer(order_repo, activity_logger, call)
    redistribute = get_redistribute_uc(order_repo, reader, placer, events, call)
    return get_presence_service(
        presence_store, agent_directory, redistribute, activity_logger, events, call
    )
