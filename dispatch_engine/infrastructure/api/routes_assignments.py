"""Assignment endpoints — trigger, workloads, stats, manual and bulk reassignment."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_engine.application.errors import AssignmentError
from dispatch_engine.application.use_cases.analytics import AssignmentAnalyticsUseCase
from dispatch_engine.application.use_cases.auto_assign import AutoAssignUseCase
from dispatch_engine.application.use_cases.bulk_reassign import (
    BulkReassignCommand,
    BulkReassignUseCase,
)
from dispatch_engine.application.use_cases.product_assignments import ProductAssignmentService
from dispatch_engine.application.use_cases.reassign_order import ReassignOrderUseCase
from dispatch_engine.application.use_cases.redistribute import RedistributeOrdersUseCase
from dispatch_engine.application.use_cases.results import AssignmentResult
from dispatch_engine.application.use_cases.workload import WorkloadReader
from dispatch_engine.domain.entities.workload import AgentWorkload
from dispatch_engine.domain.policies.permissions import Permission, can_act_on_agent
from dispatch_engine.domain.policies.product_filter import ProductFilter, ProductSpec
from dispatch_engine.domain.policies.ratio_distribution import TargetAgentSpec
from dispatch_engine.domain.value_objects.enums import AnalyticsPeriod, FilterLogic
from dispatch_engine.infrastructure.api.dependencies import (
    ActingUser,
    get_acting_user,
    get_analytics_uc,
    get_auto_assign_uc,
    get_bulk_reassign_uc,
    get_db_session,
    get_product_assignment_service,
    get_reassign_uc,
    get_redistribute_uc,
    get_workload_reader,
    http_error,
    require_permission,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assignments", tags=["assignments"])


# ─── Request bodies ──────────────────────────────────────────────────


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ReassignRequest(_CamelModel):
    agent_id: str = Field(alias="agentId")


class ProductAssignmentRequest(_CamelModel):
    product_names: list[str] = Field(default_factory=list, alias="productNames")


class TargetAgentIn(_CamelModel):
    agent_id: str = Field(default="", alias="agentId")
    percentage: float
    agent_name: str | None = Field(default=None, alias="agentName")


class ProductIn(_CamelModel):
    title: str | None = None
    sku: str | None = None


class ProductFilterIn(_CamelModel):
    enabled: bool = False
    products: list[ProductIn] = Field(default_factory=list)
    logic: FilterLogic = FilterLogic.ANY


class BulkReassignRequest(_CamelModel):
    selection_type: str = Field(alias="selectionType")
    order_count: int = Field(alias="orderCount")
    target_agents: list[TargetAgentIn] = Field(default_factory=list, alias="targetAgents")
    source_agent_ids: list[str] | None = Field(default=None, alias="sourceAgentIds")
    product_filter: ProductFilterIn | None = Field(default=None, alias="productFilter")

    def to_command(self) -> BulkReassignCommand:
        product_filter = ProductFilter()
        if self.product_filter is not None:
            product_filter = ProductFilter(
                enabled=self.product_filter.enabled,
                products=tuple(ProductSpec(title=p.title, sku=p.sku) for p in self.product_filter.products),
                logic=self.product_filter.logic,
            )
        return BulkReassignCommand(
            selection_type=self.selection_type,
            order_count=self.order_count,
            target_agents=[
                TargetAgentSpec(agent_id=t.agent_id, percentage=t.percentage, agent_name=t.agent_name)
                for t in self.target_agents
            ],
            source_agent_ids=self.source_agent_ids,
            product_filter=product_filter,
        )


# ─── Routes ──────────────────────────────────────────────────────────


@router.post("/trigger")
async def trigger_assignment(
    user: ActingUser = Depends(require_permission(Permission.TRIGGER_ASSIGNMENT)),
    auto_assign: AutoAssignUseCase = Depends(get_auto_assign_uc),
    session: AsyncSession = Depends(get_db_session),
):
    """Assign every unassigned order to online agents, least loaded first."""
    try:
        batch = await auto_assign.execute(triggered_by=user.user_id)
    except AssignmentError as e:
        raise http_error(e) from e
    await session.commit()

    return {
        "message": "Assignment process completed",
        "totalProcessed": batch.total_processed,
        "successfulAssignments": batch.successful_assignments,
        "failedAssignments": batch.failed_assignments,
        "results": [_assignment_to_dict(r) for r in batch.results],
    }


@router.get("/stats")
async def assignment_stats(
    user: ActingUser = Depends(require_permission(Permission.VIEW_ASSIGNMENT_STATS)),
    reader: WorkloadReader = Depends(get_workload_reader),
):
    """Global workload summary."""
    try:
        summary = await reader.get_summary()
    except AssignmentError as e:
        raise http_error(e) from e

    return {
        "totalAgents": summary.total_agents,
        "onlineAgents": summary.online_agents,
        "offlineAgents": summary.offline_agents,
        "unassignedOrders": summary.unassigned_orders,
        "totalAssignedOrders": summary.total_assigned_orders,
        "agentWorkloads": [_workload_to_dict(w) for w in summary.agent_workloads],
    }


@router.get("/workloads")
async def list_workloads(
    user: ActingUser = Depends(require_permission(Permission.VIEW_ASSIGNMENT_STATS)),
    reader: WorkloadReader = Depends(get_workload_reader),
):
    try:
        workloads = await reader.list_workloads()
    except AssignmentError as e:
        raise http_error(e) from e
    return {"total": len(workloads), "workloads": [_workload_to_dict(w) for w in workloads]}


@router.get("/agents")
async def agents_for_manual_assignment(
    user: ActingUser = Depends(require_permission(Permission.REASSIGN_ORDERS)),
    reader: WorkloadReader = Depends(get_workload_reader),
):
    """Active follow-up agents, least utilized first."""
    try:
        workloads = await reader.agents_for_manual_assignment()
    except AssignmentError as e:
        raise http_error(e) from e
    return {"agents": [_workload_to_dict(w) for w in workloads]}


@router.get("/agent/{agent_id}/stats")
async def agent_stats(
    agent_id: str,
    user: ActingUser = Depends(get_acting_user),
    reader: WorkloadReader = Depends(get_workload_reader),
):
    if not can_act_on_agent(user.user_id, user.role, agent_id, Permission.VIEW_ANY_AGENT_STATS):
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    try:
        stats = await reader.get_agent_stats(agent_id)
    except AssignmentError as e:
        raise http_error(e) from e
    if stats is None:
        raise HTTPException(status_code=404, detail="Agent not found")

    return {
        "agentId": stats.agent_id,
        "assignedOrders": stats.assigned_orders,
        "pendingOrders": stats.pending_orders,
        "completedToday": stats.completed_today,
        "maxOrders": stats.max_orders,
        "utilizationRate": stats.utilization_rate,
    }


@router.get("/agent/{agent_id}/products")
async def agent_products(
    agent_id: str,
    user: ActingUser = Depends(get_acting_user),
    products: ProductAssignmentService = Depends(get_product_assignment_service),
):
    """Products routed to this agent by auto-assignment."""
    if not can_act_on_agent(user.user_id, user.role, agent_id, Permission.VIEW_ANY_AGENT_STATS):
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    try:
        names = await products.products_for(agent_id)
    except AssignmentError as e:
        raise http_error(e) from e
    if names is None:
        raise HTTPException(status_code=404, detail="Agent not found")
    return {"agentId": agent_id, "productNames": names}


@router.put("/agent/{agent_id}/products")
async def assign_agent_products(
    agent_id: str,
    body: ProductAssignmentRequest,
    user: ActingUser = Depends(require_permission(Permission.MANAGE_PRODUCT_ASSIGNMENTS)),
    products: ProductAssignmentService = Depends(get_product_assignment_service),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        names = await products.assign_products(agent_id, body.product_names)
    except AssignmentError as e:
        raise http_error(e) from e
    if names is None:
        raise HTTPException(status_code=404, detail="Agent not found")
    await session.commit()
    return {"agentId": agent_id, "productNames": names}


@router.post("/reassign/{order_id}")
async def reassign_order(
    order_id: str,
    body: ReassignRequest,
    user: ActingUser = Depends(require_permission(Permission.REASSIGN_ORDERS)),
    reassign: ReassignOrderUseCase = Depends(get_reassign_uc),
    session: AsyncSession = Depends(get_db_session),
):
    result = await reassign.execute(order_id, body.agent_id, user.user_id)
    await session.commit()

    if not result.success:
        raise HTTPException(status_code=400, detail=result.message)
    return {"message": result.message, "result": _assignment_to_dict(result)}


@router.post("/bulk-reassign")
async def bulk_reassign(
    body: BulkReassignRequest,
    user: ActingUser = Depends(require_permission(Permission.BULK_REASSIGN)),
    bulk_uc: BulkReassignUseCase = Depends(get_bulk_reassign_uc),
    session: AsyncSession = Depends(get_db_session),
):
    """Deal the newest assigned orders out to agents by exact percentages."""
    try:
        result = await bulk_uc.execute(body.to_command(), acting_user_id=user.user_id)
    except AssignmentError as e:
        raise http_error(e) from e
    await session.commit()

    if not result.found:
        raise HTTPException(status_code=404, detail="No orders found to reassign")

    return {
        "message": f"Bulk reassignment completed: {result.successful} successful, {result.failed} failed",
        "totalOrders": result.total_orders,
        "successful": result.successful,
        "failed": result.failed,
        "results": [
            {
                "orderId": r.order_id,
                "orderReference": r.order_reference,
                "fromAgentId": r.from_agent_id,
                "toAgentId": r.to_agent_id,
                "toAgentName": r.to_agent_name,
                "success": r.success,
                "message": r.message,
            }
            for r in result.results
        ],
    }


@router.post("/redistribute/{agent_id}")
async def redistribute_orders(
    agent_id: str,
    user: ActingUser = Depends(require_permission(Permission.REDISTRIBUTE_ORDERS)),
    redistribute: RedistributeOrdersUseCase = Depends(get_redistribute_uc),
    session: AsyncSession = Depends(get_db_session),
):
    """Move an agent's untouched orders to other online agents."""
    try:
        result = await redistribute.execute(agent_id)
    except AssignmentError as e:
        raise http_error(e) from e
    await session.commit()

    return {
        "message": "Orders redistributed",
        "agentId": result.agent_id,
        "redistributed": result.redistributed,
        "failed": result.failed,
        "results": [_assignment_to_dict(r) for r in result.results],
    }


@router.get("/analytics")
async def assignment_analytics(
    period: AnalyticsPeriod = AnalyticsPeriod.LAST_7D,
    user: ActingUser = Depends(require_permission(Permission.VIEW_ASSIGNMENT_STATS)),
    analytics_uc: AssignmentAnalyticsUseCase = Depends(get_analytics_uc),
):
    try:
        analytics = await analytics_uc.execute(period)
    except AssignmentError as e:
        raise http_error(e) from e

    return {
        "period": analytics.period.value,
        "totalAssignments": analytics.total_assignments,
        "recentActivities": [
            {
                "id": a.id,
                "agentId": a.agent_id,
                "orderId": a.order_id,
                "activityType": a.activity_type.value,
                "description": a.description,
                "createdAt": a.created_at.isoformat(),
            }
            for a in analytics.recent_activities
        ],
        "agentPerformance": [
            {
                "agentId": p.agent_id,
                "agentName": p.agent_name,
                "agentCode": p.agent_code,
                "assignedCount": p.assigned_count,
                "completedCount": p.completed_count,
                "pendingCount": p.pending_count,
            }
            for p in analytics.agent_performance
        ],
    }


def _assignment_to_dict(r: AssignmentResult) -> dict:
    return {
        "orderId": r.order_id,
        "success": r.success,
        "message": r.message,
        "assignedAgentId": r.assigned_agent_id,
        "assignedAgentName": r.assigned_agent_name,
        "previousAgentId": r.previous_agent_id,
    }


def _workload_to_dict(w: AgentWorkload) -> dict:
    return {
        "agentId": w.agent_id,
        "agentName": w.agent_name,
        "agentCode": w.agent_code,
        "availability": w.presence.value,
        "isOnline": w.is_online,
        "currentOrders": w.assigned_orders,
        "maxOrders": w.max_orders,
        "utilizationRate": w.utilization_rate,
    }
