"""Presence endpoints — login, logout, heartbeat, availability, sweep."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_engine.application.errors import AssignmentError
from dispatch_engine.application.use_cases.presence import PresenceChange, PresenceService
from dispatch_engine.domain.policies.permissions import Permission, can_act_on_agent
from dispatch_engine.domain.value_objects.enums import Presence
from dispatch_engine.infrastructure.api.dependencies import (
    ActingUser,
    get_acting_user,
    get_db_session,
    get_presence_service,
    http_error,
    require_permission,
)

router = APIRouter(prefix="/presence", tags=["presence"])


class AvailabilityRequest(BaseModel):
    availability: Presence


def _ensure_can_update(user: ActingUser, agent_id: str) -> None:
    if not can_act_on_agent(user.user_id, user.role, agent_id, Permission.UPDATE_ANY_AVAILABILITY):
        raise HTTPException(status_code=403, detail="Insufficient permissions")


@router.post("/{agent_id}/login")
async def login(
    agent_id: str,
    user: ActingUser = Depends(get_acting_user),
    presence: PresenceService = Depends(get_presence_service),
    session: AsyncSession = Depends(get_db_session),
):
    _ensure_can_update(user, agent_id)
    try:
        change = await presence.login(agent_id)
    except AssignmentError as e:
        raise http_error(e) from e
    await session.commit()
    return _change_response(change)


@router.post("/{agent_id}/logout")
async def logout(
    agent_id: str,
    user: ActingUser = Depends(get_acting_user),
    presence: PresenceService = Depends(get_presence_service),
    session: AsyncSession = Depends(get_db_session),
):
    _ensure_can_update(user, agent_id)
    try:
        change = await presence.logout(agent_id)
    except AssignmentError as e:
        raise http_error(e) from e
    await session.commit()
    return _change_response(change)


@router.post("/{agent_id}/heartbeat")
async def heartbeat(
    agent_id: str,
    user: ActingUser = Depends(get_acting_user),
    presence: PresenceService = Depends(get_presence_service),
    session: AsyncSession = Depends(get_db_session),
):
    _ensure_can_update(user, agent_id)
    try:
        alive = await presence.heartbeat(agent_id)
    except AssignmentError as e:
        raise http_error(e) from e
    await session.commit()
    if not alive:
        raise HTTPException(status_code=409, detail="Agent is offline, log in again")
    return {"agentId": agent_id, "status": "ok"}


@router.put("/{agent_id}/availability")
async def update_availability(
    agent_id: str,
    body: AvailabilityRequest,
    user: ActingUser = Depends(get_acting_user),
    presence: PresenceService = Depends(get_presence_service),
    session: AsyncSession = Depends(get_db_session),
):
    _ensure_can_update(user, agent_id)
    try:
        change = await presence.update_availability(agent_id, body.availability)
    except AssignmentError as e:
        raise http_error(e) from e
    await session.commit()
    return _change_response(change)


@router.post("/sweep")
async def sweep_expired(
    user: ActingUser = Depends(require_permission(Permission.REDISTRIBUTE_ORDERS)),
    presence: PresenceService = Depends(get_presence_service),
    session: AsyncSession = Depends(get_db_session),
):
    """Mark agents with an expired activity marker offline."""
    try:
        changes = await presence.sweep_expired()
    except AssignmentError as e:
        raise http_error(e) from e
    await session.commit()
    return {"markedOffline": [_change_to_dict(c) for c in changes]}


def _change_response(change: PresenceChange | None) -> dict:
    if change is None:
        raise HTTPException(status_code=404, detail="Agent not found")
    return _change_to_dict(change)


def _change_to_dict(c: PresenceChange) -> dict:
    data = {
        "agentId": c.agent_id,
        "previous": c.previous.value,
        "availability": c.current.value,
        "changed": c.changed,
        "redistribution": None,
        "redistributionError": c.redistribution_error,
    }
    if c.redistribution is not None:
        data["redistribution"] = {
            "redistributed": c.redistribution.redistributed,
            "failed": c.redistribution.failed,
        }
    return data
