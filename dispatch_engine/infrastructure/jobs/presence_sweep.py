"""Background loop that expires stale presence and redistributes orders."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dispatch_engine.application.errors import AssignmentError
from dispatch_engine.infrastructure.api.dependencies import build_presence_service

logger = logging.getLogger(__name__)


async def run_sweep_once(session_factory: async_sessionmaker[AsyncSession]) -> int:
    async with session_factory() as session:
        changes = await build_presence_service(session).sweep_expired()
        await session.commit()
    return len(changes)


async def presence_sweep_loop(
    session_factory: async_sessionmaker[AsyncSession],
    interval_seconds: int,
    stop_event: asyncio.Event,
) -> None:
    while not stop_event.is_set():
        try:
            await run_sweep_once(session_factory)
        except AssignmentError as e:
            logger.warning("Presence sweep skipped: %s", e)
        except Exception:
            logger.exception("Presence sweep failed")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue
