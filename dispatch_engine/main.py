"""Dispatch Engine — FastAPI application factory."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dispatch_engine.adapters.persistence.database import async_session_factory, engine
from dispatch_engine.config import settings
from dispatch_engine.infrastructure.api.dependencies import get_event_sink
from dispatch_engine.infrastructure.api.routes_assignments import router as assignments_router
from dispatch_engine.infrastructure.api.routes_health import router as health_router
from dispatch_engine.infrastructure.api.routes_presence import router as presence_router
from dispatch_engine.infrastructure.jobs.presence_sweep import presence_sweep_loop

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)

    stop_event = asyncio.Event()
    sweep_task = None
    if settings.presence_sweep_interval_seconds > 0:
        sweep_task = asyncio.create_task(
            presence_sweep_loop(
                async_session_factory, settings.presence_sweep_interval_seconds, stop_event
            )
        )
        logger.info("Presence sweep every %ss", settings.presence_sweep_interval_seconds)
    yield
    stop_event.set()
    if sweep_task is not None:
        await sweep_task
    await get_event_sink().drain()
    await engine.dispose()


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Dispatch Engine",
        description="Agent presence, round-robin auto-assignment and workload redistribution",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS for the dashboard frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(assignments_router, prefix="/api")
    app.include_router(presence_router, prefix="/api")

    return app


app = create_app()
