"""FastAPI application — tracking control, sample ingestion and summaries."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from met_tracker import __version__
from met_tracker.api.middleware import setup_middleware
from met_tracker.api.routes.summary import router as summary_router
from met_tracker.api.routes.tracking import ingest_router, router as tracking_router
from met_tracker.config import get_settings
from met_tracker.logger import setup_logging
from met_tracker.storage.database import dispose_engine, init_db
from met_tracker.storage.repository import ActivityRepository
from met_tracker.tracking.service import TrackingService

logger = structlog.get_logger(__name__)

# ── Shared state (initialised in lifespan) ────────────────────

_tracking_service: TrackingService | None = None


def get_tracking_service() -> TrackingService | None:
    return _tracking_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hooks."""
    global _tracking_service

    settings = get_settings()
    setup_logging(settings.log_level)

    await init_db()
    logger.info("server.db_ready")

    _tracking_service = TrackingService(ActivityRepository(), settings=settings)
    if settings.tracking_autostart:
        await _tracking_service.start()

    yield

    if _tracking_service.is_running:
        report = await _tracking_service.stop()
        logger.info("server.tracking_flushed", flushed=report.flushed)
    _tracking_service = None
    await dispose_engine()
    logger.info("server.shutdown")


app = FastAPI(
    title="MET Activity Tracker",
    version=__version__,
    lifespan=lifespan,
)
setup_middleware(app)
app.include_router(tracking_router)
app.include_router(ingest_router)
app.include_router(summary_router)


@app.get("/health", tags=["system"])
async def health():
    service = _tracking_service
    return {
        "status": "ok",
        "tracking": bool(service and service.is_running),
    }
