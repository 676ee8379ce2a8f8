"""Tracking control and sample ingestion routes."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from met_tracker.api.schemas import IngestResponse, SampleBatch
from met_tracker.errors import InitializationError
from met_tracker.models import StopReport, TrackingStatus
from met_tracker.sensing.acquisition import PushAccelerometer

router = APIRouter(prefix="/tracking", tags=["tracking"])
ingest_router = APIRouter(tags=["tracking"])


def _service():
    from met_tracker.api.server import get_tracking_service

    service = get_tracking_service()
    if service is None:
        raise HTTPException(503, "Tracking service not ready.")
    return service


@router.post("/start", response_model=TrackingStatus)
async def start_tracking():
    service = _service()
    try:
        await service.start()
    except InitializationError as exc:
        raise HTTPException(500, f"Classifier failed to initialise: {exc}") from exc
    return service.status()


@router.post("/stop", response_model=StopReport)
async def stop_tracking():
    return await _service().stop()


@router.get("/status", response_model=TrackingStatus)
async def tracking_status():
    return _service().status()


@ingest_router.post("/samples", response_model=IngestResponse, status_code=202)
async def ingest_samples(batch: SampleBatch):
    """Push accelerometer samples into the running tracker."""
    service = _service()
    source = service.source
    if not isinstance(source, PushAccelerometer):
        raise HTTPException(409, f"Acquisition source '{source.name}' does not accept pushed samples.")
    if not service.is_running:
        raise HTTPException(409, "Tracking is not running.")
    accepted = source.feed_many(batch.samples)
    return IngestResponse(received=len(batch.samples), accepted=accepted)
