"""Daily / weekly summary and history routes."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, HTTPException, Query

from met_tracker.api.schemas import SeedResponse
from met_tracker.models import ActivityRecord, ActivitySession, DailySummary
from met_tracker.storage.demo import seed_demo_records
from met_tracker.storage.repository import ActivityRepository
from met_tracker.utils import week_bounds

router = APIRouter(tags=["summary"])


@router.get("/summary/daily", response_model=DailySummary)
async def daily_summary(day: date | None = Query(None, alias="date")):
    day = day or date.today()
    summary = await ActivityRepository().daily_summary(day)
    if summary is None:
        return DailySummary(date=day)
    return summary


@router.get("/summary/weekly", response_model=list[DailySummary])
async def weekly_summary(start: date | None = None, end: date | None = None):
    """Per-day summaries; defaults to the Monday..Sunday week containing today."""
    if start is None or end is None:
        default_start, default_end = week_bounds(date.today())
        start = start or default_start
        end = end or default_end
    if end < start:
        raise HTTPException(422, "end must not be before start")
    return await ActivityRepository().weekly_summary(start, end)


@router.get("/records", response_model=list[ActivityRecord])
async def records(day: date | None = Query(None, alias="date"), since: date | None = None):
    repo = ActivityRepository()
    if since is not None:
        return await repo.records_since(since)
    return await repo.records_for_date(day or date.today())


@router.get("/sessions", response_model=list[ActivitySession])
async def sessions(day: date | None = Query(None, alias="date")):
    return await ActivityRepository().sessions_for_date(day or date.today())


@router.post("/demo/seed", response_model=SeedResponse, status_code=201)
async def seed_demo():
    written = await seed_demo_records(ActivityRepository(), date.today())
    return SeedResponse(written=written)
