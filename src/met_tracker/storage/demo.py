"""Seed a week of plausible records so summaries have something to show."""

from __future__ import annotations

from datetime import date, timedelta

from met_tracker.models import ActivityClass, ActivityRecord
from met_tracker.storage.base import ActivityStore

# (days ago, sedentary, light, moderate, vigorous) minutes
_DEMO_DAYS = [
    (6, 180, 60, 30, 0),
    (5, 120, 90, 45, 0),
    (4, 200, 50, 20, 0),
    (3, 150, 80, 30, 0),
    (2, 100, 120, 40, 0),
    (1, 160, 70, 35, 0),
    (0, 90, 100, 20, 0),
]


async def seed_demo_records(store: ActivityStore, today: date, confidence: float = 0.9) -> int:
    """Upsert demo minutes for the seven days ending *today*; returns records written."""
    written = 0
    for days_ago, *minutes in _DEMO_DAYS:
        day = today - timedelta(days=days_ago)
        for activity_class, value in zip(ActivityClass, minutes):
            if value <= 0:
                continue
            await store.upsert_record(
                ActivityRecord(
                    date=day,
                    activity_class=activity_class,
                    duration_minutes=value,
                    confidence=confidence,
                )
            )
            written += 1
    return written
