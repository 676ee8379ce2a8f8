"""Test doubles for the tracker's external collaborators."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import AsyncIterator, Iterable

from met_tracker.errors import PersistenceError
from met_tracker.inference.classifier import ActivityClassifier
from met_tracker.models import (
    ActivityClass,
    ActivityRecord,
    ActivitySession,
    DailySummary,
    FeatureVector,
    PredictionResult,
)
from met_tracker.storage.base import ActivityStore


def prediction(cls: ActivityClass, confidence: float) -> PredictionResult:
    return PredictionResult(activity_class=cls, confidence=confidence)


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class ScriptedClassifier(ActivityClassifier):
    """Returns scripted predictions; an exception instance in the script is raised."""

    model_version = "scripted"

    def __init__(self, script: Iterable[PredictionResult | Exception]) -> None:
        self._script = list(script)
        self.calls = 0
        self.closed = False

    def predict(self, features: FeatureVector) -> PredictionResult:
        item = self._script[min(self.calls, len(self._script) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


class MemoryStore(ActivityStore):
    """In-memory store applying the same merge rule as the SQL repository."""

    def __init__(self) -> None:
        self.records: dict[tuple[date, ActivityClass], ActivityRecord] = {}
        self.sessions: list[ActivitySession] = []
        self.fail_writes = False
        self.fail_next = 0  # fail only this many upcoming writes

    def _check(self) -> None:
        if self.fail_next > 0:
            self.fail_next -= 1
            raise PersistenceError("store offline")
        if self.fail_writes:
            raise PersistenceError("store offline")

    async def upsert_record(self, record: ActivityRecord) -> None:
        self._check()
        key = (record.date, record.activity_class)
        existing = self.records.get(key)
        if existing is None:
            self.records[key] = record
        elif record.confidence >= existing.confidence:
            self.records[key] = existing.model_copy(
                update={
                    "duration_minutes": existing.duration_minutes + record.duration_minutes,
                    "confidence": record.confidence,
                    "timestamp": record.timestamp,
                }
            )

    async def insert_session(self, session: ActivitySession) -> None:
        self._check()
        self.sessions.append(session)

    async def records_for_date(self, day: date) -> list[ActivityRecord]:
        return [r for (d, _), r in self.records.items() if d == day]

    async def daily_summary(self, day: date) -> DailySummary | None:
        records = await self.records_for_date(day)
        if not records:
            return None
        minutes = {r.activity_class: r.duration_minutes for r in records}
        return DailySummary(
            date=day,
            sedentary_minutes=minutes.get(ActivityClass.SEDENTARY, 0),
            light_minutes=minutes.get(ActivityClass.LIGHT, 0),
            moderate_minutes=minutes.get(ActivityClass.MODERATE, 0),
            vigorous_minutes=minutes.get(ActivityClass.VIGOROUS, 0),
        )

    async def weekly_summary(self, start: date, end: date) -> list[DailySummary]:
        days = sorted({d for d, _ in self.records if start <= d <= end})
        return [s for d in days if (s := await self.daily_summary(d)) is not None]

    async def records_since(self, day: date) -> list[ActivityRecord]:
        records = [r for (d, _), r in self.records.items() if d >= day]
        return sorted(records, key=lambda r: (r.date, r.timestamp), reverse=True)

    async def stream_records_since(self, day: date) -> AsyncIterator[list[ActivityRecord]]:
        yield await self.records_since(day)

    async def delete_records_older_than(self, day: date) -> int:
        self._check()
        stale = [k for k in self.records if k[0] < day]
        for k in stale:
            del self.records[k]
        return len(stale)

    async def delete_sessions_older_than(self, day: date) -> int:
        self._check()
        kept = [s for s in self.sessions if s.date >= day]
        deleted = len(self.sessions) - len(kept)
        self.sessions = kept
        return deleted

    async def sessions_for_date(self, day: date) -> list[ActivitySession]:
        return [s for s in self.sessions if s.date == day]
