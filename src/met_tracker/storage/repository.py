"""Data-access layer — async SQLAlchemy implementation of :class:`ActivityStore`."""

from __future__ import annotations

import asyncio
import functools
from datetime import date
from typing import AsyncIterator, Awaitable, Callable, ParamSpec, TypeVar

import structlog
from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from met_tracker.errors import PersistenceError
from met_tracker.models import ActivityClass, ActivityRecord, ActivitySession, DailySummary
from met_tracker.storage.base import ActivityStore
from met_tracker.storage.database import ActivityRecordRow, ActivitySessionRow, get_session_factory

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def _wrap_errors(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Re-raise SQLAlchemy failures as :class:`PersistenceError`."""

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await fn(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"{fn.__name__} failed: {exc}") from exc

    return wrapper


def _minutes_for(activity_class: ActivityClass):
    return func.coalesce(
        func.sum(
            case(
                (ActivityRecordRow.met_class == activity_class.name, ActivityRecordRow.duration_minutes),
            )
        ),
        0,
    )


def _to_record(row: ActivityRecordRow) -> ActivityRecord:
    return ActivityRecord(
        date=date.fromisoformat(row.date),
        activity_class=ActivityClass[row.met_class],
        duration_minutes=row.duration_minutes,
        confidence=row.confidence,
        timestamp=row.timestamp,
    )


def _to_session(row: ActivitySessionRow) -> ActivitySession:
    return ActivitySession(
        start_time=row.start_time,
        end_time=row.end_time,
        activity_class=ActivityClass[row.met_class],
        confidence=row.confidence,
        date=date.fromisoformat(row.date),
    )


class BaseRepository:
    """Shared base with session management for all repositories."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._external_factory = session_factory

    def _session(self) -> AsyncSession:
        factory = self._external_factory or get_session_factory()
        return factory()


class ActivityRepository(BaseRepository, ActivityStore):
    """CRUD and summary queries for activity records and sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        super().__init__(session_factory)
        self._changed = asyncio.Condition()
        self._version = 0

    async def _notify(self) -> None:
        async with self._changed:
            self._version += 1
            self._changed.notify_all()

    # ── Write ─────────────────────────────────────────────────

    @_wrap_errors
    async def upsert_record(self, record: ActivityRecord) -> None:
        async with self._session() as session, session.begin():
            stmt = select(ActivityRecordRow).where(
                ActivityRecordRow.date == record.date.isoformat(),
                ActivityRecordRow.met_class == record.activity_class.name,
            )
            existing = (await session.execute(stmt)).scalar_one_or_none()

            if existing is None:
                session.add(
                    ActivityRecordRow(
                        date=record.date.isoformat(),
                        met_class=record.activity_class.name,
                        duration_minutes=record.duration_minutes,
                        confidence=record.confidence,
                        timestamp=record.timestamp,
                    )
                )
            elif record.confidence >= existing.confidence:
                existing.duration_minutes += record.duration_minutes
                existing.confidence = record.confidence
                existing.timestamp = record.timestamp
            else:
                logger.debug(
                    "repository.record_dropped",
                    date=record.date.isoformat(),
                    activity=record.activity_class.name,
                    incoming=record.confidence,
                    stored=existing.confidence,
                )
                return
        await self._notify()

    @_wrap_errors
    async def insert_session(self, activity_session: ActivitySession) -> None:
        async with self._session() as session, session.begin():
            session.add(
                ActivitySessionRow(
                    start_time=activity_session.start_time,
                    end_time=activity_session.end_time,
                    met_class=activity_session.activity_class.name,
                    confidence=activity_session.confidence,
                    date=activity_session.date.isoformat(),
                )
            )

    @_wrap_errors
    async def delete_records_older_than(self, day: date) -> int:
        async with self._session() as session, session.begin():
            result = await session.execute(
                delete(ActivityRecordRow).where(ActivityRecordRow.date < day.isoformat())
            )
            deleted = result.rowcount or 0
        logger.info("repository.records_pruned", before=day.isoformat(), deleted=deleted)
        await self._notify()
        return deleted

    @_wrap_errors
    async def delete_sessions_older_than(self, day: date) -> int:
        async with self._session() as session, session.begin():
            result = await session.execute(
                delete(ActivitySessionRow).where(ActivitySessionRow.date < day.isoformat())
            )
            deleted = result.rowcount or 0
        logger.info("repository.sessions_pruned", before=day.isoformat(), deleted=deleted)
        return deleted

    # ── Read ──────────────────────────────────────────────────

    @_wrap_errors
    async def records_for_date(self, day: date) -> list[ActivityRecord]:
        async with self._session() as session:
            stmt = (
                select(ActivityRecordRow)
                .where(ActivityRecordRow.date == day.isoformat())
                .order_by(ActivityRecordRow.timestamp.asc())
            )
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_record(r) for r in rows]

    @_wrap_errors
    async def records_since(self, day: date) -> list[ActivityRecord]:
        async with self._session() as session:
            stmt = (
                select(ActivityRecordRow)
                .where(ActivityRecordRow.date >= day.isoformat())
                .order_by(ActivityRecordRow.date.desc(), ActivityRecordRow.timestamp.desc())
            )
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_record(r) for r in rows]

    async def stream_records_since(self, day: date) -> AsyncIterator[list[ActivityRecord]]:
        seen = -1
        while True:
            async with self._changed:
                await self._changed.wait_for(lambda: self._version != seen)
                seen = self._version
            yield await self.records_since(day)

    @_wrap_errors
    async def daily_summary(self, day: date) -> DailySummary | None:
        summaries = await self._summaries(
            ActivityRecordRow.date == day.isoformat(),
        )
        return summaries[0] if summaries else None

    @_wrap_errors
    async def weekly_summary(self, start: date, end: date) -> list[DailySummary]:
        return await self._summaries(
            ActivityRecordRow.date >= start.isoformat(),
            ActivityRecordRow.date <= end.isoformat(),
        )

    async def _summaries(self, *conditions) -> list[DailySummary]:
        stmt = (
            select(
                ActivityRecordRow.date,
                _minutes_for(ActivityClass.SEDENTARY).label("sedentary"),
                _minutes_for(ActivityClass.LIGHT).label("light"),
                _minutes_for(ActivityClass.MODERATE).label("moderate"),
                _minutes_for(ActivityClass.VIGOROUS).label("vigorous"),
            )
            .where(*conditions)
            .group_by(ActivityRecordRow.date)
            .order_by(ActivityRecordRow.date.asc())
        )
        async with self._session() as session:
            rows = (await session.execute(stmt)).all()
        return [
            DailySummary(
                date=date.fromisoformat(r.date),
                sedentary_minutes=r.sedentary,
                light_minutes=r.light,
                moderate_minutes=r.moderate,
                vigorous_minutes=r.vigorous,
            )
            for r in rows
        ]

    @_wrap_errors
    async def sessions_for_date(self, day: date) -> list[ActivitySession]:
        async with self._session() as session:
            stmt = (
                select(ActivitySessionRow)
                .where(ActivitySessionRow.date == day.isoformat())
                .order_by(ActivitySessionRow.start_time.asc())
            )
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_session(r) for r in rows]
