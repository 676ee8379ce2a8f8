"""Abstract store contract used by the tracking pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import AsyncIterator

from met_tracker.models import ActivityRecord, ActivitySession, DailySummary


class ActivityStore(ABC):
    """Key-value / range-query store for activity data.

    Implementations raise :class:`~met_tracker.errors.PersistenceError` when
    the backend fails.
    """

    @abstractmethod
    async def upsert_record(self, record: ActivityRecord) -> None:
        """Insert, or merge into the existing (date, class) record.

        An incoming confidence greater than or equal to the stored one adds
        the incoming duration and overwrites confidence and timestamp.  A lower
        confidence leaves the stored record untouched.
        """

    @abstractmethod
    async def insert_session(self, session: ActivitySession) -> None:
        ...

    @abstractmethod
    async def records_for_date(self, day: date) -> list[ActivityRecord]:
        ...

    @abstractmethod
    async def daily_summary(self, day: date) -> DailySummary | None:
        ...

    @abstractmethod
    async def weekly_summary(self, start: date, end: date) -> list[DailySummary]:
        ...

    @abstractmethod
    async def records_since(self, day: date) -> list[ActivityRecord]:
        """Records dated on or after *day*, newest first."""

    @abstractmethod
    def stream_records_since(self, day: date) -> AsyncIterator[list[ActivityRecord]]:
        """Yield :meth:`records_since` snapshots, a new one after every write."""

    @abstractmethod
    async def delete_records_older_than(self, day: date) -> int:
        """Delete records dated strictly before *day*; return how many."""

    @abstractmethod
    async def delete_sessions_older_than(self, day: date) -> int:
        """Delete sessions dated strictly before *day*; return how many."""

    @abstractmethod
    async def sessions_for_date(self, day: date) -> list[ActivitySession]:
        ...
