"""Session aggregator — turns state changes and clock ticks into persisted data.

The aggregator is the single owner of the tracker's shared mutable state:

* the :class:`ActivityStateMachine` (current class and confidence);
* the start of the current session;
* the time of the last minute record;
* the calendar day the tracker believes it is.

Every method takes the same :class:`asyncio.Lock` and only mutates memory
while holding it.  Store writes are handed to the :class:`PersistenceWriter`
after the decision is made, so a rollover flush racing a class-change flush
always sees the session start already reset by the other one.

Persistence rules
-----------------
* **Class change** — the previous session is saved only if it lasted longer
  than ``min_session_ms``; the session start resets either way.
* **Minute tick** — one minute is credited to the current class through the
  store's confidence-aware upsert.
* **Day boundary** — detected on the first tick whose local date differs from
  the tracked one: the session and minute are closed against the day that
  ended, then records and sessions dated before ``today - retention_months``
  are pruned.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from functools import partial
from typing import Callable

import structlog

from met_tracker.models import ActivityClass, ActivityRecord, ActivitySession, PredictionResult
from met_tracker.storage.base import ActivityStore
from met_tracker.tracking.state_machine import ActivityStateMachine, Transition
from met_tracker.tracking.writer import PersistenceWriter
from met_tracker.utils import minus_months

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


class SessionAggregator:
    """Serialises all state mutation for the tracking pipeline.

    Parameters
    ----------
    store : ActivityStore
        Destination for sessions and records.
    writer : PersistenceWriter
        Executes store operations off the ingestion path.
    machine : ActivityStateMachine | None
        Hysteresis state machine (a default one is created if omitted).
    min_session_ms : int
        Sessions this short or shorter are discarded.
    save_interval_seconds : int
        Length of one tick; used to size the partial minute on :meth:`flush`.
    retention_months : int
        Records and sessions older than this many months are pruned at rollover.
    clock : Callable[[], datetime]
        Local wall clock.
    """

    def __init__(
        self,
        store: ActivityStore,
        writer: PersistenceWriter,
        machine: ActivityStateMachine | None = None,
        *,
        min_session_ms: int = 30_000,
        save_interval_seconds: int = 60,
        retention_months: int = 1,
        clock: Clock = datetime.now,
    ) -> None:
        self._store = store
        self._writer = writer
        self._machine = machine or ActivityStateMachine()
        self._min_session_ms = min_session_ms
        self._save_interval = save_interval_seconds
        self._retention_months = retention_months
        self._clock = clock
        self._lock = asyncio.Lock()

        now = clock()
        self._session_start = now
        self._last_save = now
        self._day = now.date()

    # ── Read-only views ───────────────────────────────────────

    @property
    def current_class(self) -> ActivityClass:
        return self._machine.current_class

    @property
    def current_confidence(self) -> float:
        return self._machine.current_confidence

    @property
    def session_start(self) -> datetime:
        return self._session_start

    @property
    def last_save(self) -> datetime:
        return self._last_save

    # ── Events ────────────────────────────────────────────────

    async def on_prediction(
        self, prediction: PredictionResult, now: datetime | None = None
    ) -> Transition | None:
        """Feed one classifier output through the state machine."""
        async with self._lock:
            now = now or self._clock()
            transition = self._machine.apply(prediction)
            if transition is not None and transition.class_changed:
                self._close_session(transition.previous_class, transition.previous_confidence, now)
                logger.info(
                    "aggregator.class_changed",
                    previous=transition.previous_class.name,
                    current=transition.new_class.name,
                    confidence=round(transition.new_confidence, 3),
                )
            return transition

    async def on_inference_error(self, now: datetime | None = None) -> Transition | None:
        """Fall back to (SEDENTARY, 0) after a classifier failure."""
        async with self._lock:
            now = now or self._clock()
            transition = self._machine.reset()
            if transition is not None and transition.class_changed:
                self._close_session(transition.previous_class, transition.previous_confidence, now)
            return transition

    async def on_minute_tick(self, now: datetime | None = None) -> bool:
        """Credit one minute to the current class; returns ``True`` on rollover."""
        async with self._lock:
            now = now or self._clock()
            cls, conf = self._machine.current_class, self._machine.current_confidence
            today = now.date()

            if today == self._day:
                self._save_record(today, cls, conf, 1, now)
                self._last_save = now
                return False

            ended = self._day
            self._close_session(cls, conf, now, day=ended)
            self._save_record(ended, cls, conf, 1, now)
            self._last_save = now
            self._day = today

            cutoff = minus_months(today, self._retention_months)
            self._writer.submit("delete_records_older_than", partial(self._store.delete_records_older_than, cutoff))
            self._writer.submit("delete_sessions_older_than", partial(self._store.delete_sessions_older_than, cutoff))
            logger.info("aggregator.day_rollover", ended=ended.isoformat(), prune_before=cutoff.isoformat())
            return True

    async def flush(self, now: datetime | None = None) -> None:
        """Close the in-flight session and partial minute (used on stop)."""
        async with self._lock:
            now = now or self._clock()
            cls, conf = self._machine.current_class, self._machine.current_confidence
            # Dated like the partial minute: the tracked day, even past midnight.
            self._close_session(cls, conf, now, day=self._day)

            # Half a tick or more counts as a full minute.
            minutes = int((now - self._last_save).total_seconds() / self._save_interval + 0.5)
            if minutes >= 1:
                self._save_record(self._day, cls, conf, minutes, now)
            self._last_save = now

    async def drain(self) -> None:
        """Wait until every write dispatched so far has completed."""
        await self._writer.drain()

    # ── Internals (lock held) ─────────────────────────────────

    def _close_session(
        self, cls: ActivityClass, conf: float, now: datetime, day: date | None = None
    ) -> None:
        elapsed_ms = (now - self._session_start).total_seconds() * 1000
        if elapsed_ms > self._min_session_ms:
            session = ActivitySession(
                start_time=self._session_start,
                end_time=now,
                activity_class=cls,
                confidence=conf,
                date=day or now.date(),
            )
            self._writer.submit("insert_session", partial(self._store.insert_session, session))
            logger.debug("aggregator.session_closed", activity=cls.name, duration_ms=int(elapsed_ms))
        else:
            logger.debug("aggregator.session_discarded", activity=cls.name, duration_ms=int(elapsed_ms))
        self._session_start = now

    def _save_record(
        self, day: date, cls: ActivityClass, conf: float, minutes: int, now: datetime
    ) -> None:
        record = ActivityRecord(
            date=day,
            activity_class=cls,
            duration_minutes=minutes,
            confidence=conf,
            timestamp=now,
        )
        self._writer.submit("upsert_record", partial(self._store.upsert_record, record))
