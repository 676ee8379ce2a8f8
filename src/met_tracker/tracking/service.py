"""Tracking service — lifecycle of the acquisition → aggregation pipeline.

Architecture
~~~~~~~~~~~~
``TrackingService.start()`` loads the classifier (failure is fatal), then:

1. subscribes :meth:`on_sample` to the accelerometer; every sample is pushed
   into the rolling window and extraction is attempted inline;
2. runs the feature stream consumer, which classifies each vector and feeds
   the :class:`SessionAggregator`;
3. runs the battery check loop (every ``battery_check_interval_seconds``);
4. runs the minute tick loop (every ``save_interval_seconds``), which also
   detects the day boundary;
5. runs the :class:`PersistenceWriter` that performs all store I/O.

``stop()`` halts acquisition, classifies the windows still queued, cancels
the loops, flushes the in-flight session and minute, waits for the writer and
reports whether the final flush was persisted.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable

import structlog

from met_tracker.config import Settings, get_settings
from met_tracker.errors import AcquisitionUnavailable, InferenceError
from met_tracker.inference.classifier import ActivityClassifier, load_classifier
from met_tracker.models import ActivityClass, FeatureVector, Sample, StopReport, TrackingStatus
from met_tracker.sensing.acquisition import (
    AccelerometerSource,
    PushAccelerometer,
    SyntheticAccelerometer,
    UnavailableAccelerometer,
)
from met_tracker.sensing.buffer import SampleBuffer
from met_tracker.sensing.features import FeatureExtractor
from met_tracker.storage.base import ActivityStore
from met_tracker.streaming.pipeline import StreamPipeline
from met_tracker.tracking.aggregator import Clock, SessionAggregator
from met_tracker.tracking.rate_controller import (
    FixedLevel,
    ResourceSignal,
    SamplingRateController,
    SysfsBattery,
)
from met_tracker.tracking.state_machine import ActivityStateMachine
from met_tracker.tracking.writer import PersistenceWriter
from met_tracker.utils import format_hms

logger = structlog.get_logger(__name__)


def create_source(settings: Settings) -> AccelerometerSource:
    if settings.acquisition_source == "synthetic":
        return SyntheticAccelerometer(settings.synthetic_profile, settings.default_sampling_period_us)
    if settings.acquisition_source == "none":
        return UnavailableAccelerometer(settings.default_sampling_period_us)
    return PushAccelerometer(settings.default_sampling_period_us)


def create_signal(settings: Settings) -> ResourceSignal:
    if settings.battery_source == "sysfs":
        return SysfsBattery(settings.battery_sysfs_path)
    return FixedLevel(settings.battery_fixed_level)


class TrackingService:
    """Owns every moving part of a tracking run.

    Integration::

        service = TrackingService(ActivityRepository())
        await service.start()
        ...
        report = await service.stop()
    """

    def __init__(
        self,
        store: ActivityStore,
        *,
        source: AccelerometerSource | None = None,
        signal: ResourceSignal | None = None,
        classifier_factory: Callable[[], ActivityClassifier] | None = None,
        settings: Settings | None = None,
        clock: Clock = datetime.now,
    ) -> None:
        self._settings = settings or get_settings()
        s = self._settings
        self._store = store
        self._source = source or create_source(s)
        self._signal = signal or create_signal(s)
        self._classifier_factory = classifier_factory or (lambda: load_classifier(s.classifier))
        self._clock = clock

        self._buffer = SampleBuffer(s.window_duration_ms)
        self._extractor = FeatureExtractor(s.min_window_samples, s.min_rate_samples, s.min_sampling_rate_hz)
        self._rate_controller = SamplingRateController(
            self._source,
            self._signal,
            low_threshold=s.battery_low_threshold,
            medium_threshold=s.battery_medium_threshold,
            low_period_us=s.battery_low_period_us,
            medium_period_us=s.battery_medium_period_us,
            high_period_us=s.battery_high_period_us,
            hysteresis_pct=s.battery_hysteresis_pct,
        )

        self._classifier: ActivityClassifier | None = None
        self._writer: PersistenceWriter | None = None
        self._aggregator: SessionAggregator | None = None
        self._features: StreamPipeline[FeatureVector] | None = None
        self._tasks: list[asyncio.Task] = []
        self._running = False
        self._acquisition_available = self._source.is_available()
        self._source.subscribe(self.on_sample)

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start tracking.  Raises :class:`InitializationError` if the classifier fails to load."""
        if self._running:
            return
        s = self._settings

        self._classifier = self._classifier_factory()

        self._writer = PersistenceWriter()
        self._writer.start()
        self._aggregator = SessionAggregator(
            self._store,
            self._writer,
            ActivityStateMachine(s.confidence_floor, s.hysteresis_margin),
            min_session_ms=s.min_session_ms,
            save_interval_seconds=s.save_interval_seconds,
            retention_months=s.retention_months,
            clock=self._clock,
        )
        self._features = StreamPipeline(maxsize=s.feature_queue_size, name="features")
        self._features.add_consumer(self._classify)

        self._running = True
        self._tasks = [
            asyncio.create_task(self._features.start(), name="feature-stream"),
            asyncio.create_task(self._rate_loop(), name="battery-check"),
            asyncio.create_task(self._tick_loop(), name="minute-tick"),
        ]

        try:
            self._source.start()
            self._acquisition_available = True
        except AcquisitionUnavailable as exc:
            self._acquisition_available = False
            logger.warning("tracking.acquisition_unavailable", error=str(exc))

        logger.info(
            "tracking.started",
            source=self._source.name,
            period_us=self._source.period_us,
            acquisition=self._acquisition_available,
        )

    async def stop(self) -> StopReport:
        """Stop tracking and persist the in-flight session and minute."""
        if not self._running:
            return StopReport(flushed=True)
        self._running = False

        self._source.stop()
        self._buffer.clear()

        if self._features is not None:
            # Windows accepted before acquisition stopped are still classified.
            await self._features.join()
            await self._features.stop()
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

        assert self._aggregator is not None and self._writer is not None
        await self._writer.drain()
        failures_before = self._writer.failures
        await self._aggregator.flush()
        await self._writer.stop()

        report = StopReport(flushed=True)
        if self._writer.failures > failures_before:
            report = StopReport(flushed=False, error=self._writer.last_error)

        if self._classifier is not None:
            self._classifier.close()
        logger.info("tracking.stopped", flushed=report.flushed, error=report.error)
        return report

    async def drain(self) -> None:
        """Wait until queued feature vectors are classified and their writes are done."""
        if self._running and self._features is not None:
            await self._features.join()
        if self._aggregator is not None:
            await self._aggregator.drain()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def source(self) -> AccelerometerSource:
        return self._source

    @property
    def aggregator(self) -> SessionAggregator | None:
        return self._aggregator

    @property
    def rate_controller(self) -> SamplingRateController:
        return self._rate_controller

    # ── Sample path (acquisition callback, never blocks) ──────

    def on_sample(self, sample: Sample) -> None:
        if not self._running or self._features is None:
            return
        self._buffer.push(sample)
        vector = self._extractor.try_extract(self._buffer.snapshot())
        if vector is not None:
            self._features.publish_nowait(vector)

    async def _classify(self, vector: FeatureVector) -> None:
        assert self._classifier is not None and self._aggregator is not None
        try:
            prediction = self._classifier.predict(vector)
        except InferenceError as exc:
            logger.warning("tracking.inference_failed", error=str(exc))
            await self._aggregator.on_inference_error()
            return
        await self._aggregator.on_prediction(prediction)

    # ── Periodic tasks ────────────────────────────────────────

    async def _rate_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._settings.battery_check_interval_seconds)
            try:
                self._rate_controller.evaluate()
            except Exception:
                logger.exception("tracking.rate_check_error")

    async def _tick_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._settings.save_interval_seconds)
            assert self._aggregator is not None
            try:
                await self._aggregator.on_minute_tick()
            except Exception:
                logger.exception("tracking.tick_error")

    # ── Status ────────────────────────────────────────────────

    def status(self) -> TrackingStatus:
        agg = self._aggregator
        if agg is None or not self._running:
            return TrackingStatus(
                running=False,
                acquisition_available=self._acquisition_available,
                current_class=agg.current_class if agg else ActivityClass.SEDENTARY,
                current_confidence=agg.current_confidence if agg else 0.0,
                sampling_period_us=self._source.period_us,
                battery_level=self._rate_controller.last_level,
            )
        elapsed = (self._clock() - agg.session_start).total_seconds()
        return TrackingStatus(
            running=True,
            acquisition_available=self._acquisition_available,
            current_class=agg.current_class,
            current_confidence=agg.current_confidence,
            session_started_at=agg.session_start,
            session_elapsed=format_hms(int(elapsed)),
            sampling_period_us=self._source.period_us,
            battery_level=self._rate_controller.last_level,
        )
