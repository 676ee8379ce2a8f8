"""Virtual-time replay of a recorded or synthetic sample stream.

Drives the same buffer → extractor → classifier → aggregator chain as the
live service, but advances the clock from sample timestamps instead of the
wall clock, so minutes of motion can be processed instantly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable

import structlog

from met_tracker.errors import InferenceError
from met_tracker.inference.classifier import ActivityClassifier
from met_tracker.models import ActivityClass, FeatureVector, Sample
from met_tracker.sensing.buffer import SampleBuffer
from met_tracker.sensing.features import FeatureExtractor
from met_tracker.tracking.aggregator import SessionAggregator

logger = structlog.get_logger(__name__)


@dataclass
class ReplayResult:
    samples: int = 0
    vectors: int = 0
    class_changes: int = 0
    inference_errors: int = 0
    ticks: int = 0
    last_vector: FeatureVector | None = None
    final_class: ActivityClass = ActivityClass.SEDENTARY


async def replay(
    samples: Iterable[Sample],
    *,
    classifier: ActivityClassifier,
    aggregator: SessionAggregator,
    start: datetime,
    extractor: FeatureExtractor | None = None,
    buffer: SampleBuffer | None = None,
    tick_interval_s: int = 60,
) -> ReplayResult:
    """Feed *samples* through the pipeline, ticking every ``tick_interval_s`` of stream time.

    ``start`` is the wall-clock time of the first sample; the aggregator
    should have been created with a clock returning the same instant.
    """
    extractor = extractor or FeatureExtractor()
    buffer = buffer or SampleBuffer()
    result = ReplayResult()
    tick_ms = tick_interval_s * 1000
    first_ts: int | None = None
    next_tick = tick_ms

    for sample in samples:
        if first_ts is None:
            first_ts = sample.timestamp
        offset = sample.timestamp - first_ts
        while offset >= next_tick:
            await aggregator.on_minute_tick(start + timedelta(milliseconds=next_tick))
            result.ticks += 1
            next_tick += tick_ms

        now = start + timedelta(milliseconds=offset)
        result.samples += 1
        buffer.push(sample)
        vector = extractor.try_extract(buffer.snapshot())
        if vector is None:
            continue
        result.vectors += 1
        result.last_vector = vector

        try:
            prediction = classifier.predict(vector)
        except InferenceError as exc:
            result.inference_errors += 1
            logger.warning("replay.inference_failed", error=str(exc))
            transition = await aggregator.on_inference_error(now)
        else:
            transition = await aggregator.on_prediction(prediction, now)
        if transition is not None and transition.class_changed:
            result.class_changes += 1

    result.final_class = aggregator.current_class
    return result
