"""End-to-end replay through buffer, extractor, classifier and aggregator."""

from __future__ import annotations

from datetime import timedelta

import pytest

from doubles import ScriptedClassifier, prediction
from met_tracker.errors import InferenceError
from met_tracker.inference.classifier import load_classifier
from met_tracker.models import ActivityClass
from met_tracker.sensing.acquisition import generate_samples
from met_tracker.tracking.aggregator import SessionAggregator
from met_tracker.tracking.replay import replay
from met_tracker.tracking.writer import PersistenceWriter


@pytest.fixture
def writer() -> PersistenceWriter:
    return PersistenceWriter()


@pytest.fixture
def aggregator(memory_store, writer, clock) -> SessionAggregator:
    return SessionAggregator(memory_store, writer, clock=clock)


@pytest.mark.asyncio
async def test_stationary_device_records_one_sedentary_minute(
    aggregator, memory_store, clock, make_samples
):
    result = await replay(
        make_samples(600),
        classifier=ScriptedClassifier([prediction(ActivityClass.SEDENTARY, 0.95)]),
        aggregator=aggregator,
        start=clock.now,
    )

    assert result.samples == 600
    assert result.vectors > 0
    assert result.class_changes == 0
    features = result.last_vector.as_dict()
    assert features["x_std"] == 0.0
    assert features["mag_std"] == 0.0
    assert features["movement_intensity"] == 0.0
    assert features["mag_mean"] == pytest.approx(9.8)

    await aggregator.on_minute_tick(clock.now + timedelta(seconds=60))
    await aggregator.drain()
    [record] = memory_store.records.values()
    assert record.date == clock.now.date()
    assert record.activity_class == ActivityClass.SEDENTARY
    assert record.duration_minutes == 1
    assert record.confidence == 0.95


@pytest.mark.asyncio
async def test_synthetic_still_profile(aggregator, memory_store, clock):
    result = await replay(
        generate_samples("still", duration_s=150, rate_hz=50, seed=3),
        classifier=load_classifier("rules"),
        aggregator=aggregator,
        start=clock.now,
    )
    await aggregator.drain()

    assert result.ticks == 2
    assert result.final_class == ActivityClass.SEDENTARY
    assert memory_store.records[(clock.now.date(), ActivityClass.SEDENTARY)].duration_minutes == 2


@pytest.mark.asyncio
async def test_inference_errors_fall_back_to_sedentary(aggregator, clock, make_samples):
    classifier = ScriptedClassifier([prediction(ActivityClass.LIGHT, 0.8), InferenceError("bad window")])
    result = await replay(
        make_samples(40),
        classifier=classifier,
        aggregator=aggregator,
        start=clock.now,
    )
    assert result.vectors == 11
    assert result.inference_errors == 10
    assert result.class_changes == 2
    assert result.final_class == ActivityClass.SEDENTARY
