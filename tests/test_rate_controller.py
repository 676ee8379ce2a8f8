"""Tests for the battery-adaptive sampling rate controller."""

from __future__ import annotations

import pytest

from met_tracker.sensing.acquisition import PushAccelerometer
from met_tracker.tracking.rate_controller import FixedLevel, SamplingRateController, SysfsBattery


@pytest.fixture
def source() -> PushAccelerometer:
    src = PushAccelerometer(period_us=20_000)
    src.start()
    return src


@pytest.mark.parametrize(
    ("level", "period"),
    [(0, 40_000), (19, 40_000), (20, 30_000), (49, 30_000), (50, 20_000), (100, 20_000)],
)
def test_level_to_period(source, level, period):
    controller = SamplingRateController(source, FixedLevel(level))
    assert controller.period_for(level) == period


def test_reconfigures_and_restarts_running_source(source):
    battery = FixedLevel(35)
    controller = SamplingRateController(source, battery)

    assert controller.evaluate() == 30_000
    assert source.period_us == 30_000
    assert source.is_running
    assert controller.last_level == 35

    # Same tier: nothing to do.
    battery.level = 40
    assert controller.evaluate() is None
    assert controller.reconfigurations == 1


def test_stopped_source_stays_stopped():
    source = PushAccelerometer(period_us=20_000)
    controller = SamplingRateController(source, FixedLevel(10))
    assert controller.evaluate() == 40_000
    assert not source.is_running


def test_no_hysteresis_flaps_on_threshold(source):
    battery = FixedLevel(50)
    controller = SamplingRateController(source, battery)
    periods = []
    for level in (49, 50, 49, 50):
        battery.level = level
        periods.append(controller.evaluate())
    assert periods == [30_000, 20_000, 30_000, 20_000]


def test_hysteresis_band(source):
    battery = FixedLevel(80)
    controller = SamplingRateController(source, battery, hysteresis_pct=5)
    controller.evaluate()  # settle on the high tier

    battery.level = 48
    assert controller.evaluate() is None
    assert source.period_us == 20_000

    battery.level = 44
    assert controller.evaluate() == 30_000

    battery.level = 52
    assert controller.evaluate() is None
    assert source.period_us == 30_000

    battery.level = 56
    assert controller.evaluate() == 20_000


def test_sysfs_battery(tmp_path, source):
    capacity = tmp_path / "capacity"
    capacity.write_text("15\n")
    assert SysfsBattery(capacity).current_level() == 15

    capacity.write_text("104\n")
    assert SysfsBattery(capacity).current_level() == 100


def test_unreadable_signal_leaves_rate_unchanged(tmp_path, source):
    controller = SamplingRateController(source, SysfsBattery(tmp_path / "missing"))
    assert controller.evaluate() is None
    assert source.period_us == 20_000
    assert controller.last_level is None
