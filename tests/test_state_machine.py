"""Tests for the confidence-hysteresis state machine."""

import pytest

from doubles import prediction
from met_tracker.models import ActivityClass
from met_tracker.tracking.state_machine import ActivityStateMachine

SED, LIGHT, MOD, VIG = (
    ActivityClass.SEDENTARY,
    ActivityClass.LIGHT,
    ActivityClass.MODERATE,
    ActivityClass.VIGOROUS,
)


@pytest.fixture
def machine() -> ActivityStateMachine:
    return ActivityStateMachine()


class TestActivityStateMachine:
    def test_initial_state(self, machine):
        assert machine.current_class == SED
        assert machine.current_confidence == 0.0

    @pytest.mark.parametrize("cls", list(ActivityClass))
    def test_low_confidence_never_changes_state(self, machine, cls):
        assert machine.apply(prediction(cls, 0.29)) is None
        assert machine.current_class == SED
        assert machine.current_confidence == 0.0

    def test_small_confidence_gain_is_ignored(self, machine):
        machine.apply(prediction(LIGHT, 0.5))
        assert machine.apply(prediction(LIGHT, 0.55)) is None
        assert machine.current_confidence == 0.5

    def test_large_confidence_gain_is_accepted(self, machine):
        machine.apply(prediction(LIGHT, 0.5))
        transition = machine.apply(prediction(LIGHT, 0.65))
        assert transition is not None
        assert not transition.class_changed
        assert machine.current_confidence == 0.65

    def test_lower_confidence_same_class_ignored(self, machine):
        machine.apply(prediction(MOD, 0.9))
        assert machine.apply(prediction(MOD, 0.4)) is None
        assert machine.current_confidence == 0.9

    @pytest.mark.parametrize("conf", [0.3, 0.31, 0.5, 0.99])
    def test_different_class_always_accepted(self, machine, conf):
        machine.apply(prediction(VIG, 0.95))
        transition = machine.apply(prediction(LIGHT, conf))
        assert transition is not None
        assert transition.class_changed
        assert transition.previous_class == VIG
        assert transition.previous_confidence == 0.95
        assert machine.current_class == LIGHT
        assert machine.current_confidence == conf

    def test_floor_is_inclusive(self, machine):
        assert machine.apply(prediction(LIGHT, 0.3)) is not None

    def test_reset(self, machine):
        machine.apply(prediction(VIG, 0.8))
        transition = machine.reset()
        assert transition is not None and transition.class_changed
        assert (machine.current_class, machine.current_confidence) == (SED, 0.0)
        assert machine.reset() is None

    def test_custom_thresholds(self):
        machine = ActivityStateMachine(confidence_floor=0.5, hysteresis_margin=0.2)
        assert machine.apply(prediction(LIGHT, 0.45)) is None
        machine.apply(prediction(LIGHT, 0.6))
        assert machine.apply(prediction(LIGHT, 0.75)) is None
        assert machine.apply(prediction(LIGHT, 0.85)) is not None
