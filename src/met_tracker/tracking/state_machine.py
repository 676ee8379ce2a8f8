"""Confidence-hysteresis state machine for the reported activity class."""

from __future__ import annotations

from dataclasses import dataclass

from met_tracker.models import ActivityClass, PredictionResult

_CONFIDENCE_FLOOR = 0.3
_HYSTERESIS_MARGIN = 0.1


@dataclass(frozen=True)
class Transition:
    """An accepted state change."""

    previous_class: ActivityClass
    previous_confidence: float
    new_class: ActivityClass
    new_confidence: float

    @property
    def class_changed(self) -> bool:
        return self.previous_class != self.new_class


class ActivityStateMachine:
    """Decides when a prediction is strong enough to change the reported class.

    * predictions below ``confidence_floor`` are ignored;
    * a different class is accepted at any confidence above the floor;
    * the same class is only re-accepted when its confidence beats the
      current one by more than ``hysteresis_margin``.
    """

    def __init__(
        self,
        confidence_floor: float = _CONFIDENCE_FLOOR,
        hysteresis_margin: float = _HYSTERESIS_MARGIN,
    ) -> None:
        self._floor = confidence_floor
        self._margin = hysteresis_margin
        self._class = ActivityClass.SEDENTARY
        self._confidence = 0.0

    @property
    def current_class(self) -> ActivityClass:
        return self._class

    @property
    def current_confidence(self) -> float:
        return self._confidence

    def apply(self, prediction: PredictionResult) -> Transition | None:
        cls, conf = prediction.activity_class, prediction.confidence
        if conf < self._floor:
            return None
        if cls == self._class and not conf > self._confidence + self._margin:
            return None
        return self._move_to(cls, conf)

    def reset(self) -> Transition | None:
        """Force the safe default (SEDENTARY, 0.0); ``None`` if already there."""
        if self._class == ActivityClass.SEDENTARY and self._confidence == 0.0:
            return None
        return self._move_to(ActivityClass.SEDENTARY, 0.0)

    def _move_to(self, cls: ActivityClass, conf: float) -> Transition:
        transition = Transition(self._class, self._confidence, cls, conf)
        self._class, self._confidence = cls, conf
        return transition
