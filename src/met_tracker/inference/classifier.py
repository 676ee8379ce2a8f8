"""Classifier interface and the built-in rule-based intensity classifier.

The tracking pipeline treats the classifier as a black box: ``load()`` once at
start (failure is fatal), then ``predict()`` per feature vector (failure only
affects that cycle).
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

import structlog

from met_tracker.errors import InferenceError, InitializationError
from met_tracker.models import (
    FEATURE_COUNT,
    FEATURE_NAMES,
    FEATURE_SET_VERSION,
    ActivityClass,
    FeatureVector,
    PredictionResult,
)

logger = structlog.get_logger(__name__)

_MAG_STD = FEATURE_NAMES.index("mag_std")
_INTENSITY = FEATURE_NAMES.index("movement_intensity")

# Upper bounds (exclusive) of magnitude std, m/s², for the first three classes.
DEFAULT_THRESHOLDS: tuple[float, float, float] = (0.5, 2.0, 4.5)


class ActivityClassifier(ABC):
    """Contract for every activity classifier."""

    model_version: str = "unknown"
    feature_set_version: str = FEATURE_SET_VERSION

    def load(self) -> None:
        """Prepare the model.  Raise :class:`InitializationError` on failure."""

    @abstractmethod
    def predict(self, features: FeatureVector) -> PredictionResult:
        """Classify one feature vector.  Raise :class:`InferenceError` on failure."""

    def close(self) -> None:
        """Release model resources."""


def _validate(features: FeatureVector) -> tuple[float, ...]:
    values = features.values
    if len(values) != FEATURE_COUNT:
        raise InferenceError(f"expected {FEATURE_COUNT} features, got {len(values)}")
    if not all(math.isfinite(v) for v in values):
        raise InferenceError("feature vector contains non-finite values")
    return values


class IntensityRuleClassifier(ActivityClassifier):
    """Threshold model on the spread of acceleration magnitude.

    Confidence grows with the distance from the nearest class boundary,
    relative to the width of the band the score fell into.  Movement
    intensity breaks ties close to a boundary: a jerky signal is nudged up.
    """

    model_version = "rules_v1"

    def __init__(self, thresholds: tuple[float, float, float] = DEFAULT_THRESHOLDS) -> None:
        self._thresholds = thresholds
        self._loaded = False

    def load(self) -> None:
        t = self._thresholds
        if len(t) != 3 or not all(a < b for a, b in zip((0.0, *t), t)):
            raise InitializationError(f"thresholds must be positive and increasing: {t}")
        self._loaded = True
        logger.info("classifier.loaded", model_version=self.model_version, thresholds=list(t))

    def predict(self, features: FeatureVector) -> PredictionResult:
        if not self._loaded:
            raise InferenceError("classifier not loaded")
        values = _validate(features)
        score = values[_MAG_STD]
        if score < 0:
            raise InferenceError(f"negative magnitude std: {score}")

        bounds = (0.0, *self._thresholds, math.inf)
        index = next(i for i in range(4) if score < bounds[i + 1])

        # Distance to the nearest finite boundary of the band.
        low, high = bounds[index], bounds[index + 1]
        if math.isinf(high):
            width = self._thresholds[-1] - self._thresholds[-2]
            distance = score - low
        else:
            width = high - low
            if index == 0:
                distance = high - score
            else:
                width /= 2
                distance = min(score - low, high - score)
        closeness = min(1.0, distance / width) if width > 0 else 1.0

        if closeness < 0.1 and index < 3 and values[_INTENSITY] > score:
            index += 1
            closeness = 0.0

        confidence = round(0.5 + 0.49 * closeness, 4)
        return PredictionResult(activity_class=ActivityClass.from_index(index), confidence=confidence)


_REGISTRY: dict[str, type[ActivityClassifier]] = {
    "rules": IntensityRuleClassifier,
}


def load_classifier(name: str = "rules") -> ActivityClassifier:
    """Instantiate and load the classifier registered under *name*."""
    try:
        cls = _REGISTRY[name]
    except KeyError:
        raise InitializationError(f"unknown classifier {name!r}") from None
    classifier = cls()
    classifier.load()
    return classifier
