"""Shared Pydantic models used across the tracker."""

from __future__ import annotations

from datetime import date as Date
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

# ── Enums ─────────────────────────────────────────────────────


class ActivityClass(str, Enum):
    """MET intensity classes, declared in increasing order of intensity.

    Members are persisted by *name*; :attr:`label` is the display form.
    """

    SEDENTARY = "Sedentary"
    LIGHT = "Light"
    MODERATE = "Moderate"
    VIGOROUS = "Vigorous"

    @property
    def label(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return _CLASS_ORDER.index(self)

    @classmethod
    def from_index(cls, index: int) -> ActivityClass:
        """Map a classifier output index onto a class (out-of-range → SEDENTARY)."""
        if 0 <= index < len(_CLASS_ORDER):
            return _CLASS_ORDER[index]
        return cls.SEDENTARY


_CLASS_ORDER = list(ActivityClass)


# ── Sensor data ───────────────────────────────────────────────


class Sample(BaseModel):
    """A single triaxial accelerometer reading (m/s²)."""

    model_config = ConfigDict(frozen=True)

    timestamp: int  # monotonic milliseconds
    x: float
    y: float
    z: float


class FeatureVector(BaseModel):
    """The 13 window statistics fed to the classifier, in fixed order."""

    model_config = ConfigDict(frozen=True)

    values: tuple[float, ...]
    window_end: int = 0  # timestamp of the newest sample in the window
    sample_count: int = 0

    @field_validator("values")
    @classmethod
    def _check_length(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        if len(v) != FEATURE_COUNT:
            raise ValueError(f"expected {FEATURE_COUNT} features, got {len(v)}")
        return v

    def as_dict(self) -> dict[str, float]:
        return dict(zip(FEATURE_NAMES, self.values))


FEATURE_NAMES: tuple[str, ...] = (
    "x_mean", "y_mean", "z_mean", "mag_mean",
    "x_var", "y_var", "z_var", "mag_var",
    "x_std", "y_std", "z_std", "mag_std",
    "movement_intensity",
)
FEATURE_COUNT = len(FEATURE_NAMES)
FEATURE_SET_VERSION = "accel13_v1"


class PredictionResult(BaseModel):
    """Classifier output for one feature vector."""

    activity_class: ActivityClass
    confidence: float = Field(ge=0.0, le=1.0)


# ── Persisted activity data ───────────────────────────────────


class ActivitySession(BaseModel):
    """A contiguous interval spent in one class, long enough to be kept."""

    start_time: datetime
    end_time: datetime
    activity_class: ActivityClass
    confidence: float = 1.0
    date: Date


class ActivityRecord(BaseModel):
    """Accumulated minutes for one (date, class) pair."""

    date: Date
    activity_class: ActivityClass
    duration_minutes: int
    confidence: float = 1.0
    timestamp: datetime = Field(default_factory=datetime.now)


class DailySummary(BaseModel):
    """Per-class minutes for a single day, derived from records."""

    date: Date
    sedentary_minutes: int = 0
    light_minutes: int = 0
    moderate_minutes: int = 0
    vigorous_minutes: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_minutes(self) -> int:
        return (
            self.sedentary_minutes
            + self.light_minutes
            + self.moderate_minutes
            + self.vigorous_minutes
        )

    def duration_for(self, activity_class: ActivityClass) -> int:
        return {
            ActivityClass.SEDENTARY: self.sedentary_minutes,
            ActivityClass.LIGHT: self.light_minutes,
            ActivityClass.MODERATE: self.moderate_minutes,
            ActivityClass.VIGOROUS: self.vigorous_minutes,
        }[activity_class]


# ── Runtime status ────────────────────────────────────────────


class TrackingStatus(BaseModel):
    """Point-in-time view of the tracking service."""

    running: bool
    acquisition_available: bool
    current_class: ActivityClass
    current_confidence: float
    session_started_at: datetime | None = None
    session_elapsed: str = "00:00:00"
    sampling_period_us: int
    battery_level: int | None = None


class StopReport(BaseModel):
    """Outcome of stopping the tracker, including the final flush."""

    flushed: bool
    error: str | None = None
