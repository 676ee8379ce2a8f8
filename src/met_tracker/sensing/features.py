"""Feature extraction — window validation and the 13 accelerometer statistics.

A window is only usable when it holds enough samples *and* those samples
arrived fast enough.  The effective sampling rate check catches sensor stalls
and OS throttling, where a buffer can look full but actually spans gaps.

Feature order (shared with the classifier, see ``FEATURE_NAMES``)::

    x_mean, y_mean, z_mean, mag_mean,
    x_var,  y_var,  z_var,  mag_var,
    x_std,  y_std,  z_std,  mag_std,
    movement_intensity

Variances are population variances (mean of squared deviations).
"""

from __future__ import annotations

import math
from typing import Sequence

import structlog

from met_tracker.errors import InvalidWindow
from met_tracker.models import FeatureVector, Sample

logger = structlog.get_logger(__name__)

# ── Constants ─────────────────────────────────────────────────

_MIN_WINDOW_SAMPLES = 30
_MIN_RATE_SAMPLES = 10
_MIN_SAMPLING_RATE_HZ = 20.0


# ── Statistics helpers ───────────────────────────────────────


def _mean_var_std(values: Sequence[float]) -> tuple[float, float, float]:
    """Population mean, variance and standard deviation."""
    n = len(values)
    if n == 0:
        return 0.0, 0.0, 0.0
    if min(values) == max(values):
        return float(values[0]), 0.0, 0.0
    mean = math.fsum(values) / n
    var = math.fsum((v - mean) ** 2 for v in values) / n
    return mean, var, math.sqrt(var)


def movement_intensity(magnitudes: Sequence[float]) -> float:
    """Mean absolute difference between consecutive magnitudes."""
    if len(magnitudes) < 2:
        return 0.0
    diffs = [abs(b - a) for a, b in zip(magnitudes, magnitudes[1:])]
    return math.fsum(diffs) / len(diffs)


def effective_sampling_rate(window: Sequence[Sample]) -> float:
    """Samples per second actually observed across the window (0 if undefined)."""
    if len(window) < 2:
        return 0.0
    span_ms = window[-1].timestamp - window[0].timestamp
    if span_ms <= 0:
        return 0.0
    return (len(window) - 1) * 1000.0 / span_ms


# ── Extractor ────────────────────────────────────────────────


class FeatureExtractor:
    """Validates a window and turns it into a :class:`FeatureVector`.

    Parameters
    ----------
    min_samples : int
        Minimum window size to attempt extraction.
    min_rate_samples : int
        Minimum window size for the sampling rate to be judged at all.
    min_rate_hz : float
        Effective sampling-rate floor.
    """

    def __init__(
        self,
        min_samples: int = _MIN_WINDOW_SAMPLES,
        min_rate_samples: int = _MIN_RATE_SAMPLES,
        min_rate_hz: float = _MIN_SAMPLING_RATE_HZ,
    ) -> None:
        self._min_samples = min_samples
        self._min_rate_samples = min_rate_samples
        self._min_rate_hz = min_rate_hz

    def is_rate_valid(self, window: Sequence[Sample]) -> bool:
        if len(window) < self._min_rate_samples:
            return False
        return effective_sampling_rate(window) >= self._min_rate_hz

    def try_extract(self, window: Sequence[Sample]) -> FeatureVector | None:
        """Return features for *window*, or ``None`` if it is not usable yet."""
        try:
            return self.extract(window)
        except InvalidWindow:
            return None

    def extract(self, window: Sequence[Sample]) -> FeatureVector:
        """Strict variant of :meth:`try_extract`; raises :class:`InvalidWindow`."""
        if len(window) < self._min_samples:
            raise InvalidWindow(f"{len(window)} samples < {self._min_samples}")
        if not self.is_rate_valid(window):
            rate = effective_sampling_rate(window)
            logger.debug("features.rate_rejected", rate_hz=round(rate, 2), samples=len(window))
            raise InvalidWindow(f"effective rate {rate:.1f} Hz < {self._min_rate_hz} Hz")

        xs = [s.x for s in window]
        ys = [s.y for s in window]
        zs = [s.z for s in window]
        mags = [math.sqrt(s.x * s.x + s.y * s.y + s.z * s.z) for s in window]

        x_mean, x_var, x_std = _mean_var_std(xs)
        y_mean, y_var, y_std = _mean_var_std(ys)
        z_mean, z_var, z_std = _mean_var_std(zs)
        m_mean, m_var, m_std = _mean_var_std(mags)

        return FeatureVector(
            values=(
                x_mean, y_mean, z_mean, m_mean,
                x_var, y_var, z_var, m_var,
                x_std, y_std, z_std, m_std,
                movement_intensity(mags),
            ),
            window_end=window[-1].timestamp,
            sample_count=len(window),
        )
