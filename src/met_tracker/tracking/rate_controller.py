"""Battery-adaptive sampling rate.

Battery tiers map to accelerometer periods::

    level < 20  → 40 000 µs (25 Hz)
    level < 50  → 30 000 µs (~33 Hz)
    otherwise   → 20 000 µs (50 Hz)

Changing the period restarts acquisition, which leaves a short gap in the
sample stream.  With ``hysteresis_pct = 0`` a level that hovers on a
threshold restarts acquisition on every check; a positive band requires the
level to clear the threshold by that many points first.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from met_tracker.sensing.acquisition import AccelerometerSource

logger = structlog.get_logger(__name__)


# ── Resource signals ─────────────────────────────────────────


class ResourceSignal(ABC):
    """A 0–100 resource level, typically battery charge."""

    @abstractmethod
    def current_level(self) -> int:
        ...


class FixedLevel(ResourceSignal):
    """Constant (but settable) level, for mains-powered hosts and tests."""

    def __init__(self, level: int = 100) -> None:
        self.level = level

    def current_level(self) -> int:
        return self.level


class SysfsBattery(ResourceSignal):
    """Reads the Linux power-supply ``capacity`` attribute."""

    def __init__(self, path: str | Path = "/sys/class/power_supply/BAT0/capacity") -> None:
        self._path = Path(path)

    def current_level(self) -> int:
        level = int(self._path.read_text().strip())
        return max(0, min(100, level))


# ── Controller ───────────────────────────────────────────────


class SamplingRateController:
    """Maps a resource level onto an acquisition period and applies it."""

    def __init__(
        self,
        source: AccelerometerSource,
        signal: ResourceSignal,
        *,
        low_threshold: int = 20,
        medium_threshold: int = 50,
        low_period_us: int = 40_000,
        medium_period_us: int = 30_000,
        high_period_us: int = 20_000,
        hysteresis_pct: int = 0,
    ) -> None:
        self._source = source
        self._signal = signal
        self._thresholds = (low_threshold, medium_threshold)
        self._periods = (low_period_us, medium_period_us, high_period_us)
        self._hysteresis = hysteresis_pct
        self._tier: int | None = None
        self._last_level: int | None = None
        self._reconfigurations = 0

    @property
    def last_level(self) -> int | None:
        return self._last_level

    @property
    def reconfigurations(self) -> int:
        return self._reconfigurations

    def tier_for(self, level: int) -> int:
        """0 = low, 1 = medium, 2 = high battery tier."""
        low, medium = self._thresholds
        tier = 0 if level < low else 1 if level < medium else 2
        if not self._hysteresis or self._tier is None or tier == self._tier:
            return tier
        # Boundary just crossed, on the side of the new tier.
        boundary = self._thresholds[tier - 1] if tier > self._tier else self._thresholds[tier]
        if abs(level - boundary) < self._hysteresis:
            return tier - 1 if tier > self._tier else tier + 1
        return tier

    def period_for(self, level: int) -> int:
        return self._periods[self.tier_for(level)]

    def evaluate(self) -> int | None:
        """Read the signal once; return the new period if acquisition was reconfigured."""
        try:
            level = self._signal.current_level()
        except (OSError, ValueError) as exc:
            logger.warning("rate_controller.signal_unavailable", error=str(exc))
            return None

        self._last_level = level
        tier = self.tier_for(level)
        self._tier = tier
        period = self._periods[tier]
        if period == self._source.period_us:
            return None

        was_running = self._source.is_running
        self._source.stop()
        self._source.configure(period)
        if was_running:
            self._source.start()
        self._reconfigurations += 1
        logger.info(
            "rate_controller.reconfigured",
            battery_level=level,
            period_us=period,
            rate_hz=round(1_000_000 / period, 1),
        )
        return period
