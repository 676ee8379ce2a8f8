"""Accelerometer acquisition sources.

Every source delivers :class:`Sample` objects through a synchronous callback
registered with :meth:`AccelerometerSource.subscribe`.  Sources never block:
the callback runs on the event loop and must return quickly.
"""

from __future__ import annotations

import asyncio
import math
import random
import time
from abc import ABC, abstractmethod
from typing import Callable, Iterator

import structlog

from met_tracker.errors import AcquisitionUnavailable
from met_tracker.models import Sample

logger = structlog.get_logger(__name__)

SampleCallback = Callable[[Sample], None]

_GRAVITY = 9.81

# name -> (oscillation frequency Hz, amplitude m/s², noise std m/s²)
PROFILES: dict[str, tuple[float, float, float]] = {
    "still": (0.0, 0.0, 0.02),
    "walking": (1.8, 2.5, 0.3),
    "running": (2.8, 7.0, 0.8),
}


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


class AccelerometerSource(ABC):
    """Contract for anything that produces triaxial samples.

    Subclasses implement the device-specific :meth:`_open` / :meth:`_close`
    and call :meth:`_emit` for every sample while running.
    """

    name: str = "accelerometer"

    def __init__(self, period_us: int = 20_000) -> None:
        self._period_us = period_us
        self._callback: SampleCallback | None = None
        self._running = False

    # ── Configuration ─────────────────────────────────────────

    def subscribe(self, callback: SampleCallback) -> None:
        """Register the single consumer of this source's samples."""
        self._callback = callback

    def configure(self, period_us: int) -> None:
        """Set the sampling period; takes effect on the next :meth:`start`."""
        if period_us <= 0:
            raise ValueError("period_us must be positive")
        self._period_us = period_us

    @property
    def period_us(self) -> int:
        return self._period_us

    @property
    def is_running(self) -> bool:
        return self._running

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying sensor exists."""

    # ── Lifecycle ─────────────────────────────────────────────

    def start(self) -> None:
        if self._running:
            return
        if not self.is_available():
            raise AcquisitionUnavailable(f"{self.name} is not available")
        self._running = True
        self._open()
        logger.info("acquisition.started", source=self.name, period_us=self._period_us)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._close()
        logger.info("acquisition.stopped", source=self.name)

    def _open(self) -> None:
        """Hook: begin delivering samples."""

    def _close(self) -> None:
        """Hook: stop delivering samples."""

    def _emit(self, sample: Sample) -> None:
        if self._running and self._callback is not None:
            self._callback(sample)


class PushAccelerometer(AccelerometerSource):
    """Source whose samples are pushed in from outside (e.g. the HTTP API)."""

    name = "push"

    def is_available(self) -> bool:
        return True

    def feed(self, sample: Sample) -> bool:
        """Deliver one sample; returns ``False`` when acquisition is stopped."""
        if not self._running:
            return False
        self._emit(sample)
        return True

    def feed_many(self, samples: list[Sample]) -> int:
        return sum(1 for s in samples if self.feed(s))


class UnavailableAccelerometer(AccelerometerSource):
    """Stand-in for a device without an accelerometer."""

    name = "none"

    def is_available(self) -> bool:
        return False


# ── Synthetic motion ─────────────────────────────────────────


def generate_samples(
    profile: str,
    duration_s: float,
    rate_hz: float = 50.0,
    *,
    start_ms: int = 0,
    seed: int | None = None,
) -> Iterator[Sample]:
    """Yield a synthetic sample stream for one of :data:`PROFILES`.

    The device is modelled lying with gravity on the z axis; movement adds a
    sinusoid on z and a smaller one on x, plus Gaussian noise.
    """
    freq, amplitude, noise = PROFILES[profile]
    rng = random.Random(seed)
    count = int(duration_s * rate_hz)
    step_ms = 1000.0 / rate_hz
    for i in range(count):
        t = i / rate_hz
        phase = 2 * math.pi * freq * t
        yield Sample(
            timestamp=start_ms + round(i * step_ms),
            x=0.3 * amplitude * math.sin(phase + 0.5) + rng.gauss(0.0, noise),
            y=rng.gauss(0.0, noise),
            z=_GRAVITY + amplitude * math.sin(phase) + rng.gauss(0.0, noise),
        )


class SyntheticAccelerometer(AccelerometerSource):
    """Generates a motion profile in real time at the configured period."""

    name = "synthetic"

    def __init__(self, profile: str = "still", period_us: int = 20_000, seed: int | None = None) -> None:
        super().__init__(period_us)
        if profile not in PROFILES:
            raise ValueError(f"unknown profile {profile!r}")
        self._profile = profile
        self._seed = seed
        self._task: asyncio.Task | None = None

    def is_available(self) -> bool:
        return True

    def _open(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run())

    def _close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        period_s = self._period_us / 1_000_000
        rng = random.Random(self._seed)
        started = time.monotonic()
        while self._running:
            freq, amplitude, noise = PROFILES[self._profile]
            phase = 2 * math.pi * freq * (time.monotonic() - started)
            self._emit(
                Sample(
                    timestamp=monotonic_ms(),
                    x=0.3 * amplitude * math.sin(phase + 0.5) + rng.gauss(0.0, noise),
                    y=rng.gauss(0.0, noise),
                    z=_GRAVITY + amplitude * math.sin(phase) + rng.gauss(0.0, noise),
                )
            )
            await asyncio.sleep(period_s)
