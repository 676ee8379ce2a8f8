"""Fixed-duration rolling window of accelerometer samples."""

from __future__ import annotations

import bisect
from collections import deque

from met_tracker.models import Sample


class SampleBuffer:
    """Keeps the samples of the last ``window_duration_ms`` milliseconds.

    Every :meth:`push` evicts samples older than the newest timestamp minus
    the window, so memory stays bounded under sustained input.
    """

    def __init__(self, window_duration_ms: int = 5000) -> None:
        self._window_ms = window_duration_ms
        self._samples: deque[Sample] = deque()

    def push(self, sample: Sample) -> None:
        if self._samples and sample.timestamp < self._samples[-1].timestamp:
            # Late arrival: keep the window time-sorted.
            keys = [s.timestamp for s in self._samples]
            self._samples.insert(bisect.bisect_right(keys, sample.timestamp), sample)
        else:
            self._samples.append(sample)

        cutoff = self._samples[-1].timestamp - self._window_ms
        while self._samples and self._samples[0].timestamp < cutoff:
            self._samples.popleft()

    def snapshot(self) -> list[Sample]:
        """Return the current window in time order."""
        return list(self._samples)

    def clear(self) -> None:
        self._samples.clear()

    @property
    def window_duration_ms(self) -> int:
        return self._window_ms

    def __len__(self) -> int:
        return len(self._samples)
