"""Exception hierarchy for the tracking pipeline.

Only :class:`InitializationError` is allowed to escape ``TrackingService.start``;
every other error is contained by the component that detects it.
"""

from __future__ import annotations


class MetTrackerError(Exception):
    """Base class for all tracker errors."""


class AcquisitionUnavailable(MetTrackerError):
    """No accelerometer is present; the producer is disabled."""


class InvalidWindow(MetTrackerError):
    """Window too short or sampled too slowly to extract features."""


class InferenceError(MetTrackerError):
    """The classifier rejected its input or its backend failed."""


class PersistenceError(MetTrackerError):
    """A store read or write failed."""


class InitializationError(MetTrackerError):
    """The classifier could not be loaded; tracking must not start."""
