"""Real-time physical-activity (MET class) tracking from accelerometer data."""

__version__ = "0.1.0"
