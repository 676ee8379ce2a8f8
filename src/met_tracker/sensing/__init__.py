"""Accelerometer acquisition, windowing and feature extraction."""
