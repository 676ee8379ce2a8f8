"""Tests for the structlog configuration."""

import json

import structlog

from met_tracker.logger import setup_logging


def test_json_logs_go_to_stderr(capsys):
    setup_logging("INFO", json_logs=True)
    structlog.get_logger("met_tracker.test").info("aggregator.day_rollover", ended="2026-03-10")

    captured = capsys.readouterr()
    assert captured.out == ""
    event = json.loads(captured.err.strip().splitlines()[-1])
    assert event["event"] == "aggregator.day_rollover"
    assert event["level"] == "info"
    assert event["ended"] == "2026-03-10"


def test_level_filters_lower_events(capsys):
    setup_logging("WARNING", json_logs=True)
    structlog.get_logger("met_tracker.test").info("tracking.started")
    assert capsys.readouterr().err == ""
    setup_logging("INFO", json_logs=True)
