"""Structured logging configuration using *structlog*."""

from __future__ import annotations

import logging
import sys

import structlog

# Third-party loggers that are chatty at INFO; kept at WARNING unless DEBUG.
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "uvicorn.access")


def _stderr_logger(*args: object) -> structlog.PrintLogger:
    # Resolved per logger so a replaced sys.stderr is always honoured.
    return structlog.PrintLogger(sys.stderr)


def setup_logging(level: str = "INFO", *, json_logs: bool | None = None) -> None:
    """Configure *structlog* for the tracker and tame chatty stdlib loggers.

    Call once per process (CLI command or server start).  ``json_logs`` forces
    the renderer; by default JSON is used unless stderr is a terminal.
    Everything goes to stderr so CLI output on stdout stays clean.
    """
    numeric = getattr(logging, level, logging.INFO)
    if json_logs is None:
        json_logs = not sys.stderr.isatty()

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(numeric if numeric <= logging.DEBUG else logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
