"""Middleware — request logging and error handling."""

from __future__ import annotations

import time
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from met_tracker.errors import PersistenceError

logger = structlog.get_logger(__name__)

# Sample ingestion is high-frequency; logging each call would drown the log.
_QUIET_PATHS = {"/health", "/samples"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log request method, path, status, and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        if request.url.path not in _QUIET_PATHS:
            logger.info(
                "http.request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=duration_ms,
            )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Map store failures to 503 and anything else unhandled to 500."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except PersistenceError as exc:
            logger.error("http.store_unavailable", path=request.url.path, error=str(exc))
            return JSONResponse(status_code=503, content={"detail": "Activity store unavailable."})
        except Exception as exc:
            logger.exception("http.unhandled_error", path=request.url.path, error=str(exc))
            return JSONResponse(status_code=500, content={"detail": "Internal server error."})


def setup_middleware(app: FastAPI) -> None:
    """Wire middleware; the error handler is outermost."""
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
