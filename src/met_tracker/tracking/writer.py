"""Serial persistence writer running in its own task.

All store I/O is funnelled through one queue so that a slow write never
delays sample ingestion, and writes for the same record never race.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

WriteOp = Callable[[], Awaitable[Any]]


class PersistenceWriter:
    """Executes queued store operations one at a time.

    Failures are logged and counted, never raised: the next periodic tick
    produces fresh data and tries again.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[tuple[str, WriteOp]] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._failures = 0
        self._completed = 0
        self._last_error: str | None = None

    # ── Lifecycle ─────────────────────────────────────────────

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Finish pending writes, then stop the worker."""
        await self.drain()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    # ── Producer side ─────────────────────────────────────────

    def submit(self, label: str, op: WriteOp) -> None:
        self._queue.put_nowait((label, op))

    async def drain(self) -> None:
        """Wait for every submitted operation to finish (successfully or not)."""
        if self._task is None:
            # No worker: run inline so callers still observe completion.
            while not self._queue.empty():
                await self._execute(*self._queue.get_nowait())
                self._queue.task_done()
            return
        await self._queue.join()

    # ── Worker ────────────────────────────────────────────────

    async def _run(self) -> None:
        while True:
            label, op = await self._queue.get()
            try:
                await self._execute(label, op)
            finally:
                self._queue.task_done()

    async def _execute(self, label: str, op: WriteOp) -> None:
        try:
            await op()
        except Exception as exc:
            self._failures += 1
            self._last_error = f"{label}: {exc}"
            logger.error("writer.operation_failed", operation=label, error=str(exc))
        else:
            self._completed += 1

    # ── Stats ─────────────────────────────────────────────────

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def completed(self) -> int:
        return self._completed

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def pending(self) -> int:
        return self._queue.qsize()
