"""Async feature stream connecting extraction → classification → aggregation."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class StreamPipeline(Generic[T]):
    """In-process async pipeline that buffers items and forwards them, in
    arrival order, to registered consumers.

    Producers that must never block (the accelerometer callback) use
    :meth:`publish_nowait`; when the queue is full the oldest queued item is
    evicted to make room, since the newer window supersedes it.
    """

    def __init__(self, maxsize: int = 64, name: str = "stream") -> None:
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize=maxsize)
        self._consumers: list[Callable[[T], Awaitable[None]]] = []
        self._running = False
        self._name = name
        self._processed_total = 0
        self._dropped_total = 0

    # ── Configuration ─────────────────────────────────────────

    def add_consumer(self, fn: Callable[[T], Awaitable[None]]) -> None:
        """Register an async callback that receives every item."""
        self._consumers.append(fn)

    # ── Producer side ─────────────────────────────────────────

    async def publish(self, item: T) -> None:
        await self._queue.put(item)

    def publish_nowait(self, item: T) -> bool:
        """Enqueue without waiting; returns ``False`` if an older item was evicted."""
        evicted = False
        if self._queue.full():
            self._queue.get_nowait()
            self._queue.task_done()
            self._dropped_total += 1
            evicted = True
            logger.debug("stream_pipeline.evicted", stream=self._name, dropped_total=self._dropped_total)
        self._queue.put_nowait(item)
        return not evicted

    # ── Consumer loop ─────────────────────────────────────────

    async def start(self) -> None:
        """Run the consumer loop (schedule as a background task)."""
        self._running = True
        logger.info("stream_pipeline.started", stream=self._name, consumers=len(self._consumers))

        last_stats_time = time.monotonic()

        while self._running:
            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            for consumer in self._consumers:
                try:
                    await consumer(item)
                except Exception as exc:
                    logger.error(
                        "stream_pipeline.consumer_error",
                        stream=self._name,
                        consumer=consumer.__qualname__,
                        error=str(exc),
                    )

            self._processed_total += 1
            self._queue.task_done()

            now = time.monotonic()
            if now - last_stats_time >= 60:
                logger.info(
                    "stream_pipeline.stats",
                    stream=self._name,
                    processed_total=self._processed_total,
                    dropped_total=self._dropped_total,
                    queue_pending=self._queue.qsize(),
                )
                last_stats_time = now

    async def join(self) -> None:
        """Wait until every queued item has been consumed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Ask the consumer loop to exit after the current item."""
        self._running = False
        logger.info("stream_pipeline.stopped", stream=self._name, processed_total=self._processed_total)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def processed_total(self) -> int:
        return self._processed_total

    @property
    def dropped_total(self) -> int:
        return self._dropped_total
