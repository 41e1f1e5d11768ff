"""Serialized FIFO build queue: one bounded channel, one consumer task."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[Any]]


@dataclass
class QueueStatus:
    queue_length: int
    is_processing: bool

    def to_dict(self) -> dict[str, Any]:
        return {"queue_length": self.queue_length, "is_processing": self.is_processing}


class BuildQueue:
    """At most one job runs at a time, in enqueue order.

    A failing job is logged and the queue moves on.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue[tuple[str, Job]] = asyncio.Queue(maxsize=maxsize)
        self._consumer: asyncio.Task | None = None
        self._processing = False
        self._counter = 0

    async def enqueue(self, job: Job, name: str | None = None) -> None:
        """Append *job*; waits while the queue is full."""
        self._counter += 1
        label = name or f"job-{self._counter}"
        # @@@consumer-first - start draining before put() so a full queue cannot deadlock.
        self._ensure_consumer()
        await self._queue.put((label, job))
        logger.debug("Enqueued %s (pending=%d)", label, self._queue.qsize())

    def status(self) -> QueueStatus:
        return QueueStatus(queue_length=self._queue.qsize(), is_processing=self._processing)

    async def join(self) -> None:
        await self._queue.join()

    async def close(self) -> None:
        task = self._consumer
        self._consumer = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _ensure_consumer(self) -> None:
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.create_task(self._drain(), name="build-queue-consumer")

    async def _drain(self) -> None:
        while True:
            label, job = await self._queue.get()
            self._processing = True
            try:
                await job()
            except Exception:
                logger.exception("Queued job %s failed", label)
            finally:
                self._processing = False
                self._queue.task_done()
