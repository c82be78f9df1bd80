"""
Bounded-concurrency load queue.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, Set

from phomshah.models.resources import LoadRequest

logger = logging.getLogger(__name__)

LoadWorker = Callable[[str, bool], Awaitable[bool]]


class LoadQueue:
    """FIFO queue of loads with at most ``max_concurrent`` in flight.

    Priority requests are inserted at the front when submitted; queued
    requests are never reordered afterwards.
    """

    def __init__(self, worker: LoadWorker, max_concurrent: int = 3):
        """Initialize load queue.

        Args:
            worker: Coroutine function running one load, resolving to success
            max_concurrent: Maximum number of loads in flight
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self._worker = worker
        self.max_concurrent = max_concurrent
        self._queue: Deque[LoadRequest] = deque()
        self._active = 0
        self._tasks: Set[asyncio.Task] = set()
        self.peak_active = 0

    @property
    def active(self) -> int:
        return self._active

    @property
    def pending(self) -> int:
        return len(self._queue)

    def submit(self, url: str, priority: bool = False) -> "asyncio.Future[bool]":
        """Queue a load and start it as soon as a slot is free."""
        future = asyncio.get_running_loop().create_future()
        request = LoadRequest(url=url, priority=priority, future=future)

        if priority:
            self._queue.appendleft(request)
        else:
            self._queue.append(request)

        logger.debug(f"Queued {url} (priority={priority}, pending={len(self._queue)}, "
                     f"active={self._active})")
        self._drain()
        return future

    def _drain(self) -> None:
        while self._active < self.max_concurrent and self._queue:
            request = self._queue.popleft()
            self._active += 1
            self.peak_active = max(self.peak_active, self._active)

            task = asyncio.ensure_future(self._run(request))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, request: LoadRequest) -> None:
        try:
            result = await self._worker(request.url, request.priority)
        except Exception as e:
            logger.error(f"Load worker failed for {request.url}: {e}")
            result = False
        finally:
            self._active -= 1

        if not request.future.done():
            request.future.set_result(result)

        self._drain()

    async def join(self) -> None:
        """Wait until the queue is empty and no load is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
