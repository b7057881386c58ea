"""Priority-ordered, concurrency-capped execution of async work.

All bookkeeping (admit, complete, clear) happens synchronously on the event
loop thread with no await in between, so counters never race.
"""

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from loguru import logger

from chunknote.config import DEFAULT_MAX_CONCURRENT_REQUESTS
from chunknote.exceptions import QueueClearedError

Work = Callable[[], Awaitable[Any]]


@dataclass(order=True)
class QueueTask:
    """A pending unit of work.

    Ordered by (-priority, sequence): higher priority first, FIFO within a
    priority.
    """

    sort_key: tuple[int, int]
    work: Work = field(compare=False)
    future: asyncio.Future = field(compare=False)

    @property
    def priority(self) -> int:
        return -self.sort_key[0]


class RequestQueue:
    """Runs submitted coroutines with at most `concurrency_limit` in flight.

    Example:
        queue = RequestQueue(concurrency_limit=3)
        result = await queue.enqueue(lambda: client.generate(prompt), priority=1)
    """

    def __init__(self, concurrency_limit: int = DEFAULT_MAX_CONCURRENT_REQUESTS):
        if concurrency_limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {concurrency_limit}")
        self._concurrency_limit = concurrency_limit
        self._pending: list[QueueTask] = []
        self._sequence = itertools.count()
        self._active = 0
        self._running: set[asyncio.Task] = set()

    @property
    def concurrency_limit(self) -> int:
        return self._concurrency_limit

    @property
    def queue_length(self) -> int:
        """Number of tasks waiting to start."""
        return len(self._pending)

    @property
    def active_count(self) -> int:
        """Number of tasks currently executing."""
        return self._active

    def enqueue(self, work: Work, priority: int = 0) -> "asyncio.Future[Any]":
        """Submit work for execution.

        Must be called from a running event loop.

        Args:
            work: Zero-argument coroutine function.
            priority: Higher runs sooner; equal priorities run in submission order.

        Returns:
            A future resolving to the work's result, or raising its error.
            Pending work dropped by clear() raises QueueClearedError.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        task = QueueTask((-priority, next(self._sequence)), work, future)
        heapq.heappush(self._pending, task)
        self._drain()
        return future

    def set_concurrency_limit(self, limit: int) -> None:
        """Change the ceiling for subsequently admitted tasks.

        Raises:
            ValueError: If limit is less than 1.
        """
        if limit < 1:
            raise ValueError(f"Concurrency limit must be at least 1, got {limit}")
        self._concurrency_limit = limit
        self._drain()

    def clear(self) -> int:
        """Reject every task that has not started yet.

        In-flight tasks are unaffected.

        Returns:
            Number of tasks rejected.
        """
        dropped = self._pending
        self._pending = []
        for task in dropped:
            if not task.future.done():
                task.future.set_exception(QueueClearedError("Queue cleared"))
        if dropped:
            logger.debug(f"Cleared {len(dropped)} pending task(s)")
        return len(dropped)

    def _drain(self) -> None:
        while self._pending and self._active < self._concurrency_limit:
            task = heapq.heappop(self._pending)
            if task.future.cancelled():
                continue
            self._active += 1
            runner = asyncio.ensure_future(self._execute(task))
            self._running.add(runner)
            runner.add_done_callback(self._running.discard)

    async def _execute(self, task: QueueTask) -> None:
        try:
            result = await task.work()
        except asyncio.CancelledError:
            task.future.cancel()
            raise
        except Exception as e:
            if not task.future.done():
                task.future.set_exception(e)
        else:
            if not task.future.done():
                task.future.set_result(result)
        finally:
            self._active -= 1
            self._drain()

