"""Priority request queue with concurrency and start-rate limits.

Outbound fetches are funnelled through a queue so that the upstream site
sees at most ``concurrency`` simultaneous requests and at most
``interval_cap`` new requests per ``interval`` seconds. Tasks with a higher
priority start first; tasks of equal priority start in submission order.

The queue lives on a single event loop. All bookkeeping happens in plain
callbacks on that loop, so no locks are involved.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from otakuproxy.config.models.queue_settings import QueueSettings
from otakuproxy.shared.constants import QueueConfig
from otakuproxy.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    create_timeout_error,
)
from otakuproxy.shared.logging import log_operation_success

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskState(str, Enum):
    """Lifecycle of a queued task."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    CLEARED = "cleared"


@dataclass
class QueueTask:
    """A submitted operation and the future its caller awaits."""

    operation: Callable[[], Awaitable[Any]]
    priority: int
    enqueued_at: float
    future: asyncio.Future[Any]
    state: TaskState = field(default=TaskState.PENDING)


class RequestQueue:
    """Bounded-concurrency, rate-limited priority queue of async operations.

    Args:
        config: Concurrency, rate window and per-task timeout
        name: Queue name used in logs and errors
        clock: Monotonic clock in seconds, injectable for tests

    Example:
        >>> queue = RequestQueue(QueueSettings(concurrency=2))
        >>> html = await queue.add(lambda: scraper.fetch("/anime/one-piece/"))
    """

    def __init__(
        self,
        config: QueueSettings | None = None,
        name: str = QueueConfig.SCRAPER_QUEUE_NAME,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or QueueSettings()
        self.name = name
        self._clock = clock

        self._buckets: dict[int, deque[QueueTask]] = {}
        self._pending_count = 0
        self._active_count = 0
        self._paused = False

        # Fixed rate window
        self._window_start: float | None = None
        self._window_starts = 0
        self._resume_handle: asyncio.TimerHandle | None = None

        self._idle_waiters: list[asyncio.Future[None]] = []
        self._runners: set[asyncio.Task[None]] = set()

        logger.debug(
            "Request queue '%s' created (concurrency=%d, interval=%.3fs, cap=%d, timeout=%s)",
            name,
            self.config.concurrency,
            self.config.interval,
            self.config.interval_cap,
            self.config.task_timeout,
        )

    @property
    def size(self) -> int:
        """Number of tasks waiting to start."""
        return self._pending_count

    @property
    def pending(self) -> int:
        """Number of tasks currently running."""
        return self._active_count

    @property
    def is_paused(self) -> bool:
        return self._paused

    def get_stats(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "pending": self.pending,
            "is_paused": self.is_paused,
        }

    def add(
        self,
        operation: Callable[[], Awaitable[T]],
        priority: int = 0,
    ) -> asyncio.Future[T]:
        """Enqueue an operation.

        The task is queued before this returns; awaiting the returned
        future yields the operation's result or raises its failure.

        Args:
            operation: Zero-argument callable returning an awaitable
            priority: Higher values start first

        Returns:
            Future resolved with the task outcome
        """
        loop = asyncio.get_running_loop()
        task = QueueTask(
            operation=operation,
            priority=priority,
            enqueued_at=self._clock(),
            future=loop.create_future(),
        )
        self._buckets.setdefault(priority, deque()).append(task)
        self._pending_count += 1
        self._dispatch()
        return task.future

    async def add_all(
        self,
        operations: Iterable[Callable[[], Awaitable[T]]],
        priority: int = 0,
    ) -> list[T]:
        """Enqueue several operations and wait for all of them.

        Returns:
            Results in the order of ``operations``
        """
        futures = [self.add(operation, priority) for operation in operations]
        return list(await asyncio.gather(*futures))

    def pause(self) -> None:
        """Stop starting new tasks; running tasks continue."""
        self._paused = True
        logger.debug("Request queue '%s' paused", self.name)

    def start(self) -> None:
        """Resume starting tasks after pause()."""
        if not self._paused:
            return
        self._paused = False
        logger.debug("Request queue '%s' resumed", self.name)
        self._dispatch()

    def clear(self) -> int:
        """Drop every pending task; running tasks are unaffected.

        Dropped tasks fail with SERVICE_UNAVAILABLE so no caller waits forever.

        Returns:
            Number of tasks dropped
        """
        dropped = 0
        for bucket in self._buckets.values():
            while bucket:
                task = bucket.popleft()
                task.state = TaskState.CLEARED
                if not task.future.done():
                    task.future.set_exception(
                        ApplicationError(
                            code=ErrorCode.SERVICE_UNAVAILABLE,
                            message=f"Request queue '{self.name}' was cleared",
                            context=ErrorContext(
                                operation="queue_clear",
                                additional_data={"queue": self.name},
                            ),
                        )
                    )
                dropped += 1
        self._buckets.clear()
        self._pending_count = 0
        if dropped:
            logger.info("Request queue '%s' cleared %d pending tasks", self.name, dropped)
        self._notify_if_idle()
        return dropped

    async def on_idle(self) -> None:
        """Wait until nothing is pending and nothing is running."""
        if self._is_idle():
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._idle_waiters.append(waiter)
        await waiter

    def _is_idle(self) -> bool:
        return self._pending_count == 0 and self._active_count == 0

    def _notify_if_idle(self) -> None:
        if not self._is_idle():
            return
        waiters, self._idle_waiters = self._idle_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _pop_next(self) -> QueueTask:
        priority = max(p for p, bucket in self._buckets.items() if bucket)
        bucket = self._buckets[priority]
        task = bucket.popleft()
        if not bucket:
            del self._buckets[priority]
        self._pending_count -= 1
        return task

    def _push_front(self, task: QueueTask) -> None:
        self._buckets.setdefault(task.priority, deque()).appendleft(task)
        self._pending_count += 1

    def _take_rate_slot(self) -> bool:
        """Count one start against the current window, if it has room."""
        now = self._clock()
        if self._window_start is None or now - self._window_start >= self.config.interval:
            self._window_start = now
            self._window_starts = 0
        if self._window_starts < self.config.interval_cap:
            self._window_starts += 1
            return True
        return False

    def _schedule_resume(self) -> None:
        if self._resume_handle is not None or self._window_start is None:
            return
        delay = max(0.0, self._window_start + self.config.interval - self._clock())
        self._resume_handle = asyncio.get_running_loop().call_later(delay, self._on_window_end)

    def _on_window_end(self) -> None:
        self._resume_handle = None
        self._dispatch()

    def _dispatch(self) -> None:
        while (
            not self._paused
            and self._pending_count > 0
            and self._active_count < self.config.concurrency
        ):
            task = self._pop_next()
            if task.future.done():
                # Caller gave up before the task started
                task.state = TaskState.CLEARED
                continue
            if not self._take_rate_slot():
                self._push_front(task)
                self._schedule_resume()
                return
            self._start(task)
        self._notify_if_idle()

    def _start(self, task: QueueTask) -> None:
        task.state = TaskState.ACTIVE
        self._active_count += 1
        runner = asyncio.get_running_loop().create_task(self._run(task))
        self._runners.add(runner)
        runner.add_done_callback(self._runners.discard)

    async def _run(self, task: QueueTask) -> None:
        started = self._clock()
        timeout = self.config.task_timeout
        try:
            if timeout is None:
                result = await task.operation()
            else:
                result = await asyncio.wait_for(task.operation(), timeout=timeout)
        except asyncio.TimeoutError as e:
            task.state = TaskState.FAILED
            self._settle(
                task,
                error=create_timeout_error(timeout or 0.0, f"queue_{self.name}_task", e),
            )
        except asyncio.CancelledError:
            task.state = TaskState.FAILED
            if not task.future.done():
                task.future.cancel()
            raise
        except Exception as e:
            task.state = TaskState.FAILED
            self._settle(task, error=e)
        else:
            task.state = TaskState.COMPLETED
            self._settle(task, result=result)
            log_operation_success(
                logger,
                operation=f"queue_{self.name}_task",
                duration_ms=(self._clock() - started) * 1000,
                context={
                    "priority": task.priority,
                    "waited_ms": (started - task.enqueued_at) * 1000,
                },
            )
        finally:
            self._active_count -= 1
            self._dispatch()

    @staticmethod
    def _settle(
        task: QueueTask,
        result: Any = None,
        error: BaseException | None = None,
    ) -> None:
        if task.future.done():
            return
        if error is not None:
            task.future.set_exception(error)
        else:
            task.future.set_result(result)
