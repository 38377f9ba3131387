"""Virtual-clock scheduler advanced explicitly by the caller.

Used by tests and simulations to drive limiters deterministically: nothing
runs until ``advance()`` (or ``run_pending()``) moves the clock.

Failures raised by callbacks are logged and collected in
``unhandled_errors`` instead of escaping ``advance()``, mirroring how an
event loop reports a failing timer callback and keeps running.
"""

from __future__ import annotations

import asyncio
import contextvars
import heapq
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

from pacer.adapters.scheduler.base import AbstractScheduler, TimerHandle

logger = logging.getLogger(__name__)


@dataclass(order=True)
class _ManualTimer:
    due_ms: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: tuple[Any, ...] = field(compare=False)
    context: contextvars.Context = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(AbstractScheduler):
    """Scheduler whose clock only moves when told to.

    Attributes:
        unhandled_errors: Exceptions raised by callbacks or reported by limiters.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = float(start_ms)
        self._queue: list[_ManualTimer] = []
        self._seq = 0
        self._tasks: set[asyncio.Task[Any]] = set()
        self.unhandled_errors: list[BaseException] = []

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"ManualScheduler(now_ms={self._now_ms}, pending={self.pending_count}, "
            f"unhandled_errors={len(self.unhandled_errors)})"
        )

    @property
    def now_ms(self) -> float:
        """Current virtual time in milliseconds."""

        return self._now_ms

    @property
    def pending_count(self) -> int:
        """Number of armed, not yet fired, not cancelled callbacks."""

        return sum(1 for timer in self._queue if not timer.cancelled)

    def call_later(self, delay_ms: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        timer = _ManualTimer(
            due_ms=self._now_ms + delay_ms,
            seq=self._seq,
            callback=callback,
            args=args,
            context=contextvars.copy_context(),
        )
        self._seq += 1
        heapq.heappush(self._queue, timer)
        return timer

    def advance(self, ms: float) -> int:
        """Move the clock forward by ``ms`` and run every callback that falls due.

        Callbacks run in due order (ties in scheduling order), each with the
        clock set to its own due time. Callbacks armed while advancing also
        run if they fall due before the target time.

        Args:
            ms: Non-negative number of milliseconds to advance.

        Returns:
            Number of callbacks run.

        Raises:
            ValueError: If ms is negative.
        """
        if ms < 0:
            raise ValueError("ms must be >= 0")

        target = self._now_ms + ms
        ran = 0
        while self._queue and self._queue[0].due_ms <= target:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now_ms = timer.due_ms
            ran += 1
            try:
                timer.context.run(timer.callback, *timer.args)
            except Exception as exc:
                self.report_exception(exc, context="deferred callback failed")
        self._now_ms = target
        return ran

    def advance_to(self, when_ms: float) -> int:
        """Advance the clock to an absolute time."""

        return self.advance(when_ms - self._now_ms)

    def run_pending(self) -> int:
        """Run callbacks already due, including zero-delay ones, without moving time."""

        return self.advance(0)

    def report_exception(self, exc: BaseException, *, context: str) -> None:
        self.unhandled_errors.append(exc)
        logger.error(
            "scheduler.unhandled_error",
            exc_info=exc,
            extra={
                "backend": "manual",
                "error_context": context,
                "error_type": type(exc).__name__,
                "now_ms": self._now_ms,
            },
        )

    def run_coroutine(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Run a coroutine action.

        Without a running loop the coroutine runs to completion right away.
        Inside a running loop (an async test, say) it becomes a task on that
        loop and finishes once the test yields.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            try:
                asyncio.run(coro)
            except Exception as exc:
                self.report_exception(exc, context="coroutine action failed")
            return

        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.report_exception(exc, context="coroutine action failed")
