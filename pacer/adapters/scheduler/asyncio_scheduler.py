"""Event-loop scheduler backed by ``loop.call_later``.

Notes:
- Callbacks run on the loop thread; limiter state needs no extra locking.
- Action failures surface through the loop's exception handler, the same
  path asyncio uses for a failing ``call_later`` callback.
- Calls from a thread other than the loop's are marshalled onto the loop
  with ``call_soon_threadsafe``.
- With no loop to use, work goes to the ``fallback`` scheduler when one is
  configured; otherwise ``SchedulerError`` is raised.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextvars
from collections.abc import Callable, Coroutine
from typing import Any

from pacer.adapters.scheduler.base import AbstractScheduler, TimerHandle
from pacer.core.errors import SchedulerError


class _ThreadsafeTimer:
    """Handle for a timer armed on a loop running in another thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._inner: asyncio.TimerHandle | None = None
        self._cancelled = False

    def arm(self, delay_ms: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        # Runs on the loop thread.
        if not self._cancelled:
            self._inner = self._loop.call_later(delay_ms / 1000.0, callback, *args)

    def cancel(self) -> None:
        self._cancelled = True
        self._loop.call_soon_threadsafe(self._cancel_inner)

    def _cancel_inner(self) -> None:
        if self._inner is not None:
            self._inner.cancel()


class AsyncioScheduler(AbstractScheduler):
    """Schedule deferred callbacks on an asyncio event loop.

    When no loop is given, the running loop is resolved each time a timer is
    armed, so wrappers may be created at import time and used later from
    coroutines.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        *,
        fallback: AbstractScheduler | None = None,
    ) -> None:
        """Initialize the asyncio scheduler.

        Args:
            loop: Loop to schedule on. Defaults to the loop running at call time.
            fallback: Scheduler used when called with no loop available.
        """
        self._loop = loop
        self._fallback = fallback
        self._tasks: set[asyncio.Task[Any]] = set()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"AsyncioScheduler(loop={self._loop!r}, fallback={self._fallback!r}, "
            f"tasks={len(self._tasks)})"
        )

    def _resolve(self) -> tuple[asyncio.AbstractEventLoop | None, bool]:
        """Return the loop to use and whether the caller is off its thread."""

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if self._loop is None:
            return running, False
        return self._loop, self._loop.is_running() and running is not self._loop

    def _no_loop(self) -> SchedulerError:
        return SchedulerError(
            code="scheduler_no_running_loop",
            message="AsyncioScheduler needs a running event loop, an explicit loop or a fallback",
            details={"backend": "asyncio"},
        )

    def call_later(self, delay_ms: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        loop, foreign_thread = self._resolve()
        if loop is None:
            if self._fallback is None:
                raise self._no_loop()
            return self._fallback.call_later(delay_ms, callback, *args)

        if foreign_thread:
            timer = _ThreadsafeTimer(loop)
            loop.call_soon_threadsafe(
                timer.arm, delay_ms, callback, args, context=contextvars.copy_context()
            )
            return timer

        # call_later copies the current context, so contextvars follow the callback.
        return loop.call_later(delay_ms / 1000.0, callback, *args)

    def report_exception(self, exc: BaseException, *, context: str) -> None:
        loop, foreign_thread = self._resolve()
        if loop is None:
            if self._fallback is None:
                raise self._no_loop()
            self._fallback.report_exception(exc, context=context)
            return

        handler_context = {"message": context, "exception": exc}
        if foreign_thread:
            loop.call_soon_threadsafe(loop.call_exception_handler, handler_context)
        else:
            loop.call_exception_handler(handler_context)

    def run_coroutine(self, coro: Coroutine[Any, Any, Any]) -> None:
        loop, foreign_thread = self._resolve()
        if loop is None:
            if self._fallback is None:
                coro.close()
                raise self._no_loop()
            self._fallback.run_coroutine(coro)
            return

        if foreign_thread:
            future = asyncio.run_coroutine_threadsafe(coro, loop)
            future.add_done_callback(
                lambda done: self._on_future_done(loop, done)
            )
            return

        task = loop.create_task(coro)
        # Keep a strong reference until the task finishes.
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            task.get_loop().call_exception_handler(
                {
                    "message": "coroutine action failed",
                    "exception": exc,
                    "task": task,
                }
            )

    def _on_future_done(
        self,
        loop: asyncio.AbstractEventLoop,
        future: concurrent.futures.Future[Any],
    ) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            loop.call_soon_threadsafe(
                loop.call_exception_handler,
                {"message": "coroutine action failed", "exception": exc},
            )
