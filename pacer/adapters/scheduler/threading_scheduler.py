"""Thread-based scheduler backed by ``threading.Timer``.

Notes:
- Each armed callback owns one timer thread; suited to low event rates in
  code that has no event loop.
- Callbacks run on timer threads, so limiters guard their state with a lock.
- Action failures surface through ``threading.excepthook``.
"""

from __future__ import annotations

import asyncio
import contextvars
import threading
from collections.abc import Callable, Coroutine
from typing import Any

from pacer.adapters.scheduler.base import AbstractScheduler, TimerHandle


class ThreadingScheduler(AbstractScheduler):
    """Schedule deferred callbacks on ``threading.Timer`` threads."""

    def __init__(self, *, daemon: bool = True) -> None:
        """Initialize the threading scheduler.

        Args:
            daemon: Whether timer and coroutine threads are daemon threads.
        """
        self._daemon = daemon

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"ThreadingScheduler(daemon={self._daemon})"

    def call_later(self, delay_ms: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ctx = contextvars.copy_context()
        timer = threading.Timer(delay_ms / 1000.0, ctx.run, args=(callback, *args))
        timer.daemon = self._daemon
        timer.start()
        return timer

    def report_exception(self, exc: BaseException, *, context: str) -> None:
        threading.excepthook(
            threading.ExceptHookArgs(
                [type(exc), exc, exc.__traceback__, threading.current_thread()]
            )
        )

    def run_coroutine(self, coro: Coroutine[Any, Any, Any]) -> None:
        ctx = contextvars.copy_context()
        worker = threading.Thread(
            target=ctx.run,
            args=(asyncio.run, coro),
            name="pacer-coroutine",
            daemon=self._daemon,
        )
        worker.start()
