"""Scheduler interfaces.

Limiters depend on this abstraction (not a concrete timer facility) so the
same debounce/throttle logic runs on an asyncio loop, on timer threads, or
on a virtual clock in tests.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import Any, Protocol


class TimerHandle(Protocol):
    """Opaque handle returned by ``call_later`` and consumed by ``cancel``."""

    def cancel(self) -> None:
        ...


class AbstractScheduler(ABC):
    """Interface for deferred-execution backends."""

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run ``callback(*args)`` after ``delay_ms`` milliseconds.

        The callback never runs synchronously, even for a zero delay. It runs
        in a copy of the context current at scheduling time. Exceptions it
        raises are left to the backend's own error path.

        Args:
            delay_ms: Non-negative delay in milliseconds.
            callback: Callable to run once the delay elapses.
            *args: Positional arguments for the callback.

        Returns:
            TimerHandle: Handle accepted by :meth:`cancel`.

        Raises:
            SchedulerError: If the backend cannot arm a timer right now.
        """
        raise NotImplementedError

    def cancel(self, handle: TimerHandle) -> None:
        """Cancel a scheduled callback. Cancelling a fired handle is a no-op."""

        handle.cancel()

    @abstractmethod
    def report_exception(self, exc: BaseException, *, context: str) -> None:
        """Hand an action failure to the backend's unhandled-error path.

        Args:
            exc: Exception raised by an action.
            context: Short description of where it was raised.
        """
        raise NotImplementedError

    @abstractmethod
    def run_coroutine(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Drive a coroutine returned by an ``async def`` action to completion."""
        raise NotImplementedError

    def dispatch(
        self,
        action: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        """Run ``action`` now without letting its failure reach the caller.

        Failures go to :meth:`report_exception`; coroutine results go to
        :meth:`run_coroutine`.
        """

        try:
            result = action(*args, **kwargs)
        except Exception as exc:
            self.report_exception(exc, context=f"action {describe_action(action)} failed")
            return
        if inspect.iscoroutine(result):
            self.run_coroutine(result)

    def invoke(
        self,
        action: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        """Run ``action`` from inside a deferred callback.

        Unlike :meth:`dispatch`, exceptions propagate to whatever runs the
        callback. Coroutine results still go to :meth:`run_coroutine`.
        """

        result = action(*args, **kwargs)
        if inspect.iscoroutine(result):
            self.run_coroutine(result)


def describe_action(action: Callable[..., Any]) -> str:
    """Return a log-friendly name for an action without touching its arguments."""

    return getattr(action, "__qualname__", None) or repr(action)
