"""Trailing-edge debounce.

Only the last call of a burst reaches the action, once ``delay_ms`` has
passed without another call. Earlier calls in the burst are discarded
together with their arguments.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pacer.adapters.scheduler.base import AbstractScheduler, TimerHandle
from pacer.limiters.base import BaseLimiter, LimiterState, validate_interval

logger = logging.getLogger(__name__)


class Debouncer(BaseLimiter):
    """Callable that defers its action until calls stop for ``delay_ms``.

    Each call cancels the pending deferred invocation, if any, and arms a new
    one carrying the latest arguments. At most one invocation is pending at
    any time. Calls return ``None``; the action's return value is dropped.

    Errors raised by the action are not caught here. They surface through the
    scheduler that runs the deferred callback.
    """

    def __init__(
        self,
        action: Callable[..., Any],
        delay_ms: float,
        *,
        scheduler: AbstractScheduler | None = None,
    ) -> None:
        """Initialize the debouncer.

        Args:
            action: Callable to invoke with the latest call's arguments.
            delay_ms: Quiet period in milliseconds; 0 defers to the next
                scheduler turn.
            scheduler: Deferred-execution backend. Defaults to the configured one.

        Raises:
            InvalidArgumentError: If action is not callable or delay_ms is invalid.
        """
        self._delay_ms = validate_interval(delay_ms, "delay_ms")
        super().__init__(action, scheduler)
        self._pending: TimerHandle | None = None
        # Bumped on every call; a timer that lost a cancel race sees a newer value.
        self._generation = 0
        self._superseded = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"Debouncer(action={self._log_fields()['action']}, delay_ms={self._delay_ms}, "
            f"state={self.state.value})"
        )

    def _bind(self, action: Callable[..., Any]) -> Debouncer:
        return Debouncer(action, self._delay_ms, scheduler=self._scheduler)

    @property
    def delay_ms(self) -> float:
        return self._delay_ms

    @property
    def state(self) -> LimiterState:
        with self._lock:
            return LimiterState.PENDING if self._pending is not None else LimiterState.IDLE

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            self._calls += 1
            generation = self._generation + 1
            # Arm first: if arming fails the earlier pending call stays intact.
            handle = self._scheduler.call_later(
                self._delay_ms, self._fire, generation, args, kwargs
            )
            if self._pending is not None:
                self._scheduler.cancel(self._pending)
                self._superseded += 1
                logger.debug("debounce.superseded", extra=self._log_fields())

            self._generation = generation
            self._pending = handle

        logger.debug(
            "debounce.scheduled",
            extra={**self._log_fields(), "delay_ms": self._delay_ms},
        )

    def _fire(self, generation: int, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        with self._lock:
            if generation != self._generation or self._pending is None:
                return
            self._pending = None
            self._fired += 1

        logger.debug("debounce.fired", extra=self._log_fields())
        self._scheduler.invoke(self._action, args, kwargs)

    def stats(self) -> dict[str, int | float | str]:
        """Return call counters without exposing forwarded arguments."""

        with self._lock:
            return {
                "delay_ms": self._delay_ms,
                "calls": self._calls,
                "fired": self._fired,
                "superseded": self._superseded,
                "state": self.state.value,
            }


def debounce(
    action: Callable[..., Any],
    delay_ms: float,
    *,
    scheduler: AbstractScheduler | None = None,
) -> Debouncer:
    """Wrap ``action`` so only the last call of each quiet window runs it.

    Usage:
        search = debounce(run_search, 300)
        search_input.on_change(search)
    """

    return Debouncer(action, delay_ms, scheduler=scheduler)


def debounced(
    delay_ms: float,
    *,
    scheduler: AbstractScheduler | None = None,
) -> Callable[[Callable[..., Any]], Debouncer]:
    """Decorator form of :func:`debounce`."""

    validate_interval(delay_ms, "delay_ms")

    def decorator(action: Callable[..., Any]) -> Debouncer:
        return Debouncer(action, delay_ms, scheduler=scheduler)

    return decorator
