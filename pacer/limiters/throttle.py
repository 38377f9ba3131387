"""Leading-edge throttle.

A call fires the action immediately unless the wrapper is cooling down;
calls during the cooldown are dropped, never queued. Nothing fires when the
window ends.

The window is half-open: ``[fired_at, fired_at + cooldown_ms)``. The reset
is a timer due at ``fired_at + cooldown_ms``; once the scheduler has run it
the next call fires.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pacer.adapters.scheduler.base import AbstractScheduler, TimerHandle
from pacer.limiters.base import BaseLimiter, LimiterState, validate_interval

logger = logging.getLogger(__name__)


class Throttler(BaseLimiter):
    """Callable that runs its action at most once per ``cooldown_ms`` window.

    The cooldown starts before the action runs, so a failing action still
    opens a window. Action failures never reach the caller; they are handed
    to the scheduler's error path.
    """

    def __init__(
        self,
        action: Callable[..., Any],
        cooldown_ms: float,
        *,
        scheduler: AbstractScheduler | None = None,
    ) -> None:
        self._cooldown_ms = validate_interval(cooldown_ms, "cooldown_ms")
        super().__init__(action, scheduler)
        self._reset_handle: TimerHandle | None = None
        self._dropped = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"Throttler(action={self._log_fields()['action']}, "
            f"cooldown_ms={self._cooldown_ms}, state={self.state.value})"
        )

    def _bind(self, action: Callable[..., Any]) -> Throttler:
        return Throttler(action, self._cooldown_ms, scheduler=self._scheduler)

    @property
    def cooldown_ms(self) -> float:
        return self._cooldown_ms

    @property
    def state(self) -> LimiterState:
        with self._lock:
            return LimiterState.COOLDOWN if self._reset_handle is not None else LimiterState.IDLE

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            self._calls += 1
            if self._reset_handle is not None:
                self._dropped += 1
                logger.debug("throttle.dropped", extra=self._log_fields())
                return

            self._reset_handle = self._scheduler.call_later(self._cooldown_ms, self._end_cooldown)
            self._fired += 1

        logger.debug(
            "throttle.fired",
            extra={**self._log_fields(), "cooldown_ms": self._cooldown_ms},
        )
        self._scheduler.dispatch(self._action, args, kwargs)

    def _end_cooldown(self) -> None:
        with self._lock:
            self._reset_handle = None
        logger.debug("throttle.cooldown_reset", extra=self._log_fields())

    def stats(self) -> dict[str, int | float | str]:
        """Return call counters without exposing forwarded arguments."""

        with self._lock:
            return {
                "cooldown_ms": self._cooldown_ms,
                "calls": self._calls,
                "fired": self._fired,
                "dropped": self._dropped,
                "state": self.state.value,
            }


def throttle(
    action: Callable[..., Any],
    cooldown_ms: float,
    *,
    scheduler: AbstractScheduler | None = None,
) -> Throttler:
    """Wrap ``action`` so it fires on the first call of each cooldown window.

    Usage:
        on_scroll = throttle(report_position, 500)
        container.on_scroll(on_scroll)
    """

    return Throttler(action, cooldown_ms, scheduler=scheduler)


def throttled(
    cooldown_ms: float,
    *,
    scheduler: AbstractScheduler | None = None,
) -> Callable[[Callable[..., Any]], Throttler]:
    """Decorator form of :func:`throttle`."""

    validate_interval(cooldown_ms, "cooldown_ms")

    def decorator(action: Callable[..., Any]) -> Throttler:
        return Throttler(action, cooldown_ms, scheduler=scheduler)

    return decorator
