"""Shared pieces of the debounce and throttle wrappers.

Each wrapper owns its state exclusively: nothing here is module-level or
shared between instances.
"""

from __future__ import annotations

import enum
import functools
import math
import numbers
import threading
import types
from collections.abc import Callable
from typing import Any

from pacer.adapters.scheduler.base import AbstractScheduler, describe_action
from pacer.adapters.scheduler.factory import create_scheduler
from pacer.core.errors import InvalidArgumentError


class LimiterState(str, enum.Enum):
    """Observable state of a wrapped callable."""

    IDLE = "idle"
    PENDING = "pending"
    COOLDOWN = "cooldown"


def validate_interval(value: Any, parameter: str) -> float:
    """Validate a delay/cooldown in milliseconds.

    Args:
        value: Candidate interval.
        parameter: Parameter name used in the error.

    Returns:
        The interval as a float.

    Raises:
        InvalidArgumentError: If value is not a finite, non-negative real number.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgumentError(
            code="invalid_delay",
            message=f"{parameter} must be a number of milliseconds, got {type(value).__name__}",
            details={"parameter": parameter, "actual_value": repr(value)},
        )

    interval = float(value)
    if math.isnan(interval) or math.isinf(interval) or interval < 0:
        raise InvalidArgumentError(
            code="invalid_delay",
            message=f"{parameter} must be a finite value >= 0, got {value!r}",
            details={"parameter": parameter, "actual_value": repr(value)},
        )
    return interval


def validate_action(action: Any) -> Callable[..., Any]:
    """Ensure the wrapped action is callable."""

    if not callable(action):
        raise InvalidArgumentError(
            code="invalid_action",
            message=f"action must be callable, got {type(action).__name__}",
            details={"parameter": "action", "actual_value": repr(action)},
        )
    return action


class BaseLimiter:
    """Callable wrapper around an action with its own scheduler and lock.

    The wrapper copies the action's name and docstring, so it can stand in
    for the action wherever an event handler is registered.

    Used as a method decorator, each instance gets its own wrapper bound to
    it, created on first access and cached in the instance's ``__dict__``.
    """

    def __init__(
        self,
        action: Callable[..., Any],
        scheduler: AbstractScheduler | None = None,
    ) -> None:
        self._action = validate_action(action)
        functools.update_wrapper(self, action, updated=())
        self._scheduler = scheduler if scheduler is not None else create_scheduler()
        self._lock = threading.RLock()
        self._calls = 0
        self._fired = 0
        self._attr_name: str | None = getattr(action, "__name__", None)

    def __set_name__(self, owner: type, name: str) -> None:
        self._attr_name = name

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        try:
            cache = instance.__dict__
        except AttributeError:
            raise TypeError(
                f"{type(instance).__name__} has no __dict__ to hold a per-instance limiter"
            ) from None
        if self._attr_name is None:
            raise TypeError("limiter used as a method needs a class attribute name")

        with self._lock:
            bound = cache.get(self._attr_name)
            if bound is None:
                bound = self._bind(types.MethodType(self._action, instance))
                cache[self._attr_name] = bound
        return bound

    def _bind(self, action: Callable[..., Any]) -> "BaseLimiter":
        """Build a fresh limiter with the same settings around a bound method."""
        raise NotImplementedError

    @property
    def action(self) -> Callable[..., Any]:
        return self._action

    @property
    def scheduler(self) -> AbstractScheduler:
        return self._scheduler

    @property
    def state(self) -> LimiterState:
        raise NotImplementedError

    def _log_fields(self) -> dict[str, Any]:
        return {"action": describe_action(self._action)}

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        raise NotImplementedError
