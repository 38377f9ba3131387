"""Rate-limiting wrappers - debounce and throttle over a pluggable scheduler."""

from pacer.limiters.base import LimiterState
from pacer.limiters.debounce import Debouncer, debounce, debounced
from pacer.limiters.throttle import Throttler, throttle, throttled

__all__ = [
    "Debouncer",
    "LimiterState",
    "Throttler",
    "debounce",
    "debounced",
    "throttle",
    "throttled",
]
