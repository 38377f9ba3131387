"""Debounce and throttle wrappers for event-producing callers.

Typical usage:

    from pacer import debounce, throttle

    search = debounce(run_search, 300)
    on_scroll = throttle(report_position, 500)
"""

from pacer.adapters.scheduler import (
    AbstractScheduler,
    AsyncioScheduler,
    ManualScheduler,
    ThreadingScheduler,
    create_scheduler,
)
from pacer.core.errors import (
    AppError,
    InvalidArgumentError,
    SchedulerError,
    ValidationAppError,
)
from pacer.limiters import (
    Debouncer,
    LimiterState,
    Throttler,
    debounce,
    debounced,
    throttle,
    throttled,
)

__all__ = [
    "AbstractScheduler",
    "AppError",
    "AsyncioScheduler",
    "Debouncer",
    "InvalidArgumentError",
    "LimiterState",
    "ManualScheduler",
    "SchedulerError",
    "ThreadingScheduler",
    "Throttler",
    "ValidationAppError",
    "create_scheduler",
    "debounce",
    "debounced",
    "throttle",
    "throttled",
    "__version__",
]

__version__ = "0.1.0"
