"""Scheduler adapters - deferred execution behind one interface."""

from pacer.adapters.scheduler.asyncio_scheduler import AsyncioScheduler
from pacer.adapters.scheduler.base import AbstractScheduler, TimerHandle
from pacer.adapters.scheduler.factory import create_scheduler
from pacer.adapters.scheduler.manual import ManualScheduler
from pacer.adapters.scheduler.threading_scheduler import ThreadingScheduler

__all__ = [
    "AbstractScheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "ThreadingScheduler",
    "TimerHandle",
    "create_scheduler",
]
