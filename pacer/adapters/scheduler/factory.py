"""Factory for creating scheduler instances."""

from pacer.adapters.scheduler.asyncio_scheduler import AsyncioScheduler
from pacer.adapters.scheduler.base import AbstractScheduler
from pacer.adapters.scheduler.manual import ManualScheduler
from pacer.adapters.scheduler.threading_scheduler import ThreadingScheduler
from pacer.core.config import settings
from pacer.core.errors import ValidationAppError


def create_scheduler(backend: str | None = None) -> AbstractScheduler:
    """Factory function to instantiate a scheduler backend.

    Reads the backend name from pacer.core.config.settings unless one is
    passed explicitly.

    Args:
        backend: Optional backend name overriding configuration.

    Returns:
        AbstractScheduler: New scheduler instance.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    name = (backend or settings.scheduler.backend).strip().lower()

    if name == "asyncio":
        # Wrappers called from plain synchronous code run on timer threads instead.
        return AsyncioScheduler(fallback=ThreadingScheduler())

    if name in ("thread", "threading"):
        return ThreadingScheduler()

    if name == "manual":
        return ManualScheduler()

    raise ValidationAppError(
        code="scheduler_unknown_backend",
        message=(
            f"Unknown scheduler backend: '{name}'. Supported backends: asyncio, thread, manual"
        ),
        details={"backend": name},
    )
