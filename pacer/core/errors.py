"""Library-level exception types.

This module defines the errors raised by limiters and scheduler adapters,
enabling consistent handling and logging by callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional so each error only carries what is relevant to it.
    """

    parameter: str
    actual_value: str
    backend: str


@dataclass
class AppError(Exception):
    """Base error for library failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class InvalidArgumentError(ValidationAppError, ValueError):
    """Raised when a limiter is constructed with an unusable delay or action."""


class SchedulerError(AppError):
    """Raised when a scheduler cannot arm a deferred callback."""
