"""Logging helpers for limiter and scheduler events.

pacer logs event names (``debounce.fired``, ``throttle.dropped``,
``scheduler.unhandled_error``) with structured ``extra`` fields. This module
provides:
- a correlation id carried in a contextvar, so a deferred action logs with
  the id of the call that triggered it
- redaction of forwarded call payloads
- a JSON formatter that puts the event fields first
- ``configure_logging`` to attach one handler to the ``pacer`` logger
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Mapping

from pacer.core.config import LogSettings, settings

PACER_LOGGER = "pacer"

PAYLOAD_KEYS: frozenset[str] = frozenset({"call_args", "call_kwargs"})

# Fields emitted by limiters and schedulers, in output order.
EVENT_FIELDS: tuple[str, ...] = (
    "action",
    "delay_ms",
    "cooldown_ms",
    "backend",
    "error_context",
    "error_type",
    "now_ms",
)

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_correlation_id_var: ContextVar[str | None] = ContextVar("pacer_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Tag the current context (and callbacks scheduled from it) with an id."""

    _correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


def _scrub(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            key: "[REDACTED]" if key in PAYLOAD_KEYS else _scrub(item)
            for key, item in value.items()
        }
    return value


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the context's correlation id unless one is set."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        if getattr(record, "correlation_id", None) is None:
            record.correlation_id = get_correlation_id()
        return True


class CallPayloadFilter(logging.Filter):
    """Replace forwarded call payloads on a record with a marker."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        for key, value in _extras(record).items():
            setattr(record, key, "[REDACTED]" if key in PAYLOAD_KEYS else _scrub(value))
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record: event, limiter fields, then other extras."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        extras = _extras(record)
        correlation_id = extras.pop("correlation_id", None) or get_correlation_id()

        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        if correlation_id:
            data["correlation_id"] = correlation_id
        for name in EVENT_FIELDS:
            if name in extras:
                data[name] = extras.pop(name)
        for key, value in extras.items():
            data[key] = "[REDACTED]" if key in PAYLOAD_KEYS else _scrub(value)

        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/pacer.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> logging.Handler:
    """Attach a handler for pacer's events to the ``pacer`` logger.

    Only the handler installed by a previous call is replaced; the root
    logger and other handlers are left alone.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.

    Returns:
        The installed handler.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(CorrelationIdFilter())
    handler.addFilter(CallPayloadFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())
    handler._pacer_handler = True  # type: ignore[attr-defined]

    logger = logging.getLogger(PACER_LOGGER)
    for existing in list(logger.handlers):
        if getattr(existing, "_pacer_handler", False):
            logger.removeHandler(existing)
            existing.close()
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))
    return handler
