"""
Structured logging for the notifier.

Every module logs through ``get_logger(__name__)`` and emits dotted event
names with keyword fields, so one Notify pass can be followed end to end
in a log aggregator:

    logger.warning("notify.dispatch_failed", rule="ops/failures", status="Failed")

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="schednotify")
            │
            ▼
        structlog processor chain:
          1. filter_by_level
          2. TimeStamper (iso, UTC)
          3. merge_contextvars      ← bind_context() / LogContext
          4. add_log_level, add_logger_name
          5. credential masking     (token, webhook_url, authorization)
          6. service.name
          7. ECS field names (json only)
          8. JSONRenderer | ConsoleRenderer

Tags:
    logging, structlog, observability, json-logging
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_MASKED_KEYS = frozenset({"token", "webhook_url", "authorization", "secret"})

# structlog name → ECS name
_ECS_FIELDS = {
    "timestamp": "@timestamp",
    "level": "log.level",
    "logger": "log.logger",
}


class _ServiceName:
    """Stamp ``service.name`` on every event."""

    def __init__(self, service: str):
        self._service = service

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", self._service)
        return event_dict


def _mask_credentials(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key in _MASKED_KEYS.intersection(event_dict):
        event_dict[key] = "[REDACTED]"
    return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for source, target in _ECS_FIELDS.items():
        if source in event_dict:
            event_dict[target] = event_dict.pop(source)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "schednotify",
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        json_format: JSON lines if True, colored console if False,
            decided by whether stderr is a TTY if None
        service: Value of the ``service.name`` field
    """
    if json_format is None:
        json_format = not sys.stderr.isatty()

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _mask_credentials,
        _ServiceName(service),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            _ecs_field_names,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level.upper(), force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every log line of the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a ``with`` block.

    Values bound before entering are restored on exit, so passes can nest.

    Example:
        with LogContext(namespace="ops", owner="CronJob/nightly"):
            logger.info("notify.completed")
    """

    def __init__(self, **fields: Any):
        self._fields = fields
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._fields)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
