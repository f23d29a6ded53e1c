"""
Structured logging for the payroll kernel (``payroll_kernel.logging_config``).

Every record logged under the ``payroll_kernel`` namespace is written as a
single JSON object: the envelope (``ts``, ``level``, ``logger``,
``message``), then the company / employee / actor fields bound on
``LogContext``, then the record's ``extra`` fields.

Salary amounts appear as decimal strings and identifiers as canonical UUID
text, so a log line can be compared against a stored salary config
without float noise.

Usage::

    logger = get_logger("modules.salary.service")
    with LogContext.bind(company_id=company_id, employee_id=employee_id):
        logger.info("salary_structure_started", extra={"mode": "CTC"})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import contextlib
import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "payroll_kernel"

# Request-scoped fields, in the order they appear in a log line.
_CONTEXT_FIELDS = ("correlation_id", "company_id", "employee_id", "actor_id")


class LogContext:
    """
    Request-scoped fields added to every record logged in the current context.

    Values are kept in ``ContextVar`` instances, so threads and asyncio tasks
    each see their own binding.  All values are stored as strings.
    """

    _vars: dict[str, ContextVar[str | None]] = {
        name: ContextVar(f"payroll_log_{name}", default=None)
        for name in _CONTEXT_FIELDS
    }

    @classmethod
    def _var(cls, name: str) -> ContextVar[str | None]:
        try:
            return cls._vars[name]
        except KeyError:
            raise TypeError(f"Unknown log context field: {name}") from None

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set fields for the rest of the context; None values are skipped."""
        for name, value in fields.items():
            if value is not None:
                cls._var(name).set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        values = {name: var.get() for name, var in cls._vars.items()}
        return {name: value for name, value in values.items() if value is not None}

    @classmethod
    def clear(cls) -> None:
        for var in cls._vars.values():
            var.set(None)

    @classmethod
    @contextlib.contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """
        Bind fields for the duration of a ``with`` block.

        UUIDs and other values are stringified.  On exit every field is
        restored to what it was before, including nested bindings.
        """
        bound = [
            (cls._var(name), str(value))
            for name, value in fields.items()
            if value is not None
        ]
        tokens = [(var, var.set(value)) for var, value in bound]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    log_fields = getattr(exc, "log_fields", None)
    if callable(log_fields):
        fields.update({f"exc_{key}": value for key, value in log_fields().items()})
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each record as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger ``payroll_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``payroll_kernel`` logger.

    Only the first call after import (or after ``reset_logging``) has any
    effect.  ``level`` may be a number or a level name such as ``"debug"``.
    """
    global _configured
    resolved = _resolve_level(level)
    with _lock:
        if _configured:
            return
        _configured = True

        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())

        root = logging.getLogger(_LOGGER_PREFIX)
        root.setLevel(resolved)
        root.propagate = False
        root.addHandler(target)


def reset_logging() -> None:
    """Remove the payroll handlers so ``configure_logging`` runs again. Tests only."""
    global _configured
    with _lock:
        _configured = False
        root = logging.getLogger(_LOGGER_PREFIX)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
