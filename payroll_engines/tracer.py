"""
payroll_engines.tracer -- PAYROLL_ENGINE_TRACE records for engine calls.

``@traced_engine`` wraps a pure engine entry point and logs one
``PAYROLL_ENGINE_TRACE`` record per call with:

    engine_name / engine_version   which engine produced the figures
    input_fingerprint              16 hex chars of SHA-256 over the chosen
                                   arguments, so two payslips computed from
                                   the same mode, amount and head selection
                                   can be matched in the logs
    duration_ms                    wall time of the call
    outcome                        "ok", or "error" with ``exc_type``

A ``summarize`` callable can add a few result figures (row count, CTC,
warning count) to the successful trace.

Arguments are bound against the wrapped function's signature, so the
fingerprint is the same whether a field is passed by keyword or position.
Decimal amounts are normalized ("50000.00" and "50000" fingerprint alike)
and sets are sorted, so head selection order does not matter.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_MESSAGE = "PAYROLL_ENGINE_TRACE"


def canonical_text(value: Any) -> str:
    """Order-independent text form of an engine argument."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Decimal):
        return str(value.normalize())
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return canonical_text(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        pairs = sorted((str(k), canonical_text(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (set, frozenset)):
        return "{" + ",".join(sorted(canonical_text(v) for v in value)) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(canonical_text(v) for v in value) + "]"
    return str(value)


def input_fingerprint(fields: tuple[str, ...], arguments: Mapping[str, Any]) -> str:
    """SHA-256 prefix over ``fields`` of ``arguments``; absent fields count as null."""
    text = "|".join(f"{name}={canonical_text(arguments.get(name))}" for name in fields)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    summarize: Callable[[Any], Mapping[str, Any]] | None = None,
) -> Callable:
    """
    Decorate an engine entry point so each call emits PAYROLL_ENGINE_TRACE.

    Args:
        engine_name: e.g. "salary_structure".
        engine_version: version string recorded with every trace.
        fingerprint_fields: argument names hashed into ``input_fingerprint``.
        summarize: maps the return value to extra trace fields.

    Exceptions from the engine are re-raised after an "error" trace.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                bound.apply_defaults()
                fingerprint = input_fingerprint(fingerprint_fields, bound.arguments)

            fields: dict[str, Any] = {
                "trace_type": TRACE_MESSAGE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "function": func.__qualname__,
                "input_fingerprint": fingerprint,
            }
            started = time.monotonic()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                fields["duration_ms"] = _elapsed_ms(started)
                fields["outcome"] = "error"
                fields["exc_type"] = type(exc).__name__
                logger.warning(TRACE_MESSAGE, extra=fields)
                raise

            fields["duration_ms"] = _elapsed_ms(started)
            fields["outcome"] = "ok"
            if summarize is not None:
                fields.update(summarize(result))
            logger.info(TRACE_MESSAGE, extra=fields)
            return result

        return wrapper

    return decorator


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)
