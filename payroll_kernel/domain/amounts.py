"""
Amounts -- Decimal coercion and the single sanctioned rounding function.

Responsibility:
    Convert caller-supplied numbers (int, str, float, Decimal, None) into
    ``Decimal`` and round monetary values consistently.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by payroll_engines and payroll_modules alike.

Invariants enforced:
    - Floats never enter arithmetic: they are converted through ``str()`` so
      ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.
    - ``round_money`` is the only place monetary values are quantized.

Failure modes:
    - ValueError on values that cannot be parsed as a number (including
      NaN and infinities).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
HUNDRED = Decimal("100")

DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: Any, default: Decimal | None = ZERO) -> Decimal:
    """
    Coerce a numeric value to ``Decimal``.

    Preconditions:
        ``value`` is None, bool-free numeric, a numeric string, or Decimal.
    Postconditions:
        Returns a finite Decimal. ``None`` yields ``default``.
    Raises:
        ValueError: non-numeric or non-finite input, or ``None`` when
            ``default`` is None.
    """
    if value is None:
        if default is None:
            raise ValueError("Amount is required")
        return default
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = 2,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to ``decimal_places``.

    All other code MUST delegate rounding here so every row of a salary
    breakdown is rounded the same way before aggregation.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return value.quantize(quantum, rounding=rounding)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """Return ``amount * percentage / 100`` at full precision."""
    return amount * percentage / HUNDRED
