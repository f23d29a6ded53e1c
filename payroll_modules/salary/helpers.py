"""
Salary Structure Helpers (``payroll_modules.salary.helpers``).

Responsibility
--------------
Pure request-validation and conversion helpers used by
``SalaryStructureService`` before the engine is invoked or a head is
stored.

Architecture position
---------------------
**Modules layer** -- pure helper functions.  No I/O, no session, no
clock, no database access.

Invariants enforced
-------------------
* The mode is one of CTC / GROSS, matched case-insensitively.
* The input amount is a finite, strictly positive Decimal.
* A percentage head may not be a percentage of its own short name.

Failure modes
-------------
* ``InvalidSalaryModeError`` / ``InvalidInputAmountError`` for rejected
  calculation requests.
* ``MissingHeadFieldError`` / ``SelfReferencingHeadError`` for rejected
  salary head payloads.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from payroll_engines.salary_structure.types import FieldType, SalaryMode
from payroll_kernel.domain.amounts import ZERO, to_decimal
from payroll_kernel.exceptions import (
    InvalidInputAmountError,
    InvalidSalaryModeError,
    MissingHeadFieldError,
    SelfReferencingHeadError,
)


def validate_salary_request(mode: Any, input_amount: Any) -> tuple[SalaryMode, Decimal]:
    """
    Validate a salary calculation request.

    Postconditions:
        Returns the parsed mode and a positive Decimal amount.
    Raises:
        InvalidSalaryModeError: ``mode`` is not CTC or GROSS.
        InvalidInputAmountError: ``input_amount`` is missing, not a number,
            or not greater than zero.
    """
    if isinstance(mode, SalaryMode):
        salary_mode = mode
    else:
        try:
            salary_mode = SalaryMode(str(mode or "").strip().upper())
        except ValueError:
            raise InvalidSalaryModeError(str(mode)) from None

    try:
        amount = to_decimal(input_amount, default=None)
    except ValueError:
        raise InvalidInputAmountError(str(input_amount)) from None
    if amount <= ZERO:
        raise InvalidInputAmountError(str(input_amount))

    return salary_mode, amount


def normalize_head_ids(head_ids: Iterable[Any] | None) -> list[str]:
    """Stringify and de-duplicate head ids, keeping first-seen order."""
    seen: dict[str, None] = {}
    for head_id in head_ids or ():
        seen.setdefault(str(head_id), None)
    return list(seen)


def parse_field_type(value: Any) -> FieldType:
    """
    Accept ``FieldType``, its value ("Earnings"), or the storage code
    ("EARNING").
    """
    if value is None or value == "":
        raise MissingHeadFieldError("field_type")
    if isinstance(value, FieldType):
        return value
    text = str(value).strip()
    for field_type in FieldType:
        if text in (field_type.value, field_type.storage_code, field_type.name):
            return field_type
    raise ValueError(f"Unknown field_type: {value!r}")


def validate_head_payload(
    name: str | None,
    field_type: Any,
    short_name: str | None,
    is_percentage: bool,
    percentage_of: str | None,
) -> FieldType:
    """
    Check a salary head create / update payload.

    Raises:
        MissingHeadFieldError: ``name`` or ``field_type`` not supplied.
        SelfReferencingHeadError: a percentage head names itself as base.
    """
    if not name or not str(name).strip():
        raise MissingHeadFieldError("name")
    parsed = parse_field_type(field_type)
    if is_percentage and short_name and percentage_of == short_name:
        raise SelfReferencingHeadError(short_name)
    return parsed
