"""
Pure domain layer.

Helpers with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Safe to import from payroll_engines.
"""

from payroll_kernel.domain.amounts import (
    HUNDRED,
    ZERO,
    percent_of,
    round_money,
    to_decimal,
)

__all__ = [
    "HUNDRED",
    "ZERO",
    "percent_of",
    "round_money",
    "to_decimal",
]
