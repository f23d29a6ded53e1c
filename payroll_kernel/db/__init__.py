"""Database layer - engine, base classes and column types."""

from payroll_kernel.db.base import UUID, Base, CompanyScopedMixin, TrackedBase, UUIDString
from payroll_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from payroll_kernel.db.types import Amount, Document, LongText, Name, Percentage, ShortCode

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "CompanyScopedMixin",
    "UUIDString",
    "UUID",
    "Amount",
    "Percentage",
    "ShortCode",
    "Name",
    "LongText",
    "Document",
]
