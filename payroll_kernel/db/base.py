"""
Declarative base and shared columns for payroll ORM models.

Every salary table is owned by one company and written by an actor, so the
columns for that live here:

- ``Base``: UUID primary key, Decimal -> Numeric(38, 9) (amounts are never
  floats), timezone-aware datetimes.
- ``TrackedBase``: created/updated timestamps and the actor ids behind
  them; ``touch(actor_id)`` records an edit.
- ``CompanyScopedMixin``: the indexed, non-null ``company_id`` every query
  filters on.

Nothing here may import payroll_engines, payroll_config or payroll_modules.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID stored as its 36-character canonical text.

    Bound values may be ``UUID`` objects or strings.  Strings that parse as a
    UUID are written in canonical lower-case form, so an id typed in upper
    case still matches the stored row.  Other strings are bound as given and
    simply match nothing.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, PyUUID):
            return str(value)
        try:
            return str(PyUUID(str(value)))
        except ValueError:
            return str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base recording who created and last changed a row, and when.

    ``created_by_id`` is required; ``updated_by_id`` stays None until the
    first ``touch``.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    created_by_id: Mapped[PyUUID] = mapped_column(UUIDString(), nullable=False)
    updated_by_id: Mapped[PyUUID | None] = mapped_column(UUIDString(), nullable=True)

    def touch(self, actor_id) -> None:
        """Record ``actor_id`` as the last editor; ``updated_at`` follows on flush."""
        self.updated_by_id = actor_id


class CompanyScopedMixin:
    """Adds the owning ``company_id``; indexed because every lookup filters on it."""

    company_id: Mapped[PyUUID] = mapped_column(UUIDString(), nullable=False, index=True)


UUID = PyUUID
