"""
Module: pif_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the surrogate key convention, the type annotation map for consistent column
    types, and the TimestampedBase mixin for row audit timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Integer surrogate keys: every table has an autoincrementing integer
      primary key.  Store tables are populated with set-based
      INSERT ... SELECT statements, so the key must be generated by the
      database rather than by a Python-side default evaluated once per
      statement.
    - Decimal precision: type_annotation_map maps Python Decimal to
      Numeric(18, 2), the precision of every cost amount in the system.
      NEVER use float for money.
    - Timestamps are timezone-aware.

Failure modes:
    - IntegrityError on natural-key unique constraint violations declared by
      the concrete models.

Audit relevance:
    TimestampedBase.created_at and updated_at record when a row was written
    and last rewritten.  Approved rows are rewritten in place on
    re-promotion, so updated_at moves while created_at keeps the first
    approval's insertion time.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID

from sqlalchemy import Date, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Contract:
        Transparently converts between Python UUID objects and their 36-character
        string representation.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Contract:
        Every ORM model in the system inherits from Base (or TimestampedBase).
        Base provides an integer surrogate primary key and a
        type_annotation_map that keeps column types consistent across the
        staging, inflight and approved stores.

    Guarantees:
        - id is a database-generated integer.
        - Decimal maps to Numeric(18, 2).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 2),
        datetime: DateTime(timezone=True),
        date: Date,
        PyUUID: UUIDString(),
        int: Integer,
    }

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )


class TimestampedBase(Base):
    """
    Abstract base with row write timestamps.

    Guarantees:
        - created_at is set to server NOW() on INSERT and never changes.
        - updated_at is set to server NOW() on INSERT and on every ORM UPDATE.
          Core upserts set it explicitly.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# Re-export UUID for convenience
UUID = PyUUID
