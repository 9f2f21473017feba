"""Database layer - engine, base classes and money helpers."""

from pif_kernel.db.base import UUID, Base, TimestampedBase, UUIDString
from pif_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from pif_kernel.db.types import money_from_str, round_money

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UUID",
    "money_from_str",
    "round_money",
]
