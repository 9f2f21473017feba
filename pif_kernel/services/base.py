"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service.  Concrete services receive a SQLAlchemy
    ``Session`` and use ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  The caller (PifPipeline,
    a CLI script using session_scope(), or a test) owns commit/rollback,
    which is what makes a promotion all-or-nothing.

Failure modes:
    - A subclass that commits on its own would break the atomicity of
      the promotion and commit-to-inflight sequences.
"""

from abc import ABC

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pif_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` and an optional ``Clock`` from the
        caller and persists changes with ``session.flush()`` inside the
        caller's transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-model queries -- those belong in
          ``pif_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()


def db_error_reason(exc: SQLAlchemyError) -> str:
    """Underlying DBAPI message when there is one, else the SQLAlchemy message."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)
