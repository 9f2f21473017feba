"""
Module: pif_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, domain/ and
    models/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but MUST NOT
      call session.add(), session.delete(), session.commit(), or session.flush().
    - Session ownership: selectors do NOT create or manage their own sessions;
      the caller owns the session and its transaction scope.

Audit relevance:
    The wide and history views are derived on every call from the stored
    project and cost rows.  Nothing is cached, so a report reflects the
    stores as of the caller's transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs or plain row mappings.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session
