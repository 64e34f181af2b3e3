"""
BaseService -- abstract base for ledger services.

Responsibility:
    Common constructor and session-handling contract.  Every service
    receives a SQLAlchemy ``Session`` and uses ``session.flush()`` -- never
    ``session.commit()``.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's transaction
      and never commit.  Rollback is limited to SAVEPOINTs the service opened
      itself.  The caller (``session_scope``, the operator CLI, a test
      fixture) owns commit and rollback.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from charter_ledger.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for write-side services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and persists changes
        with ``session.flush()`` inside the active transaction.

    Non-goals:
        - Does NOT manage the outer transaction lifecycle.
        - Does NOT provide read models -- those belong in ``selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
