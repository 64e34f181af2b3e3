"""
Module: charter_ledger.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Ledger > Selectors.  May import from db/ and models/.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - DTO return convention: selectors return dataclasses, not ORM objects.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from charter_ledger.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Contract:
        Accepts a Session from the caller, performs read-only queries and
        returns DTOs.
    """

    def __init__(self, session: Session):
        self.session = session
