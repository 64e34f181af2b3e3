"""
Module: charter_ledger.db.base
Responsibility: Declarative base for every ORM model in the ledger.  Supplies
    the UUID primary key convention and the type annotation map that pins
    money to Numeric and timestamps to timezone-aware columns.
Architecture position: Ledger > DB.  Lowest-level import target; MUST NOT
    import from models/, services/, selectors/, or domain/.

Invariants enforced:
    - UUID primary keys (uuid4, stored as String(36) for SQLite/PostgreSQL
      portability).
    - Decimal maps to Numeric(38, 9).  Floats are never used for money.

Failure modes:
    - IntegrityError on duplicate primary key (uuid4 collision, not expected).
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID stored as its 36-character string form.

    Guarantees:
        - Binds UUID (or its string form) as str.
        - Loads str back as UUID.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return PyUUID(value)


class Base(DeclarativeBase):
    """
    Declarative base for all ledger models.

    Contract:
        Every table gets a uuid4 ``id`` primary key.  Column types for
        annotated attributes come from ``type_annotation_map`` so money and
        timestamps are declared the same way in every model.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


UUID = PyUUID
