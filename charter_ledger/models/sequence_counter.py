"""
Module: charter_ledger.models.sequence_counter
Responsibility: Named counter rows backing SequenceService.  One row per
    (company, year) journal reference series.
Architecture position: Ledger > Models.  May import from db/ only.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from charter_ledger.db.base import Base


class SequenceCounter(Base):
    """Current value of a named sequence.  Locked with FOR UPDATE on use."""

    __tablename__ = "sequence_counters"

    # e.g. "journal_entry:<company_id>:2024"
    name: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
