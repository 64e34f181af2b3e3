"""
Module: charter_ledger.models.journal
Responsibility: ORM persistence for journal entry headers and their lines.
Architecture position: Ledger > Models.  May import from db/ only.

Invariants enforced:
    - Reference numbers are unique per company
      (UNIQUE company_id, reference_number).
    - Line order is unique within a header (UNIQUE journal_entry_id, line_order).
    - total_debit == total_credit and sum(debit lines) == sum(credit lines)
      are checked by JournalPoster before any row is written; is_balanced
      is the read-side assertion.

Failure modes:
    - IntegrityError on reference number collision (retried by JournalPoster).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from charter_ledger.db.base import Base, UUIDString
from charter_ledger.db.types import ZERO


class JournalEntryStatus(str, Enum):
    """Header status.  Auto-generated entries start as draft unless auto-posted."""

    DRAFT = "draft"
    POSTED = "posted"
    VOID = "void"


class LineEntryType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class JournalEntry(Base):
    """
    Journal entry header, one per company per posting.

    Contract:
        Created only by JournalPoster for auto-generated postings; manual
        entries share the table through a separate path.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint(
            "company_id", "reference_number", name="uq_journal_company_reference"
        ),
        Index("idx_journal_company_date", "company_id", "entry_date"),
        Index("idx_journal_source", "source_document_type", "source_document_id"),
    )

    reference_number: Mapped[str] = mapped_column(String(50), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=JournalEntryStatus.DRAFT.value,
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    total_debit: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    total_credit: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    source_document_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source_document_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_auto_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="entry",
        order_by="JournalEntryLine.line_order",
        cascade="all, delete-orphan",
    )

    @property
    def is_balanced(self) -> bool:
        debits = sum(
            (l.amount for l in self.lines if l.entry_type == LineEntryType.DEBIT.value),
            ZERO,
        )
        credits = sum(
            (l.amount for l in self.lines if l.entry_type == LineEntryType.CREDIT.value),
            ZERO,
        )
        return debits == credits == self.total_debit == self.total_credit

    def __repr__(self) -> str:
        return f"<JournalEntry {self.reference_number} company={self.company_id} [{self.status}]>"


class JournalEntryLine(Base):
    """One debit or credit leg of a journal entry.  Amount is always positive."""

    __tablename__ = "journal_entry_lines"

    __table_args__ = (
        UniqueConstraint("journal_entry_id", "line_order", name="uq_line_order"),
        Index("idx_line_account", "account_code"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )
    account_code: Mapped[str] = mapped_column(String(20), nullable=False)
    entry_type: Mapped[str] = mapped_column(String(6), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    line_order: Mapped[int] = mapped_column(Integer, nullable=False)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    @property
    def debit_amount(self) -> Decimal:
        return self.amount if self.entry_type == LineEntryType.DEBIT.value else ZERO

    @property
    def credit_amount(self) -> Decimal:
        return self.amount if self.entry_type == LineEntryType.CREDIT.value else ZERO
