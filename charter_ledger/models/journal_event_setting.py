"""
Module: charter_ledger.models.journal_event_setting
Responsibility: Per-company switches for journal generation by event type.
Architecture position: Ledger > Models.  May import from db/ only.

Invariants enforced:
    - At most one row per (company_id, event_type).  A missing row means
      "enabled, draft, no default accounts".
"""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from charter_ledger.db.base import Base


class JournalEventSetting(Base):
    __tablename__ = "journal_event_settings"

    __table_args__ = (
        UniqueConstraint("company_id", "event_type", name="uq_event_setting_company_type"),
    )

    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)

    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Post headers directly instead of leaving them as drafts
    auto_post: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    default_debit_account: Mapped[str | None] = mapped_column(String(20), nullable=True)
    default_credit_account: Mapped[str | None] = mapped_column(String(20), nullable=True)
