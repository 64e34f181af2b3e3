"""
Tests for JournalPoster: validation before write, atomicity of the write,
and reference number allocation.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from charter_ledger.domain.posting_plan import JournalPostingPlan, PlannedJournal, credit, debit
from charter_ledger.exceptions import (
    InvalidJournalSpecError,
    StorageError,
    UnbalancedEntryError,
)
from charter_ledger.models import (
    EventJournalEntry,
    JournalEntry,
    JournalEntryLine,
    SequenceCounter,
)
from charter_ledger.services.event_store import EventStore
from charter_ledger.services.journal_poster import JournalPoster, validate_journal


def _count(session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


def _journal(lines, company_id="company-a"):
    return PlannedJournal(
        company_id=company_id,
        entry_date=date(2024, 3, 15),
        description="Test journal",
        currency="THB",
        lines=tuple(lines),
        source_document_type="expense",
        source_document_id="exp-001",
    )


class TestValidateJournal:
    def test_balanced_journal_passes(self):
        validate_journal(_journal([debit("6000", Decimal("10")), credit("2000", Decimal("10"))]))

    def test_unbalanced(self):
        with pytest.raises(UnbalancedEntryError) as exc_info:
            validate_journal(
                _journal([debit("6000", Decimal("10")), credit("2000", Decimal("12"))])
            )
        assert exc_info.value.debits == "10"
        assert exc_info.value.credits == "12"
        assert exc_info.value.company_id == "company-a"

    def test_one_sided_journal(self):
        with pytest.raises(InvalidJournalSpecError, match="one debit and one credit"):
            validate_journal(_journal([]))

    def test_non_positive_amount(self):
        with pytest.raises(InvalidJournalSpecError, match="non-positive"):
            validate_journal(
                _journal(
                    [
                        debit("6000", Decimal("10")),
                        debit("6100", Decimal("0")),
                        credit("2000", Decimal("10")),
                    ]
                )
            )

    def test_missing_account_code(self):
        with pytest.raises(InvalidJournalSpecError, match="no account code"):
            validate_journal(_journal([debit("", Decimal("10")), credit("2000", Decimal("10"))]))


class TestAtomicity:
    def test_failure_between_header_and_lines_leaves_nothing(
        self, session, processor, expense_approved_data, monkeypatch
    ):
        """A database error after the header insert rolls back the header too."""

        def _broken_lines(self, entry, journal):
            raise OperationalError("INSERT INTO journal_entry_lines", {}, Exception("disk I/O error"))

        monkeypatch.setattr(JournalPoster, "_insert_lines", _broken_lines)

        result = processor.create_and_process(
            "EXPENSE_APPROVED",
            date(2024, 3, 15),
            ["company-a"],
            expense_approved_data(),
            source_document_type="expense",
            source_document_id="exp-001",
        )

        assert not result.success
        assert result.error_code == "STORAGE_ERROR"
        assert _count(session, JournalEntry) == 0
        assert _count(session, JournalEntryLine) == 0
        assert _count(session, EventJournalEntry) == 0
        assert _count(session, SequenceCounter) == 0

        event = processor.store.get(result.event_id)
        assert event.status == "failed"
        assert event.error_message.startswith("Journal posting failed")

    def test_unbalanced_rejected_before_any_write(self, session, unbalanced_expense):
        result = unbalanced_expense()

        assert not result.success
        assert result.error_code == "UNBALANCED_ENTRY"
        assert _count(session, JournalEntry) == 0
        assert _count(session, SequenceCounter) == 0

    def test_second_journal_failure_rolls_back_first(
        self, session, clock, create_pending, monkeypatch
    ):
        """Intercompany posting is all-or-nothing across companies."""
        event = create_pending()
        store = EventStore(session, clock)
        poster = JournalPoster(session, store)
        plan = JournalPostingPlan(
            (
                _journal([debit("1180", Decimal("5")), credit("1020", Decimal("5"))], "company-b"),
                _journal([debit("2000", Decimal("5")), credit("2700", Decimal("5"))], "company-a"),
            )
        )
        calls = []
        original = JournalPoster._insert_link

        def _fail_second_link(self, event, entry, position):
            calls.append(position)
            if position == 1:
                raise OperationalError("INSERT INTO event_journal_entries", {}, Exception("lost"))
            return original(self, event, entry, position)

        monkeypatch.setattr(JournalPoster, "_insert_link", _fail_second_link)
        with pytest.raises(StorageError, match="Journal posting failed"):
            poster.post(event, plan)

        assert calls == [0, 1]
        assert _count(session, JournalEntry) == 0
        assert event.status == "pending"


class TestReferenceNumbers:
    def test_sequential_per_company_and_year(self, session, approve_expense, processor):
        first = approve_expense("exp-001")
        second = approve_expense("exp-002")

        refs = [
            processor.get_event_journals(r.event_id)[0].reference_number for r in (first, second)
        ]
        assert refs == ["JE-2024-0001", "JE-2024-0002"]

    def test_conflict_with_manual_entry_is_retried(
        self, session, approve_expense, processor, captured_logs
    ):
        session.add(
            JournalEntry(
                reference_number="JE-2024-0001",
                entry_date=date(2024, 3, 1),
                company_id="company-a",
                description="Manual entry",
                status="posted",
                currency="THB",
                total_debit=Decimal("1"),
                total_credit=Decimal("1"),
                is_auto_generated=False,
            )
        )
        session.flush()

        result = approve_expense()

        assert result.success
        journal = processor.get_event_journals(result.event_id)[0]
        assert journal.reference_number == "JE-2024-0002"
        assert any(
            r["message"] == "journal_reference_conflict_retry" for r in captured_logs()
        )

    def test_conflict_retries_are_bounded(self, session, clock):
        store = EventStore(session, clock)
        sleeps = []
        poster = JournalPoster(
            session,
            store,
            reference_retry_attempts=2,
            reference_retry_backoff_seconds=0.5,
            sleep=sleeps.append,
        )
        for n in (1, 2):
            session.add(
                JournalEntry(
                    reference_number=f"JE-2024-000{n}",
                    entry_date=date(2024, 3, 1),
                    company_id="company-a",
                    status="posted",
                    currency="THB",
                    total_debit=Decimal("1"),
                    total_credit=Decimal("1"),
                    is_auto_generated=False,
                )
            )
        session.flush()
        event = store.create(
            "OPENING_BALANCE",
            date(2024, 3, 15),
            ["company-a"],
            {
                "fiscal_year": "2024",
                "currency": "THB",
                "balances": [
                    {"account_code": "1010", "debit_amount": "5"},
                    {"account_code": "3000", "credit_amount": "5"},
                ],
            },
        )
        plan = JournalPostingPlan(
            (_journal([debit("1010", Decimal("5")), credit("3000", Decimal("5"))]),)
        )

        with pytest.raises(StorageError, match="Journal posting failed"):
            poster.post(event, plan)
        assert sleeps == [0.5]


@pytest.fixture
def create_pending(session, clock):
    def _create():
        return EventStore(session, clock).create(
            "EXPENSE_PAID_INTERCOMPANY",
            date(2024, 3, 15),
            ["company-a", "company-b"],
            {"placeholder": True},
            source_document_type="expense_payment",
            source_document_id="pay-ic-001",
        )

    return _create
