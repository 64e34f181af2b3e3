"""Tests for locked-counter sequence allocation."""

from datetime import date

from charter_ledger.services.sequence_service import (
    SequenceService,
    format_journal_reference,
    journal_sequence_name,
)


class TestSequenceService:
    def test_starts_at_one_and_increments(self, session):
        sequences = SequenceService(session)
        assert [sequences.next_value("test") for _ in range(3)] == [1, 2, 3]
        assert sequences.current_value("test") == 3

    def test_sequences_are_independent(self, session):
        sequences = SequenceService(session)
        sequences.next_value("a")
        sequences.next_value("a")
        assert sequences.next_value("b") == 1

    def test_unknown_sequence_has_no_value(self, session):
        assert SequenceService(session).current_value("never-used") is None

    def test_journal_reference_per_company_and_year(self, session):
        sequences = SequenceService(session)
        assert sequences.next_journal_reference("company-a", date(2024, 3, 1)) == "JE-2024-0001"
        assert sequences.next_journal_reference("company-a", date(2024, 12, 31)) == "JE-2024-0002"
        assert sequences.next_journal_reference("company-b", date(2024, 3, 1)) == "JE-2024-0001"
        assert sequences.next_journal_reference("company-a", date(2025, 1, 1)) == "JE-2025-0001"


class TestFormatting:
    def test_sequence_name(self):
        assert journal_sequence_name("company-a", 2024) == "journal_entry:company-a:2024"

    def test_reference_padding(self):
        assert format_journal_reference(2024, 7) == "JE-2024-0007"
        assert format_journal_reference(2024, 12345) == "JE-2024-12345"
