"""
Tests for EventProcessor.

Every outcome except an unknown event id comes back as an
EventProcessResult; the event row records what happened.
"""

from dataclasses import replace
from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from charter_ledger.exceptions import (
    EventNotFoundError,
    InvalidStateTransitionError,
    StorageError,
)
from charter_ledger.models.accounting_event import AccountingEvent, EventStatus
from charter_ledger.models.journal import JournalEntry
from charter_ledger.services.event_processor import EventProcessor


def _event_count(session) -> int:
    return session.execute(select(func.count(AccountingEvent.id))).scalar_one()


def _journal_count(session) -> int:
    return session.execute(select(func.count(JournalEntry.id))).scalar_one()


class TestCreateAndProcess:
    def test_success(self, processor, approve_expense):
        result = approve_expense()

        assert result.success
        assert result.error is None
        assert not result.is_duplicate
        assert len(result.journal_entry_ids) == 1

        event = processor.store.get(result.event_id)
        assert event.status == "processed"
        assert event.processed_at is not None
        assert event.retry_count == 0

    def test_duplicate_returns_existing_event(self, session, approve_expense):
        first = approve_expense()
        second = approve_expense()

        assert second.is_duplicate
        assert not second.success
        assert second.event_id == first.event_id
        assert second.journal_entry_ids == ()
        assert _event_count(session) == 1
        assert _journal_count(session) == 1

    def test_duplicate_after_cancel(self, processor, unbalanced_expense):
        first = unbalanced_expense()
        processor.cancel_event(first.event_id)

        again = unbalanced_expense()

        assert again.is_duplicate
        assert again.event_id == first.event_id

    def test_no_affected_companies(self, session, processor, expense_approved_data):
        result = processor.create_and_process(
            "EXPENSE_APPROVED", date(2024, 3, 15), [], expense_approved_data()
        )

        assert not result.success
        assert result.event_id is None
        assert result.error_code == "PAYLOAD_VALIDATION_FAILED"
        assert _event_count(session) == 0

    def test_unknown_event_type(self, session, processor):
        result = processor.create_and_process(
            "CHARTER_BOOKED", date(2024, 3, 15), ["company-a"], {}
        )

        assert not result.success
        assert result.error_code == "UNKNOWN_EVENT_TYPE"
        assert _event_count(session) == 0

    def test_invalid_payload_fails_event(self, processor, expense_approved_data):
        data = expense_approved_data()
        del data["expense_id"]

        result = processor.create_and_process(
            "EXPENSE_APPROVED", date(2024, 3, 15), ["company-a"], data
        )

        assert not result.success
        assert result.event_id is not None
        assert result.error_code == "PAYLOAD_VALIDATION_FAILED"
        event = processor.store.get(result.event_id)
        assert event.status == "failed"
        assert "expense_id" in event.error_message

    def test_oversized_amount_fails_event(self, processor, expense_approved_data):
        huge = "1" + "0" * 27
        data = expense_approved_data(
            line_items=[{"description": "Fuel", "account_code": "6000", "amount": huge}],
            total_subtotal=huge,
            total_amount=huge,
            total_vat_amount="0",
        )

        result = processor.create_and_process(
            "EXPENSE_APPROVED", date(2024, 3, 15), ["company-a"], data
        )

        assert not result.success
        assert result.error_code == "PAYLOAD_VALIDATION_FAILED"
        assert processor.store.get(result.event_id).status == "failed"

    def test_unbalanced_event_fails_without_journals(self, session, processor, unbalanced_expense):
        result = unbalanced_expense()

        assert not result.success
        assert result.error_code == "UNBALANCED_ENTRY"
        assert processor.store.get(result.event_id).status == "failed"
        assert _journal_count(session) == 0

    def test_processed_log_carries_event_id(self, approve_expense, captured_logs):
        result = approve_expense()

        processed = [r for r in captured_logs() if r["message"] == "event_processed"]
        assert len(processed) == 1
        assert processed[0]["event_id"] == str(result.event_id)
        assert processed[0]["event_type"] == "EXPENSE_APPROVED"
        assert processed[0]["journal_entry_ids"] == [str(result.journal_entry_ids[0])]


class TestCheckDuplicate:
    def test_reports_existing_source_document(self, processor, approve_expense):
        assert not processor.check_duplicate("EXPENSE_APPROVED", "expense", "exp-001")
        approve_expense()
        assert processor.check_duplicate("EXPENSE_APPROVED", "expense", "exp-001")

    def test_other_event_type_is_not_duplicate(self, processor, approve_expense):
        approve_expense()
        assert not processor.check_duplicate("EXPENSE_PAID", "expense", "exp-001")

    def test_failed_event_still_counts(self, processor, unbalanced_expense):
        unbalanced_expense()
        assert processor.check_duplicate("EXPENSE_APPROVED", "expense", "exp-bad")


class TestProcessEvent:
    def test_processes_pending_event(self, processor, expense_approved_data):
        event = processor.store.create(
            "EXPENSE_APPROVED", date(2024, 3, 15), ["company-a"], expense_approved_data()
        )

        result = processor.process_event(event.id)

        assert result.success
        assert processor.store.get(event.id).status == "processed"

    @pytest.mark.parametrize("make_status", ["processed", "cancelled"])
    def test_finished_event_rejected(
        self, processor, approve_expense, unbalanced_expense, make_status
    ):
        if make_status == "processed":
            event_id = approve_expense().event_id
        else:
            event_id = unbalanced_expense().event_id
            if make_status == "cancelled":
                processor.cancel_event(event_id)

        result = processor.process_event(event_id)

        assert not result.success
        assert result.error_code == "INVALID_STATE_TRANSITION"
        assert processor.store.get(event_id).status == make_status

    def test_processes_failed_event_without_counting_retry(
        self, session, processor, approve_expense, monkeypatch
    ):
        def _storage_down(event, plan):
            raise StorageError("connection reset", "insert_journal")

        monkeypatch.setattr(processor._poster, "post", _storage_down)
        event_id = approve_expense().event_id
        assert processor.store.get(event_id).status == "failed"

        monkeypatch.undo()
        result = processor.process_event(event_id)

        assert result.success
        event = processor.store.get(event_id)
        assert event.status == "processed"
        assert event.retry_count == 0
        assert event.error_message is None
        assert _journal_count(session) == 1

    def test_failed_event_that_fails_again_stays_failed(self, processor, unbalanced_expense):
        event_id = unbalanced_expense().event_id

        result = processor.process_event(event_id)

        assert result.error_code == "UNBALANCED_ENTRY"
        event = processor.store.get(event_id)
        assert event.status == "failed"
        assert event.retry_count == 0

    def test_accepts_string_id(self, processor, expense_approved_data):
        event = processor.store.create(
            "EXPENSE_APPROVED", date(2024, 3, 15), ["company-a"], expense_approved_data()
        )
        assert processor.process_event(str(event.id)).success


class TestRetryEvent:
    def test_pending_event_cannot_be_retried(self, processor, expense_approved_data):
        event = processor.store.create(
            "EXPENSE_APPROVED", date(2024, 3, 15), ["company-a"], expense_approved_data()
        )

        result = processor.retry_event(event.id)

        assert result.error_code == "INVALID_STATE_TRANSITION"
        assert processor.store.get(event.id).retry_count == 0

    def test_processed_event_cannot_be_retried(self, processor, approve_expense):
        event_id = approve_expense().event_id

        result = processor.retry_event(event_id)

        assert result.error_code == "INVALID_STATE_TRANSITION"
        assert processor.store.get(event_id).status == "processed"

    def test_retry_that_fails_again_counts(self, processor, unbalanced_expense):
        event_id = unbalanced_expense().event_id

        result = processor.retry_event(event_id)

        assert not result.success
        assert result.error_code == "UNBALANCED_ENTRY"
        event = processor.store.get(event_id)
        assert event.status == "failed"
        assert event.retry_count == 1

    def test_retry_after_transient_failure(
        self, session, processor, approve_expense, monkeypatch
    ):
        def _storage_down(event, plan):
            raise StorageError("connection reset", "insert_journal")

        monkeypatch.setattr(processor._poster, "post", _storage_down)
        first = approve_expense()
        assert first.error_code == "STORAGE_ERROR"
        assert processor.store.get(first.event_id).status == "failed"

        monkeypatch.undo()
        result = processor.retry_event(first.event_id)

        assert result.success
        event = processor.store.get(first.event_id)
        assert event.status == "processed"
        assert event.retry_count == 1
        assert event.error_message is None
        assert _journal_count(session) == 1

    def test_retry_limit(self, session, clock, config, unbalanced_expense):
        limited = EventProcessor(
            session,
            clock,
            config=replace(config, limits=replace(config.limits, max_retries=2)),
        )
        event_id = unbalanced_expense().event_id

        assert limited.retry_event(event_id).error_code == "UNBALANCED_ENTRY"
        assert limited.retry_event(event_id).error_code == "UNBALANCED_ENTRY"
        result = limited.retry_event(event_id)

        assert result.error_code == "RETRY_LIMIT_EXCEEDED"
        event = limited.store.get(event_id)
        assert event.retry_count == 2
        assert event.status == "failed"

    def test_retry_started_is_logged(self, processor, unbalanced_expense, captured_logs):
        event_id = unbalanced_expense().event_id
        processor.retry_event(event_id)

        started = [r for r in captured_logs() if r["message"] == "event_retry_started"]
        assert started[0]["event_id"] == str(event_id)
        assert started[0]["retry_count"] == 1


class TestCancelEvent:
    def test_cancel_pending(self, processor, expense_approved_data):
        event = processor.store.create(
            "EXPENSE_APPROVED", date(2024, 3, 15), ["company-a"], expense_approved_data()
        )

        cancelled = processor.cancel_event(event.id, "entered twice")

        assert cancelled.status == "cancelled"
        assert cancelled.error_message == "entered twice"

    def test_cancel_failed(self, processor, unbalanced_expense):
        event_id = unbalanced_expense().event_id
        assert processor.cancel_event(event_id).status == "cancelled"

    def test_cancel_processed_raises(self, processor, approve_expense):
        event_id = approve_expense().event_id

        with pytest.raises(InvalidStateTransitionError):
            processor.cancel_event(event_id)
        assert processor.store.get(event_id).status == "processed"

    def test_cancel_twice_raises(self, processor, unbalanced_expense):
        event_id = unbalanced_expense().event_id
        processor.cancel_event(event_id)

        with pytest.raises(InvalidStateTransitionError):
            processor.cancel_event(event_id)

    def test_cancelled_event_cannot_be_retried(self, processor, unbalanced_expense):
        event_id = unbalanced_expense().event_id
        processor.cancel_event(event_id)

        assert processor.retry_event(event_id).error_code == "INVALID_STATE_TRANSITION"


class TestUnknownEvent:
    @pytest.mark.parametrize("event_id", [uuid4(), str(uuid4()), "not-a-uuid"])
    @pytest.mark.parametrize(
        "operation", ["process_event", "retry_event", "cancel_event", "get_event_journals"]
    )
    def test_unknown_id_raises(self, processor, operation, event_id):
        with pytest.raises(EventNotFoundError):
            getattr(processor, operation)(event_id)


class TestGetEventJournals:
    def test_returns_posted_journals(self, processor, approve_expense):
        result = approve_expense()

        journals = processor.get_event_journals(result.event_id)

        assert [j.id for j in journals] == list(result.journal_entry_ids)
        assert journals[0].source_document_type == "expense"
        assert journals[0].source_document_id == "exp-001"

    def test_failed_event_has_none(self, processor, unbalanced_expense):
        assert processor.get_event_journals(unbalanced_expense().event_id) == []


class TestBatchOperations:
    def test_process_pending_events(self, processor, expense_approved_data):
        for expense_id in ("exp-1", "exp-2"):
            processor.store.create(
                "EXPENSE_APPROVED",
                date(2024, 3, 15),
                ["company-a"],
                expense_approved_data(expense_id=expense_id),
                source_document_type="expense",
                source_document_id=expense_id,
            )

        results = processor.process_pending_events()

        assert len(results) == 2
        assert all(r.success for r in results)
        assert processor.process_pending_events() == []

    def test_retry_failed_events(self, processor, unbalanced_expense):
        unbalanced_expense("exp-bad-1")
        unbalanced_expense("exp-bad-2")

        results = processor.retry_failed_events()

        assert len(results) == 2
        assert all(r.error_code == "UNBALANCED_ENTRY" for r in results)
        assert all(
            processor.store.get(r.event_id).retry_count == 1 for r in results
        )

    def test_retry_failed_events_honours_limit(self, processor, unbalanced_expense):
        for expense_id in ("exp-bad-1", "exp-bad-2", "exp-bad-3"):
            unbalanced_expense(expense_id)

        results = processor.retry_failed_events(limit=2)

        assert len(results) == 2
        assert len(processor.store.list_by_status(EventStatus.FAILED)) == 3

    def test_retry_failed_events_skips_exhausted(
        self, session, clock, config, unbalanced_expense
    ):
        limited = EventProcessor(
            session,
            clock,
            config=replace(config, limits=replace(config.limits, max_retries=1)),
        )
        exhausted = unbalanced_expense("exp-bad-1").event_id
        limited.retry_event(exhausted)
        fresh = unbalanced_expense("exp-bad-2").event_id

        results = limited.retry_failed_events(limit=1)

        assert [r.event_id for r in results] == [fresh]
        assert limited.store.get(exhausted).retry_count == 1
