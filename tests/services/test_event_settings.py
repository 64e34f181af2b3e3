"""
Tests for per-company journal event settings: disabling companies,
auto-posting and fallback accounts.
"""

from dataclasses import replace
from datetime import date

import pytest

from charter_config.schema import EventSettingDef
from charter_ledger.services.event_processor import EventProcessor
from charter_ledger.services.event_settings import JournalEventSettingsService


@pytest.fixture
def settings(session):
    return JournalEventSettingsService(session)


class TestSettingsService:
    def test_default_when_no_row(self, settings):
        setting = settings.effective_setting("company-a", "EXPENSE_APPROVED")
        assert setting.is_enabled
        assert not setting.auto_post
        assert setting.default_debit_account is None

    def test_upsert_updates_existing_row(self, settings):
        settings.upsert("company-a", "EXPENSE_APPROVED", auto_post=True)
        row = settings.upsert("company-a", "EXPENSE_APPROVED", is_enabled=False)

        assert settings.get_setting("company-a", "EXPENSE_APPROVED") is row
        assert not row.is_enabled
        assert not row.auto_post

    def test_configured_setting_used_without_row(self, session, config):
        configured = replace(
            config,
            event_settings=(
                EventSettingDef("company-a", "EXPENSE_APPROVED", auto_post=True),
            ),
        )
        service = JournalEventSettingsService(session, configured)
        assert service.effective_setting("company-a", "EXPENSE_APPROVED").auto_post

        service.upsert("company-a", "EXPENSE_APPROVED", auto_post=False)
        assert not service.effective_setting("company-a", "EXPENSE_APPROVED").auto_post

    def test_seed_from_config_skips_existing(self, settings, config):
        settings.upsert("company-a", "EXPENSE_PAID", auto_post=True)
        configured = replace(
            config,
            event_settings=(
                EventSettingDef("company-a", "EXPENSE_PAID", is_enabled=False),
                EventSettingDef("company-b", "EXPENSE_PAID", is_enabled=False),
            ),
        )

        assert settings.seed_from_config(configured) == 1
        assert settings.get_setting("company-a", "EXPENSE_PAID").is_enabled
        assert not settings.get_setting("company-b", "EXPENSE_PAID").is_enabled

    def test_fallbacks_only_for_companies_with_defaults(self, settings):
        settings.upsert("company-a", "EXPENSE_APPROVED", default_debit_account="6500")
        fallbacks = settings.fallbacks_for(["company-a", "company-b"], "EXPENSE_APPROVED")

        assert set(fallbacks) == {"company-a"}
        assert fallbacks["company-a"].debit == "6500"
        assert fallbacks["company-a"].credit is None


class TestSettingsInProcessing:
    def test_auto_post_writes_posted_headers(self, settings, approve_expense, processor):
        settings.upsert("company-a", "EXPENSE_APPROVED", auto_post=True)
        result = approve_expense()

        assert processor.get_event_journals(result.event_id)[0].status == "posted"

    def test_default_is_draft(self, approve_expense, processor):
        result = approve_expense()
        assert processor.get_event_journals(result.event_id)[0].status == "draft"

    def test_fallback_debit_account_applied(
        self, settings, processor, expense_approved_data
    ):
        settings.upsert("company-a", "EXPENSE_APPROVED", default_debit_account="6500")
        result = processor.create_and_process(
            "EXPENSE_APPROVED",
            date(2024, 3, 15),
            ["company-a"],
            expense_approved_data(line_items=[{"description": "Sundry", "amount": "1000.00"}]),
            source_document_type="expense",
            source_document_id="exp-001",
        )

        journal = processor.get_event_journals(result.event_id)[0]
        assert journal.lines[0].account_code == "6500"

    def test_disabled_company_skipped(
        self, settings, processor, intercompany_paid_data, captured_logs
    ):
        settings.upsert("company-b", "EXPENSE_PAID_INTERCOMPANY", is_enabled=False)
        result = processor.create_and_process(
            "EXPENSE_PAID_INTERCOMPANY",
            date(2024, 3, 20),
            ["company-a", "company-b"],
            intercompany_paid_data(),
            source_document_type="expense_payment",
            source_document_id="pay-ic-001",
        )

        assert result.success
        assert result.skipped_companies == ("company-b",)
        journals = processor.get_event_journals(result.event_id)
        assert [j.company_id for j in journals] == ["company-a"]
        assert any(r["message"] == "journals_skipped_by_setting" for r in captured_logs())

    def test_all_companies_disabled_still_processed(self, settings, approve_expense, processor):
        settings.upsert("company-a", "EXPENSE_APPROVED", is_enabled=False)
        result = approve_expense()

        assert result.success
        assert result.journal_entry_ids == ()
        assert result.skipped_companies == ("company-a",)
        assert processor.store.get(result.event_id).status == "processed"

    def test_configured_settings_reach_the_processor(
        self, session, clock, config, expense_approved_data
    ):
        configured = replace(
            config,
            event_settings=(EventSettingDef("company-a", "EXPENSE_APPROVED", auto_post=True),),
        )
        processor = EventProcessor(session, clock, config=configured)
        result = processor.create_and_process(
            "EXPENSE_APPROVED",
            date(2024, 3, 15),
            ["company-a"],
            expense_approved_data(),
            source_document_type="expense",
            source_document_id="exp-001",
        )
        assert processor.get_event_journals(result.event_id)[0].status == "posted"
