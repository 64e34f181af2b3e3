"""
Per-company journal event settings.

A company can switch journal generation off for an event type, have its
journals written as ``posted`` instead of ``draft``, and name default
debit/credit accounts for lines that carry no account code.  Rows live in
``journal_event_settings`` and are seeded from configuration.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from charter_config.schema import EventSettingDef, LedgerConfig
from charter_ledger.domain.accounts import FallbackAccounts
from charter_ledger.domain.event_types import EventType, parse_event_type
from charter_ledger.domain.posting_plan import JournalPostingPlan
from charter_ledger.logging_config import get_logger
from charter_ledger.models.journal_event_setting import JournalEventSetting
from charter_ledger.services.base import BaseService

logger = get_logger("services.event_settings")


class JournalEventSettingsService(BaseService[JournalEventSetting]):
    """
    Stored rows win over configured settings; configured settings win over
    the enabled/draft default.
    """

    def __init__(self, session: Session, config: LedgerConfig | None = None):
        super().__init__(session)
        self._config = config

    def get_setting(
        self, company_id: str, event_type: EventType | str
    ) -> JournalEventSetting | None:
        return self.session.execute(
            select(JournalEventSetting).where(
                JournalEventSetting.company_id == company_id,
                JournalEventSetting.event_type == parse_event_type(event_type).value,
            )
        ).scalar_one_or_none()

    def effective_setting(self, company_id: str, event_type: EventType | str) -> EventSettingDef:
        """The stored setting, else the configured one, else enabled/draft."""
        tag = parse_event_type(event_type).value
        row = self.get_setting(company_id, tag)
        if row is None:
            configured = self._config.setting_for(company_id, tag) if self._config else None
            return configured or EventSettingDef(company_id=company_id, event_type=tag)
        return EventSettingDef(
            company_id=row.company_id,
            event_type=row.event_type,
            is_enabled=row.is_enabled,
            auto_post=row.auto_post,
            default_debit_account=row.default_debit_account,
            default_credit_account=row.default_credit_account,
        )

    def upsert(
        self,
        company_id: str,
        event_type: EventType | str,
        *,
        is_enabled: bool = True,
        auto_post: bool = False,
        default_debit_account: str | None = None,
        default_credit_account: str | None = None,
    ) -> JournalEventSetting:
        tag = parse_event_type(event_type).value
        row = self.get_setting(company_id, tag)
        if row is None:
            row = JournalEventSetting(company_id=company_id, event_type=tag)
            self.session.add(row)
        row.is_enabled = is_enabled
        row.auto_post = auto_post
        row.default_debit_account = default_debit_account
        row.default_credit_account = default_credit_account
        self.session.flush()
        logger.info(
            "event_setting_saved",
            extra={
                "company_id": company_id,
                "event_type": tag,
                "is_enabled": is_enabled,
                "auto_post": auto_post,
            },
        )
        return row

    def seed_from_config(self, config: LedgerConfig) -> int:
        """Insert configured settings that have no row yet. Returns the count."""
        created = 0
        for setting in config.event_settings:
            if self.get_setting(setting.company_id, setting.event_type) is not None:
                continue
            self.upsert(
                setting.company_id,
                setting.event_type,
                is_enabled=setting.is_enabled,
                auto_post=setting.auto_post,
                default_debit_account=setting.default_debit_account,
                default_credit_account=setting.default_credit_account,
            )
            created += 1
        return created

    def fallbacks_for(
        self, company_ids: Iterable[str], event_type: EventType | str
    ) -> dict[str, FallbackAccounts]:
        fallbacks = {}
        for company_id in company_ids:
            setting = self.effective_setting(company_id, event_type)
            if setting.default_debit_account or setting.default_credit_account:
                fallbacks[company_id] = FallbackAccounts(
                    debit=setting.default_debit_account,
                    credit=setting.default_credit_account,
                )
        return fallbacks

    def apply(self, plan: JournalPostingPlan, event_type: EventType | str) -> JournalPostingPlan:
        """Drop journals of disabled companies and flag auto-posting ones."""
        disabled = []
        auto_post = []
        for company_id in dict.fromkeys(plan.company_ids):
            setting = self.effective_setting(company_id, event_type)
            if not setting.is_enabled:
                disabled.append(company_id)
            elif setting.auto_post:
                auto_post.append(company_id)

        if disabled:
            logger.info(
                "journals_skipped_by_setting",
                extra={"event_type": parse_event_type(event_type).value, "companies": disabled},
            )
        return plan.without_companies(disabled).with_auto_post(auto_post)
