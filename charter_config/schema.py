"""
Ledger configuration schema.

The YAML document under ``charter_config/sets/`` is parsed by the loader into
these frozen dataclasses.  ``LedgerConfig`` is the only object the rest of
the system sees.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from charter_ledger.domain.accounts import ChartDefaults


@dataclass(frozen=True)
class EventSettingDef:
    """Journal generation switches for one company and event type."""

    company_id: str
    event_type: str
    is_enabled: bool = True
    auto_post: bool = False
    default_debit_account: str | None = None
    default_credit_account: str | None = None


@dataclass(frozen=True)
class ProcessingLimits:
    max_retries: int = 10
    reference_retry_attempts: int = 3
    reference_retry_backoff_seconds: float = 0.05
    rounding_tolerance: Decimal = Decimal("0.01")


@dataclass(frozen=True)
class LedgerConfig:
    """
    Parsed configuration document.

    ``checksum`` is the SHA-256 of the canonical JSON form of the source
    document and identifies the configuration in logs.
    """

    config_id: str
    version: int
    accounts: ChartDefaults = field(default_factory=ChartDefaults)
    event_settings: tuple[EventSettingDef, ...] = ()
    limits: ProcessingLimits = field(default_factory=ProcessingLimits)
    checksum: str = ""

    def setting_for(self, company_id: str, event_type: str) -> EventSettingDef | None:
        for setting in self.event_settings:
            if setting.company_id == company_id and setting.event_type == event_type:
                return setting
        return None
