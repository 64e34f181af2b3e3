"""
Configuration loader (``charter_config.loader``).

Responsibility
--------------
Reads the YAML configuration document and parses it into the frozen
``charter_config.schema`` dataclasses.  Runtime callers go through
``charter_config.get_active_config()``.

Invariants enforced
-------------------
* No silent defaults for malformed values: every bad key raises
  ``ConfigurationError`` naming the key.
* Account codes are strings; bare YAML integers are accepted and converted.
* ``compute_checksum`` is deterministic for identical documents.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML or invalid values  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from charter_config.schema import EventSettingDef, LedgerConfig, ProcessingLimits
from charter_ledger.domain.accounts import ChartDefaults, IntercompanyAccounts
from charter_ledger.domain.event_types import EventType
from charter_ledger.exceptions import ConfigurationError

_ACCOUNT_KEYS = frozenset(
    f.name for f in fields(ChartDefaults) if f.name != "intercompany_overrides"
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigurationError: if the file is not valid YAML or not a mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(str(path), f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "document root must be a mapping")
    return data


def _account_code(key: str, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigurationError(key, f"account code must be a string, got {value!r}")
    code = str(value).strip()
    if not code:
        raise ConfigurationError(key, "account code must not be empty")
    return code


def parse_accounts(data: dict[str, Any] | None) -> ChartDefaults:
    data = dict(data or {})
    overrides_raw = data.pop("intercompany", None) or {}

    unknown = set(data) - _ACCOUNT_KEYS
    if unknown:
        raise ConfigurationError(
            f"accounts.{sorted(unknown)[0]}", "unknown account key"
        )
    codes = {key: _account_code(f"accounts.{key}", value) for key, value in data.items()}

    if not isinstance(overrides_raw, dict):
        raise ConfigurationError("accounts.intercompany", "must be a mapping")
    overrides = {}
    for company_id, pair in overrides_raw.items():
        key = f"accounts.intercompany.{company_id}"
        if not isinstance(pair, dict) or "receivable" not in pair or "payable" not in pair:
            raise ConfigurationError(key, "expected receivable and payable codes")
        overrides[str(company_id)] = IntercompanyAccounts(
            receivable=_account_code(f"{key}.receivable", pair["receivable"]),
            payable=_account_code(f"{key}.payable", pair["payable"]),
        )

    return ChartDefaults(**codes, intercompany_overrides=MappingProxyType(overrides))


def parse_event_setting(index: int, data: Any) -> EventSettingDef:
    key = f"event_settings[{index}]"
    if not isinstance(data, dict):
        raise ConfigurationError(key, "must be a mapping")
    for required in ("company_id", "event_type"):
        if not data.get(required):
            raise ConfigurationError(f"{key}.{required}", "is required")

    event_type = str(data["event_type"])
    if event_type not in {t.value for t in EventType}:
        raise ConfigurationError(f"{key}.event_type", f"unknown event type {event_type}")

    for flag in ("is_enabled", "auto_post"):
        if flag in data and not isinstance(data[flag], bool):
            raise ConfigurationError(f"{key}.{flag}", "must be true or false")

    def optional_code(name: str) -> str | None:
        value = data.get(name)
        return None if value is None else _account_code(f"{key}.{name}", value)

    return EventSettingDef(
        company_id=str(data["company_id"]),
        event_type=event_type,
        is_enabled=data.get("is_enabled", True),
        auto_post=data.get("auto_post", False),
        default_debit_account=optional_code("default_debit_account"),
        default_credit_account=optional_code("default_credit_account"),
    )


def parse_limits(data: dict[str, Any] | None) -> ProcessingLimits:
    data = data or {}
    defaults = ProcessingLimits()

    def positive_int(name: str, minimum: int) -> int:
        value = data.get(name, getattr(defaults, name))
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise ConfigurationError(f"limits.{name}", f"must be an integer >= {minimum}")
        return value

    backoff = data.get(
        "reference_retry_backoff_seconds", defaults.reference_retry_backoff_seconds
    )
    if isinstance(backoff, bool) or not isinstance(backoff, (int, float)) or backoff < 0:
        raise ConfigurationError(
            "limits.reference_retry_backoff_seconds", "must be a non-negative number"
        )

    try:
        tolerance = Decimal(str(data.get("rounding_tolerance", defaults.rounding_tolerance)))
    except InvalidOperation:
        raise ConfigurationError("limits.rounding_tolerance", "must be a decimal") from None
    if not tolerance.is_finite() or tolerance < 0:
        raise ConfigurationError("limits.rounding_tolerance", "must be non-negative")

    return ProcessingLimits(
        max_retries=positive_int("max_retries", 0),
        reference_retry_attempts=positive_int("reference_retry_attempts", 1),
        reference_retry_backoff_seconds=float(backoff),
        rounding_tolerance=tolerance,
    )


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a whole configuration document.

    Raises:
        ConfigurationError: on the first invalid key.
    """
    settings_raw = data.get("event_settings") or []
    if not isinstance(settings_raw, list):
        raise ConfigurationError("event_settings", "must be a list")

    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int):
        raise ConfigurationError("version", "must be an integer")

    settings = tuple(parse_event_setting(i, s) for i, s in enumerate(settings_raw))
    seen: set[tuple[str, str]] = set()
    for index, setting in enumerate(settings):
        pair = (setting.company_id, setting.event_type)
        if pair in seen:
            raise ConfigurationError(
                f"event_settings[{index}]",
                f"duplicate setting for {setting.company_id}/{setting.event_type}",
            )
        seen.add(pair)

    return LedgerConfig(
        config_id=str(data.get("config_id", "default")),
        version=version,
        accounts=parse_accounts(data.get("accounts")),
        event_settings=settings,
        limits=parse_limits(data.get("limits")),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
