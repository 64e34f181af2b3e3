"""
charter_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_config()`` is the only way the ledger obtains its chart
    defaults, per-company event settings and processing limits.  No other
    component reads configuration files or environment variables.

Failure modes:
    - ``FileNotFoundError`` -- the configured document does not exist.
    - ``ConfigurationError`` -- the document is malformed.

Every successful call logs ``config_loaded`` with the config id, version and
checksum, tying posted journals back to the configuration that shaped them.
"""

from __future__ import annotations

import os
from pathlib import Path

from charter_config.loader import load_yaml_file, parse_config
from charter_config.schema import EventSettingDef, LedgerConfig, ProcessingLimits
from charter_ledger.logging_config import get_logger

logger = get_logger("config")

CONFIG_ENV_VAR = "CHARTER_LEDGER_CONFIG"

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> LedgerConfig:
    """
    Load and validate the active ledger configuration.

    Args:
        path: Explicit document path.  Defaults to the file named by
            ``CHARTER_LEDGER_CONFIG``, then the bundled default set.

    Raises:
        FileNotFoundError: If the document does not exist.
        ConfigurationError: If any key is invalid.
    """
    source = Path(path or os.environ.get(CONFIG_ENV_VAR) or _DEFAULT_CONFIG_PATH)
    config = parse_config(load_yaml_file(source))

    logger.info(
        "config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(source),
            "event_setting_count": len(config.event_settings),
        },
    )
    return config


__all__ = [
    "CONFIG_ENV_VAR",
    "EventSettingDef",
    "LedgerConfig",
    "ProcessingLimits",
    "get_active_config",
]
