"""Environment-driven settings.

Environment variables:
  SOCIAL_SCANNER_CATALOG      path to a YAML rule catalog (default: bundled)
  SOCIAL_SCANNER_LOG_LEVEL    DEBUG, INFO, WARNING, ERROR (default: WARNING)
  SOCIAL_SCANNER_LOG_JSON     "1"/"true" to emit JSON log lines
  SOCIAL_SCANNER_CONCURRENCY  max parallel probes for the HTTP engine (default: 10)

Command-line flags take precedence over these values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .engine import DEFAULT_CONCURRENCY
from .errors import ConfigError

VALID_LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class Settings:
    catalog_path: Optional[str] = None
    log_level: str = "WARNING"
    log_json: bool = False
    concurrency: int = DEFAULT_CONCURRENCY


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read :class:`Settings` from ``environ`` (defaults to ``os.environ``)."""

    env = os.environ if environ is None else environ

    log_level = env.get("SOCIAL_SCANNER_LOG_LEVEL", "WARNING").upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"invalid log level in SOCIAL_SCANNER_LOG_LEVEL: {log_level!r}",
            option="SOCIAL_SCANNER_LOG_LEVEL",
        )

    raw_concurrency = env.get("SOCIAL_SCANNER_CONCURRENCY", str(DEFAULT_CONCURRENCY)).strip()
    if not raw_concurrency.isdigit() or int(raw_concurrency) < 1:
        raise ConfigError(
            f"invalid concurrency in SOCIAL_SCANNER_CONCURRENCY: {raw_concurrency!r}",
            option="SOCIAL_SCANNER_CONCURRENCY",
        )

    return Settings(
        catalog_path=env.get("SOCIAL_SCANNER_CATALOG") or None,
        log_level=log_level,
        log_json=env.get("SOCIAL_SCANNER_LOG_JSON", "").strip().lower() in TRUTHY,
        concurrency=int(raw_concurrency),
    )
