"""
Configuration Loader (``fintrack_config.loader``).

Responsibility
--------------
Loads a YAML configuration file, overlays environment variables and
parses the result into the frozen dataclasses of ``fintrack_config.schema``.
Runtime callers go through ``fintrack_config.get_active_config()``.

Invariants enforced
-------------------
* No silent defaults for malformed values: a wrong type or out-of-range
  value raises ``ConfigError`` naming the offending key.
* Environment overrides win over file values:

      FINTRACK_DATABASE_URL, then DATABASE_URL  -> database.url
      FINTRACK_LOG_LEVEL                        -> logging.level

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ConfigError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from fintrack_config.schema import (
    VALID_LOG_LEVELS,
    BalanceSettings,
    BudgetSettings,
    DatabaseSettings,
    FintrackConfig,
    LoggingSettings,
)

DATABASE_URL_ENV_VARS: tuple[str, ...] = ("FINTRACK_DATABASE_URL", "DATABASE_URL")
LOG_LEVEL_ENV_VAR = "FINTRACK_LOG_LEVEL"


class ConfigError(ValueError):
    """A configuration value is missing, of the wrong type or out of range."""

    def __init__(self, key: str, problem: str):
        self.key = key
        self.problem = problem
        super().__init__(f"Invalid configuration value for {key!r}: {problem}")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError("<root>", "document must be a mapping")
    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(name, "must be a mapping")
    return value


def _bool(section: Mapping[str, Any], key: str, default: bool, prefix: str) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{prefix}.{key}", f"expected true/false, got {value!r}")
    return value


def _int(
    section: Mapping[str, Any],
    key: str,
    default: int,
    prefix: str,
    minimum: int = 0,
) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{prefix}.{key}", f"expected an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"{prefix}.{key}", f"must be >= {minimum}")
    return value


def apply_environment(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of data with environment overrides applied."""
    merged = {key: value for key, value in data.items()}

    for var in DATABASE_URL_ENV_VARS:
        if environ.get(var):
            database = dict(_section(merged, "database"))
            database["url"] = environ[var]
            merged["database"] = database
            break

    if environ.get(LOG_LEVEL_ENV_VAR):
        logging_section = dict(_section(merged, "logging"))
        logging_section["level"] = environ[LOG_LEVEL_ENV_VAR]
        merged["logging"] = logging_section

    return merged


def parse_config(data: Mapping[str, Any], source_path: str | None = None) -> FintrackConfig:
    """
    Build a FintrackConfig from a parsed (and environment-merged) dict.

    Raises:
        ConfigError: On any missing or invalid value.
    """
    database = _section(data, "database")
    url = database.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ConfigError("database.url", "a database URL is required")

    logging_section = _section(data, "logging")
    level = str(logging_section.get("level", "INFO")).upper()
    if level not in VALID_LOG_LEVELS:
        raise ConfigError("logging.level", f"must be one of {', '.join(VALID_LOG_LEVELS)}")

    balance = _section(data, "balance")
    budget = _section(data, "budget")

    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int):
        raise ConfigError("version", f"expected an integer, got {version!r}")

    return FintrackConfig(
        config_id=str(data.get("config_id", "fintrack")),
        version=version,
        database=DatabaseSettings(
            url=url.strip(),
            echo=_bool(database, "echo", False, "database"),
            pool_size=_int(database, "pool_size", 10, "database", minimum=1),
            max_overflow=_int(database, "max_overflow", 10, "database"),
            pool_timeout=_int(database, "pool_timeout", 30, "database", minimum=1),
            pool_recycle=_int(database, "pool_recycle", 1800, "database"),
        ),
        logging=LoggingSettings(level=level),
        balance=BalanceSettings(
            guard_all_debits=_bool(balance, "guard_all_debits", True, "balance"),
        ),
        budget=BudgetSettings(
            history_months=_int(budget, "history_months", 6, "budget", minimum=1),
        ),
        source_path=source_path,
    )
