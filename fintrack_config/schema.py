"""
Configuration schema -- frozen dataclasses produced by the loader.

Every section of a configuration file maps to one dataclass here.  Values
are validated when the loader builds them; consumers can rely on the
types and ranges documented below.
"""

from __future__ import annotations

from dataclasses import dataclass, field

VALID_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings handed to init_engine_from_url()."""

    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class BalanceSettings:
    """See fintrack_kernel.domain.policy.BalancePolicy."""

    guard_all_debits: bool = True


@dataclass(frozen=True)
class BudgetSettings:
    # Length of the monthly expense series handed to the predictor.
    history_months: int = 6


@dataclass(frozen=True)
class FintrackConfig:
    """The fully resolved runtime configuration."""

    config_id: str
    version: int
    database: DatabaseSettings
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    balance: BalanceSettings = field(default_factory=BalanceSettings)
    budget: BudgetSettings = field(default_factory=BudgetSettings)
    source_path: str | None = None
