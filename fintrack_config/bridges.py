"""
Config -> Kernel Bridges.

Functions that convert a FintrackConfig into kernel-compatible inputs.
These live in fintrack_config (the producer) because the kernel must
NEVER import fintrack_config.

Usage:
    from fintrack_config import get_active_config
    from fintrack_config.bridges import build_balance_policy, init_engine_from_config

    config = get_active_config()
    configure_logging_from_config(config)
    init_engine_from_config(config)
    policy = build_balance_policy(config)
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from fintrack_config.schema import FintrackConfig
from fintrack_kernel.db.engine import init_engine_from_url
from fintrack_kernel.domain.policy import BalancePolicy
from fintrack_kernel.logging_config import configure_logging


def build_balance_policy(config: FintrackConfig) -> BalancePolicy:
    """Build the kernel BalancePolicy from the balance section."""
    return BalancePolicy(guard_all_debits=config.balance.guard_all_debits)


def init_engine_from_config(config: FintrackConfig) -> Engine:
    """Initialize the shared engine and session factory from config."""
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )


def configure_logging_from_config(config: FintrackConfig) -> None:
    """Configure kernel logging at the configured level (idempotent)."""
    configure_logging(level=logging.getLevelName(config.logging.level))
