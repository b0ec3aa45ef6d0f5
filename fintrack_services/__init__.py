"""
fintrack_services -- transaction-owning entry points above the kernel.

Usage:
    from fintrack_config import get_active_config
    from fintrack_services import authenticate, build_orchestrator

    orchestrator = build_orchestrator(get_active_config())
    user_id = authenticate(verifier, token)
    result = orchestrator.create_expense(user_id, account_id, "30000", "2024-05-01", "Food")
"""

from __future__ import annotations

from fintrack_config.bridges import (
    build_balance_policy,
    configure_logging_from_config,
    init_engine_from_config,
)
from fintrack_config.schema import FintrackConfig
from fintrack_kernel.db.engine import get_session_factory
from fintrack_kernel.domain.clock import Clock
from fintrack_services.auth import TokenVerifier, authenticate, token_from_header
from fintrack_services.ledger_orchestrator import BudgetPredictor, LedgerOrchestrator

__all__ = [
    "BudgetPredictor",
    "LedgerOrchestrator",
    "TokenVerifier",
    "authenticate",
    "build_orchestrator",
    "token_from_header",
]


def build_orchestrator(
    config: FintrackConfig,
    clock: Clock | None = None,
) -> LedgerOrchestrator:
    """
    Wire a LedgerOrchestrator from configuration.

    Configures logging, initializes the shared engine (replacing any
    previous one) and builds the balance policy.
    """
    configure_logging_from_config(config)
    init_engine_from_config(config)
    return LedgerOrchestrator(
        get_session_factory(),
        policy=build_balance_policy(config),
        clock=clock,
        budget_history_months=config.budget.history_months,
    )
