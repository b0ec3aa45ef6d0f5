"""Selectors for the Fintrack kernel (read side)."""

from fintrack_kernel.selectors.account_selector import AccountSelector
from fintrack_kernel.selectors.goal_selector import GoalSelector
from fintrack_kernel.selectors.ledger_selector import LedgerSelector

__all__ = [
    "AccountSelector",
    "GoalSelector",
    "LedgerSelector",
]
