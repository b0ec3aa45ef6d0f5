"""Domain models for the Fintrack kernel."""

from fintrack_kernel.models.account import DEFAULT_ACCOUNT_NAME, Account
from fintrack_kernel.models.budget import BudgetRecommendation
from fintrack_kernel.models.ledger import EntryKind, Expense, Income
from fintrack_kernel.models.movement import Deposit, GoalAllocation, Transfer
from fintrack_kernel.models.saving_goal import SavingGoal

__all__ = [
    "Account",
    "DEFAULT_ACCOUNT_NAME",
    "BudgetRecommendation",
    "Deposit",
    "EntryKind",
    "Expense",
    "GoalAllocation",
    "Income",
    "SavingGoal",
    "Transfer",
]
