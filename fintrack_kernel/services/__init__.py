"""Services for the Fintrack kernel (write side)."""

from fintrack_kernel.services.account_service import AccountService
from fintrack_kernel.services.balance_mutator import BalanceMutator
from fintrack_kernel.services.budget_service import BudgetService
from fintrack_kernel.services.ledger_entry_manager import LedgerEntryManager
from fintrack_kernel.services.ownership import OwnershipGuard
from fintrack_kernel.services.saving_goal_allocator import SavingGoalAllocator
from fintrack_kernel.services.transfer_coordinator import TransferCoordinator

__all__ = [
    "AccountService",
    "BalanceMutator",
    "BudgetService",
    "LedgerEntryManager",
    "OwnershipGuard",
    "SavingGoalAllocator",
    "TransferCoordinator",
]
