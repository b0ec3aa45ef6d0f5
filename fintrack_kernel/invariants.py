"""
Kernel Invariants Contract.

These invariants are structural law.  No configuration value or
BalancePolicy setting may switch them off; policy only decides which
income debits are guarded, never whether balances and ledger rows move
together.

This module exists solely to declare them.  Enforcement is distributed
across BalanceMutator, LedgerEntryManager, TransferCoordinator,
SavingGoalAllocator, OwnershipGuard and session_scope.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    BALANCE_CONSISTENCY = "balance_consistency"
    """current_balance equals initial_balance plus every stored ledger
    effect at each commit boundary.  Checked by
    LedgerSelector.balance_breakdown()."""

    ATOMIC_UNIT = "atomic_unit"
    """A balance delta and the row that explains it commit together or not
    at all.  Enforced by flush-only services inside session_scope()."""

    NO_LOST_UPDATE = "no_lost_update"
    """Concurrent writers to one account serialize on a row lock or fail
    on a version check.  Enforced by BalanceMutator."""

    OWNERSHIP = "ownership"
    """Every referenced record belongs to the acting user.  Enforced by
    OwnershipGuard before any write or single-record read."""

    EXACT_MONEY = "exact_money"
    """Money is Decimal with cent precision end to end.  Enforced by
    parse_amount() at the boundary and Numeric(20, 2) columns."""

    GOAL_BOUNDS = "goal_bounds"
    """0 <= current_saved_amount <= target_amount.  Enforced by
    SavingGoalAllocator and a CHECK constraint."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "fintrack_services",
    "fintrack_config",
)
