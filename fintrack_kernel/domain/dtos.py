"""
Immutable data transfer objects returned by kernel services and selectors.

Services never hand ORM instances to callers; every public method returns one
of these frozen dataclasses so results stay valid after the session closes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from fintrack_kernel.models.account import Account
from fintrack_kernel.models.ledger import EntryKind, Expense, Income
from fintrack_kernel.models.movement import Transfer
from fintrack_kernel.models.saving_goal import SavingGoal


@dataclass(frozen=True)
class AccountInfo:
    id: UUID
    user_id: UUID
    name: str
    account_type: str | None
    initial_balance: Decimal
    current_balance: Decimal

    @classmethod
    def from_model(cls, account: Account) -> AccountInfo:
        return cls(
            id=account.id,
            user_id=account.user_id,
            name=account.name,
            account_type=account.account_type,
            initial_balance=account.initial_balance,
            current_balance=account.current_balance,
        )


@dataclass(frozen=True)
class LedgerEntryInfo:
    """An Expense or Income; label is the category or the source."""

    id: UUID
    kind: EntryKind
    user_id: UUID
    account_id: UUID
    amount: Decimal
    entry_date: date
    label: str
    description: str | None

    @classmethod
    def from_model(cls, entry: Expense | Income) -> LedgerEntryInfo:
        return cls(
            id=entry.id,
            kind=entry.kind,
            user_id=entry.user_id,
            account_id=entry.account_id,
            amount=entry.amount,
            entry_date=entry.entry_date,
            label=entry.label,
            description=entry.description,
        )


@dataclass(frozen=True)
class SavingGoalInfo:
    id: UUID
    user_id: UUID
    name: str
    target_amount: Decimal
    current_saved_amount: Decimal
    is_completed: bool

    @classmethod
    def from_model(cls, goal: SavingGoal) -> SavingGoalInfo:
        return cls(
            id=goal.id,
            user_id=goal.user_id,
            name=goal.name,
            target_amount=goal.target_amount,
            current_saved_amount=goal.current_saved_amount,
            is_completed=goal.is_completed,
        )

    @property
    def remaining_target(self) -> Decimal:
        return self.target_amount - self.current_saved_amount


@dataclass(frozen=True)
class TransferInfo:
    id: UUID
    user_id: UUID
    source_account_id: UUID
    destination_account_id: UUID
    amount: Decimal
    description: str | None

    @classmethod
    def from_model(cls, transfer: Transfer) -> TransferInfo:
        return cls(
            id=transfer.id,
            user_id=transfer.user_id,
            source_account_id=transfer.source_account_id,
            destination_account_id=transfer.destination_account_id,
            amount=transfer.amount,
            description=transfer.description,
        )


@dataclass(frozen=True)
class BalanceChange:
    """One applied balance delta: previous + delta == new."""

    account_id: UUID
    previous_balance: Decimal
    delta: Decimal
    new_balance: Decimal


@dataclass(frozen=True)
class EntryResult:
    """Result of creating, updating or deleting a ledger entry."""

    entry: LedgerEntryInfo
    new_account_balance: Decimal


@dataclass(frozen=True)
class TransferResult:
    transfer: TransferInfo
    source_balance: Decimal
    destination_balance: Decimal


@dataclass(frozen=True)
class AllocationResult:
    allocation_id: UUID
    goal: SavingGoalInfo
    account_id: UUID
    amount: Decimal
    new_account_balance: Decimal


@dataclass(frozen=True)
class DepositResult:
    deposit_id: UUID
    account_id: UUID
    amount: Decimal
    description: str | None
    new_account_balance: Decimal


@dataclass(frozen=True)
class BudgetRecommendationInfo:
    user_id: UUID
    month: str
    recommended_amount: Decimal


@dataclass(frozen=True)
class BalanceBreakdown:
    """
    Every stored effect on one account, and whether they add up.

    derived_balance = initial + incomes + deposits + transfers_in
                      - expenses - transfers_out - allocations
    """

    account_id: UUID
    initial_balance: Decimal
    incomes: Decimal
    deposits: Decimal
    transfers_in: Decimal
    expenses: Decimal
    transfers_out: Decimal
    allocations: Decimal
    stored_balance: Decimal

    @property
    def derived_balance(self) -> Decimal:
        return (
            self.initial_balance
            + self.incomes
            + self.deposits
            + self.transfers_in
            - self.expenses
            - self.transfers_out
            - self.allocations
        )

    @property
    def is_consistent(self) -> bool:
        return self.derived_balance == self.stored_balance
