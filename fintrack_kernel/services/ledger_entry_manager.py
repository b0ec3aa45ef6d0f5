"""
LedgerEntryManager -- create, update and delete expenses and incomes.

Responsibility:
    Every ledger entry write is paired with the balance delta it implies,
    inside the caller's transaction:

        create   expense: -amount          income: +amount
        update   expense: -(new - old)     income: +(new - old)
        delete   expense: +old             income: -old

Architecture position:
    Kernel > Services.  Uses OwnershipGuard for every referenced record and
    BalanceMutator for every balance change.  Called by LedgerOrchestrator.

Invariants enforced:
    - Input is validated (amount, date, required text) before any row is
      read, so malformed requests never touch the store.
    - The balance delta is applied first and the entry row is written
      second, both before the caller commits.  If either step raises, the
      caller's rollback discards both.
    - Debits caused by the caller's own amount (expense creation, expense
      increase) are always guarded.  Income decreases and income deletion
      follow BalancePolicy.

Failure modes:
    - InvalidInputError family: bad amount, date or missing field.
    - AccountNotFoundError / ExpenseNotFoundError / IncomeNotFoundError.
    - ForbiddenError: the entry or account belongs to another user.
    - InsufficientFundsError: a guarded debit would overdraw the account.
    - OptimisticLockError: the entry row was changed or deleted by another
      transaction after it was read.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fintrack_kernel.db.types import parse_amount
from fintrack_kernel.domain.dtos import EntryResult, LedgerEntryInfo
from fintrack_kernel.domain.policy import DEFAULT_BALANCE_POLICY, BalancePolicy
from fintrack_kernel.domain.validation import (
    optional_text,
    parse_entry_date,
    require_text,
)
from fintrack_kernel.exceptions import OptimisticLockError
from fintrack_kernel.logging_config import get_logger
from fintrack_kernel.models.account import Account
from fintrack_kernel.models.ledger import EntryKind, Expense, Income
from fintrack_kernel.services.balance_mutator import BalanceMutator
from fintrack_kernel.services.base import BaseService
from fintrack_kernel.services.ownership import OwnershipGuard

logger = get_logger("services.ledger_entry")

_MODELS: dict[EntryKind, type[Expense] | type[Income]] = {
    EntryKind.EXPENSE: Expense,
    EntryKind.INCOME: Income,
}

# Name of the kind-specific text column (and of the request field).
_LABEL_FIELD: dict[EntryKind, str] = {
    EntryKind.EXPENSE: "category",
    EntryKind.INCOME: "source",
}


class LedgerEntryManager(BaseService[Expense]):
    """
    Writes expenses and incomes together with their balance effects.

    Contract:
        Each public method flushes the entry and the account in the
        caller's session and returns an EntryResult carrying the entry
        snapshot and the account balance after the change.
    """

    def __init__(
        self,
        session: Session,
        policy: BalancePolicy | None = None,
    ):
        super().__init__(session)
        self._policy = policy or DEFAULT_BALANCE_POLICY
        self._guard = OwnershipGuard(session)
        self._balances = BalanceMutator(session)

    # Expense

    def create_expense(
        self,
        user_id: UUID,
        account_id: UUID,
        amount: Any,
        entry_date: Any,
        category: Any,
        description: Any = None,
    ) -> EntryResult:
        return self._create(
            EntryKind.EXPENSE, user_id, account_id, amount, entry_date,
            category, description,
        )

    def update_expense(
        self,
        user_id: UUID,
        expense_id: UUID,
        amount: Any,
        entry_date: Any,
        category: Any,
        description: Any = None,
    ) -> EntryResult:
        return self._update(
            EntryKind.EXPENSE, user_id, expense_id, amount, entry_date,
            category, description,
        )

    def delete_expense(self, user_id: UUID, expense_id: UUID) -> EntryResult:
        return self._delete(EntryKind.EXPENSE, user_id, expense_id)

    # Income

    def create_income(
        self,
        user_id: UUID,
        account_id: UUID,
        amount: Any,
        entry_date: Any,
        source: Any,
        description: Any = None,
    ) -> EntryResult:
        return self._create(
            EntryKind.INCOME, user_id, account_id, amount, entry_date,
            source, description,
        )

    def update_income(
        self,
        user_id: UUID,
        income_id: UUID,
        amount: Any,
        entry_date: Any,
        source: Any,
        description: Any = None,
    ) -> EntryResult:
        return self._update(
            EntryKind.INCOME, user_id, income_id, amount, entry_date,
            source, description,
        )

    def delete_income(self, user_id: UUID, income_id: UUID) -> EntryResult:
        return self._delete(EntryKind.INCOME, user_id, income_id)

    # Shared flows

    def _create(
        self,
        kind: EntryKind,
        user_id: UUID,
        account_id: UUID,
        amount: Any,
        entry_date: Any,
        label: Any,
        description: Any,
    ) -> EntryResult:
        value = parse_amount(amount)
        when = parse_entry_date(entry_date)
        label_text = require_text(label, _LABEL_FIELD[kind])
        note = optional_text(description)

        account = self._guard.load_owned(Account, account_id, user_id, for_update=True)
        change = self._balances.apply(
            account,
            kind.sign * value,
            allow_negative=self._allow_negative(kind, kind.sign * value),
        )

        entry = _MODELS[kind](
            user_id=user_id,
            account_id=account.id,
            amount=value,
            entry_date=when,
        )
        self._assign(kind, entry, when, label_text, note)
        self._persist_entry(kind, entry)

        logger.info(
            f"{kind.value}_created",
            extra={
                "entry_id": str(entry.id),
                "account_id": str(account.id),
                "amount": str(value),
                "new_balance": str(change.new_balance),
            },
        )
        return EntryResult(
            entry=LedgerEntryInfo.from_model(entry),
            new_account_balance=change.new_balance,
        )

    def _update(
        self,
        kind: EntryKind,
        user_id: UUID,
        entry_id: UUID,
        amount: Any,
        entry_date: Any,
        label: Any,
        description: Any,
    ) -> EntryResult:
        value = parse_amount(amount)
        when = parse_entry_date(entry_date)
        label_text = require_text(label, _LABEL_FIELD[kind])
        note = optional_text(description)

        entry = self._guard.load_owned(_MODELS[kind], entry_id, user_id, for_update=True)
        account = self._guard.load_owned(
            Account, entry.account_id, user_id, for_update=True
        )

        delta = kind.sign * (value - entry.amount)
        if delta:
            change = self._balances.apply(
                account, delta, allow_negative=self._allow_negative(kind, delta)
            )
            new_balance = change.new_balance
        else:
            new_balance = account.current_balance

        previous_amount = entry.amount
        entry.amount = value
        self._assign(kind, entry, when, label_text, note)
        self._persist_entry(kind, entry)

        logger.info(
            f"{kind.value}_updated",
            extra={
                "entry_id": str(entry.id),
                "account_id": str(account.id),
                "previous_amount": str(previous_amount),
                "amount": str(value),
                "delta": str(delta),
                "new_balance": str(new_balance),
            },
        )
        return EntryResult(
            entry=LedgerEntryInfo.from_model(entry),
            new_account_balance=new_balance,
        )

    def _delete(self, kind: EntryKind, user_id: UUID, entry_id: UUID) -> EntryResult:
        entry = self._guard.load_owned(_MODELS[kind], entry_id, user_id, for_update=True)
        account = self._guard.load_owned(
            Account, entry.account_id, user_id, for_update=True
        )
        snapshot = LedgerEntryInfo.from_model(entry)

        reversal = -kind.sign * entry.amount
        change = self._balances.apply(
            account, reversal, allow_negative=self._allow_negative(kind, reversal)
        )

        self.session.delete(entry)
        self._flush_entry(kind, entry)

        logger.info(
            f"{kind.value}_deleted",
            extra={
                "entry_id": str(snapshot.id),
                "account_id": str(account.id),
                "amount": str(snapshot.amount),
                "new_balance": str(change.new_balance),
            },
        )
        return EntryResult(entry=snapshot, new_account_balance=change.new_balance)

    # Helpers

    def _allow_negative(self, kind: EntryKind, delta: Decimal) -> bool:
        """Expense debits are always guarded; income debits follow the policy."""
        if delta >= 0:
            return True
        if kind is EntryKind.EXPENSE:
            return False
        return self._policy.allow_negative_for_reversal()

    @staticmethod
    def _assign(
        kind: EntryKind,
        entry: Expense | Income,
        when: date,
        label: str,
        description: str | None,
    ) -> None:
        entry.entry_date = when
        entry.description = description
        setattr(entry, _LABEL_FIELD[kind], label)

    def _persist_entry(self, kind: EntryKind, entry: Expense | Income) -> None:
        """Write the entry row; runs after the balance delta is flushed."""
        self.session.add(entry)
        self._flush_entry(kind, entry)

    def _flush_entry(self, kind: EntryKind, entry: Expense | Income) -> None:
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "entry_write_conflict",
                extra={"entry_id": str(entry.id), "kind": kind.value},
            )
            raise OptimisticLockError(kind.value, str(entry.id)) from exc
