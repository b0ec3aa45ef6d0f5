"""
BalanceMutator -- the single writer of Account.current_balance.

Responsibility:
    Applies a signed delta to an account balance inside the caller's
    transaction, rejecting a guarded debit that would leave the balance
    below zero.

Architecture position:
    Kernel > Services.  Called by LedgerEntryManager, TransferCoordinator,
    SavingGoalAllocator and AccountService.  Nothing else assigns
    current_balance.

Invariants enforced:
    - Exact arithmetic: new = previous + delta on Decimal values; the
      result is never re-derived from a float.
    - No lost updates: the account row is read with SELECT ... FOR UPDATE
      (PostgreSQL serializes concurrent writers here) and written with a
      version check, so a writer holding a stale balance fails with
      OptimisticLockError instead of overwriting a newer one.
    - Guarded debits: unless allow_negative is set, a negative delta that
      would make the balance < 0 raises InsufficientFundsError and nothing
      is written.
    - Bounded balances: a credit that would push the balance above
      MAX_AMOUNT raises InvalidAmountError and nothing is written.

Failure modes:
    - AccountNotFoundError: No account with this id.
    - InsufficientFundsError: Guarded debit exceeds the available balance.
    - InvalidAmountError: Credit would exceed MAX_AMOUNT.
    - OptimisticLockError: Another transaction changed the row first.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from fintrack_kernel.db.types import MAX_AMOUNT
from fintrack_kernel.domain.dtos import BalanceChange
from fintrack_kernel.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    OptimisticLockError,
)
from fintrack_kernel.logging_config import get_logger
from fintrack_kernel.models.account import Account
from fintrack_kernel.services.base import BaseService

logger = get_logger("services.balance")


class BalanceMutator(BaseService[Account]):
    """
    Applies balance deltas to locked account rows.

    Contract:
        ``apply()`` expects an Account loaded in this session (ideally via
        ``lock_account()``); ``apply_delta()`` locks and applies in one call.
        Both flush, neither commits.
    """

    def lock_account(self, account_id: UUID) -> Account:
        """
        Read an account with a row lock and fresh column values.

        Raises:
            AccountNotFoundError: If the account does not exist.
        """
        account = self.session.execute(
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def lock_accounts(self, *account_ids: UUID) -> dict[UUID, Account]:
        """
        Lock several accounts in a deterministic order.

        Rows are always locked sorted by id so two transfers between the
        same pair of accounts cannot deadlock each other.
        """
        locked: dict[UUID, Account] = {}
        for account_id in sorted(set(account_ids), key=str):
            locked[account_id] = self.lock_account(account_id)
        return locked

    def apply(
        self,
        account: Account,
        delta: Decimal,
        *,
        allow_negative: bool = False,
    ) -> BalanceChange:
        """
        Add delta to account.current_balance and flush.

        Args:
            account: Account row, normally locked by lock_account().
            delta: Signed amount; negative values are debits.
            allow_negative: Skip the overdraft check for this debit.

        Returns:
            BalanceChange with previous and new balances.
        """
        previous = account.current_balance
        new_balance = previous + delta

        if delta < 0 and not allow_negative and not account.can_cover(-delta):
            logger.warning(
                "balance_guard_rejected",
                extra={
                    "account_id": str(account.id),
                    "available": str(previous),
                    "requested": str(-delta),
                },
            )
            raise InsufficientFundsError(str(account.id), previous, -delta)
        if delta > 0 and new_balance > MAX_AMOUNT:
            raise InvalidAmountError(delta, "exceeds maximum balance")

        account.current_balance = new_balance
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "balance_write_conflict",
                extra={"account_id": str(account.id)},
            )
            raise OptimisticLockError("account", str(account.id)) from exc

        logger.debug(
            "balance_delta_applied",
            extra={
                "account_id": str(account.id),
                "previous_balance": str(previous),
                "delta": str(delta),
                "new_balance": str(new_balance),
            },
        )
        return BalanceChange(
            account_id=account.id,
            previous_balance=previous,
            delta=delta,
            new_balance=new_balance,
        )

    def apply_delta(
        self,
        account_id: UUID,
        delta: Decimal,
        *,
        allow_negative: bool = False,
    ) -> BalanceChange:
        """Lock account_id and apply delta to it."""
        account = self.lock_account(account_id)
        return self.apply(account, delta, allow_negative=allow_negative)
