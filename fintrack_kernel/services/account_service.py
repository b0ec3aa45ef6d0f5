"""
AccountService -- account lifecycle and direct deposits.

Responsibility:
    Opens accounts (including the default account every new user gets),
    renames them, credits deposits and deletes accounts that no ledger
    record references.

Architecture position:
    Kernel > Services.  Called by LedgerOrchestrator.

Invariants enforced:
    - A new account starts with current_balance == initial_balance >= 0.
    - A deposit credits the balance and writes a Deposit row in the same
      transaction.
    - An account referenced by any expense, income, transfer, allocation or
      deposit cannot be deleted; deleting it would orphan the records that
      explain its balance.

Failure modes:
    - AccountNotFoundError / ForbiddenError.
    - MissingFieldError / InvalidAmountError on bad input.
    - AccountReferencedError: deletion of a referenced account.
    - OptimisticLockError: the account row changed after it was read.
"""

from typing import Any
from uuid import UUID

from sqlalchemy.orm.exc import StaleDataError

from fintrack_kernel.db.types import ZERO, parse_amount
from fintrack_kernel.domain.dtos import AccountInfo, DepositResult
from fintrack_kernel.domain.validation import optional_text, require_text
from fintrack_kernel.exceptions import AccountReferencedError, OptimisticLockError
from fintrack_kernel.logging_config import get_logger
from fintrack_kernel.models.account import DEFAULT_ACCOUNT_NAME, Account
from fintrack_kernel.models.movement import Deposit
from fintrack_kernel.services.balance_mutator import BalanceMutator
from fintrack_kernel.services.base import BaseService
from fintrack_kernel.services.ownership import OwnershipGuard

logger = get_logger("services.account")


class AccountService(BaseService[Account]):
    """Write-side operations on accounts."""

    def open_account(
        self,
        user_id: UUID,
        name: Any,
        account_type: Any = None,
        initial_balance: Any = ZERO,
    ) -> AccountInfo:
        """
        Open an account with an optional non-negative starting balance.

        The starting balance is recorded as initial_balance and is the base
        every later ledger effect is added to.
        """
        account_name = require_text(name, "name")
        opening = parse_amount(initial_balance, allow_zero=True)

        account = Account(
            user_id=user_id,
            name=account_name,
            account_type=optional_text(account_type),
            initial_balance=opening,
            current_balance=opening,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_opened",
            extra={
                "account_id": str(account.id),
                "initial_balance": str(opening),
            },
        )
        return AccountInfo.from_model(account)

    def open_default_account(self, user_id: UUID) -> AccountInfo:
        """Open the zero-balance account created at user registration."""
        return self.open_account(user_id, DEFAULT_ACCOUNT_NAME)

    def rename_account(
        self,
        user_id: UUID,
        account_id: UUID,
        name: Any,
        account_type: Any = None,
    ) -> AccountInfo:
        """Change name (and account_type when given); never the balance."""
        account_name = require_text(name, "name")
        account = OwnershipGuard(self.session).load_owned(
            Account, account_id, user_id, for_update=True
        )

        account.name = account_name
        if account_type is not None:
            account.account_type = optional_text(account_type)
        self._flush_account(account)

        logger.info("account_renamed", extra={"account_id": str(account.id)})
        return AccountInfo.from_model(account)

    def deposit(
        self,
        user_id: UUID,
        account_id: UUID,
        amount: Any,
        description: Any = None,
    ) -> DepositResult:
        value = parse_amount(amount)
        note = optional_text(description)

        balances = BalanceMutator(self.session)
        account = OwnershipGuard(self.session).load_owned(
            Account, account_id, user_id, for_update=True
        )
        change = balances.apply(account, value)

        deposit = Deposit(
            user_id=user_id,
            account_id=account.id,
            amount=value,
            description=note,
        )
        self.session.add(deposit)
        self.session.flush()

        logger.info(
            "deposit_recorded",
            extra={
                "deposit_id": str(deposit.id),
                "account_id": str(account.id),
                "amount": str(value),
                "new_balance": str(change.new_balance),
            },
        )
        return DepositResult(
            deposit_id=deposit.id,
            account_id=account.id,
            amount=value,
            description=note,
            new_account_balance=change.new_balance,
        )

    def delete_account(self, user_id: UUID, account_id: UUID) -> AccountInfo:
        """
        Delete an account that nothing references.

        Raises:
            AccountReferencedError: If any ledger record points at it.
        """
        account = OwnershipGuard(self.session).load_owned(
            Account, account_id, user_id, for_update=True
        )

        from fintrack_kernel.selectors.ledger_selector import LedgerSelector

        references = LedgerSelector(self.session).count_account_references(account.id)
        if references:
            raise AccountReferencedError(str(account.id), references)

        snapshot = AccountInfo.from_model(account)
        self.session.delete(account)
        self._flush_account(account)

        logger.info("account_deleted", extra={"account_id": str(snapshot.id)})
        return snapshot

    def _flush_account(self, account: Account) -> None:
        try:
            self.session.flush()
        except StaleDataError as exc:
            raise OptimisticLockError("account", str(account.id)) from exc

