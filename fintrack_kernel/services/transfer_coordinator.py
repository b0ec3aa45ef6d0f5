"""
TransferCoordinator -- atomic two-account transfers with an audit row.

Responsibility:
    Debits the source account, credits the destination account and writes
    a Transfer record, all inside the caller's transaction.

Architecture position:
    Kernel > Services.  Called by LedgerOrchestrator.

Invariants enforced:
    - amount > 0 and source != destination, checked before any read.
    - Both accounts must exist and belong to the caller; ownership is
      checked before any row is locked.
    - Account rows are locked in id order (BalanceMutator.lock_accounts),
      so opposing transfers between the same two accounts cannot deadlock.
    - The source debit is always guarded against overdraft.
    - Debit, credit and Transfer row commit together or not at all.

Failure modes:
    - InvalidAmountError / SelfTransferError.
    - AccountNotFoundError / ForbiddenError.
    - InsufficientFundsError: source balance below amount.
"""

from typing import Any
from uuid import UUID

from fintrack_kernel.db.types import parse_amount
from fintrack_kernel.domain.dtos import TransferInfo, TransferResult
from fintrack_kernel.domain.validation import optional_text
from fintrack_kernel.exceptions import SelfTransferError
from fintrack_kernel.logging_config import get_logger
from fintrack_kernel.models.account import Account
from fintrack_kernel.models.movement import Transfer
from fintrack_kernel.services.balance_mutator import BalanceMutator
from fintrack_kernel.services.base import BaseService
from fintrack_kernel.services.ownership import OwnershipGuard

logger = get_logger("services.transfer")


class TransferCoordinator(BaseService[Transfer]):
    """Moves money between two accounts owned by the same user."""

    def transfer(
        self,
        user_id: UUID,
        source_account_id: UUID,
        destination_account_id: UUID,
        amount: Any,
        description: Any = None,
    ) -> TransferResult:
        """
        Transfer amount from source to destination.

        Returns:
            TransferResult with the Transfer snapshot and both new balances.
        """
        value = parse_amount(amount)
        if source_account_id == destination_account_id:
            raise SelfTransferError(str(source_account_id))
        note = optional_text(description)

        balances = BalanceMutator(self.session)
        guard = OwnershipGuard(self.session)

        # Ownership first: foreign rows are never locked.
        guard.load_owned(Account, source_account_id, user_id)
        guard.load_owned(Account, destination_account_id, user_id)

        locked = balances.lock_accounts(source_account_id, destination_account_id)
        source = locked[source_account_id]
        destination = locked[destination_account_id]

        debit = balances.apply(source, -value, allow_negative=False)
        credit = balances.apply(destination, value)

        transfer = Transfer(
            user_id=user_id,
            source_account_id=source.id,
            destination_account_id=destination.id,
            amount=value,
            description=note,
        )
        self.session.add(transfer)
        self.session.flush()

        logger.info(
            "transfer_completed",
            extra={
                "transfer_id": str(transfer.id),
                "source_account_id": str(source.id),
                "destination_account_id": str(destination.id),
                "amount": str(value),
            },
        )
        return TransferResult(
            transfer=TransferInfo.from_model(transfer),
            source_balance=debit.new_balance,
            destination_balance=credit.new_balance,
        )
