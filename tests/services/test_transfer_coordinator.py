"""
TransferCoordinator unit tests.

Tests cover:
- Debit, credit and Transfer row written together
- Overdraft, self-transfer and invalid amount rejection
- Ownership of both accounts
- Deterministic lock order
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from fintrack_kernel.exceptions import (
    AccountNotFoundError,
    ForbiddenError,
    InsufficientFundsError,
    InvalidAmountError,
    SelfTransferError,
)
from fintrack_kernel.models.movement import Transfer
from fintrack_kernel.selectors.account_selector import AccountSelector
from fintrack_kernel.selectors.ledger_selector import LedgerSelector
from fintrack_kernel.services.account_service import AccountService
from fintrack_kernel.services.balance_mutator import BalanceMutator
from fintrack_kernel.services.transfer_coordinator import TransferCoordinator


@pytest.fixture
def coordinator(session):
    return TransferCoordinator(session)


@pytest.fixture
def account_b(session, user_id):
    """Second account with 10,000 opening balance."""
    return AccountService(session).open_account(
        user_id, "Account B", "cash", Decimal("10000")
    )


def _transfer_count(session) -> int:
    return session.execute(select(func.count()).select_from(Transfer)).scalar_one()


class TestTransfer:

    def test_transfer_moves_money(self, session, coordinator, account, account_b, user_id):
        result = coordinator.transfer(user_id, account.id, account_b.id, "40000", "savings")

        assert result.source_balance == Decimal("60000")
        assert result.destination_balance == Decimal("50000")
        assert result.transfer.amount == Decimal("40000")
        assert result.transfer.description == "savings"
        assert result.transfer.source_account_id == account.id
        assert result.transfer.destination_account_id == account_b.id

        selector = LedgerSelector(session)
        for account_id in (account.id, account_b.id):
            assert selector.balance_breakdown(account_id).is_consistent

    def test_total_balance_is_preserved(self, session, coordinator, account, account_b, user_id):
        before = AccountSelector(session).total_balance(user_id)

        coordinator.transfer(user_id, account_b.id, account.id, "2500.25")

        assert AccountSelector(session).total_balance(user_id) == before

    def test_transfer_of_whole_balance_is_allowed(self, coordinator, account, account_b, user_id):
        result = coordinator.transfer(user_id, account_b.id, account.id, "10000")
        assert result.source_balance == Decimal("0")

    def test_overdraft_rejected_and_nothing_written(
        self, session, coordinator, account, account_b, user_id
    ):
        with pytest.raises(InsufficientFundsError) as exc_info:
            coordinator.transfer(user_id, account_b.id, account.id, "10000.01")

        assert exc_info.value.available == Decimal("10000")
        assert exc_info.value.requested == Decimal("10000.01")
        selector = AccountSelector(session)
        assert selector.get_account(user_id, account.id).current_balance == Decimal("100000")
        assert selector.get_account(user_id, account_b.id).current_balance == Decimal("10000")
        assert _transfer_count(session) == 0


class TestTransferRejections:

    def test_self_transfer_rejected(self, coordinator, account, user_id):
        with pytest.raises(SelfTransferError) as exc_info:
            coordinator.transfer(user_id, account.id, account.id, "10")
        assert exc_info.value.http_status == 400

    @pytest.mark.parametrize("amount", [0, "-10", "x"])
    def test_invalid_amount_rejected(self, coordinator, account, account_b, user_id, amount):
        with pytest.raises(InvalidAmountError):
            coordinator.transfer(user_id, account.id, account_b.id, amount)

    def test_amount_checked_before_self_transfer(self, coordinator, account, user_id):
        with pytest.raises(InvalidAmountError):
            coordinator.transfer(user_id, account.id, account.id, "0")

    def test_unknown_destination_not_found(self, session, coordinator, account, user_id):
        with pytest.raises(AccountNotFoundError):
            coordinator.transfer(user_id, account.id, uuid4(), "10")
        assert _transfer_count(session) == 0

    def test_foreign_destination_forbidden(
        self, session, coordinator, account, user_id, other_user_id
    ):
        foreign = AccountService(session).open_account(other_user_id, "Theirs")

        with pytest.raises(ForbiddenError):
            coordinator.transfer(user_id, account.id, foreign.id, "10")
        assert AccountSelector(session).get_account(
            user_id, account.id
        ).current_balance == Decimal("100000")

    def test_foreign_source_forbidden(self, session, coordinator, account, other_user_id):
        mine = AccountService(session).open_account(other_user_id, "Mine")

        with pytest.raises(ForbiddenError):
            coordinator.transfer(other_user_id, account.id, mine.id, "10")


class TestLockOrder:
    """Opposing transfers must lock the same rows in the same order."""

    def test_lock_accounts_orders_by_id(self, session, account, account_b):
        mutator = BalanceMutator(session)
        calls = []
        original = mutator.lock_account

        def recording(account_id):
            calls.append(account_id)
            return original(account_id)

        mutator.lock_account = recording
        mutator.lock_accounts(account_b.id, account.id)
        forward = list(calls)
        calls.clear()
        mutator.lock_accounts(account.id, account_b.id)

        assert forward == calls
        assert forward == sorted([account.id, account_b.id], key=str)

    def test_lock_accounts_returns_each_account(self, session, account, account_b):
        locked = BalanceMutator(session).lock_accounts(account.id, account_b.id)
        assert set(locked) == {account.id, account_b.id}
        assert locked[account.id].name == "Account A"


class TestForeignTransferTakesNoLocks:

    def test_ownership_is_checked_before_locking(
        self, session, coordinator, account, other_user_id, locking_selects
    ):
        theirs = AccountService(session).open_account(other_user_id, "Theirs")
        locking_selects.clear()

        with pytest.raises(ForbiddenError):
            coordinator.transfer(other_user_id, account.id, theirs.id, "10")

        assert locking_selects == []

    def test_owned_transfer_locks_both_accounts(
        self, coordinator, account, account_b, user_id, locking_selects
    ):
        locking_selects.clear()

        coordinator.transfer(user_id, account.id, account_b.id, "10")

        assert len([sql for sql in locking_selects if "FROM accounts" in sql]) == 2
