"""
Module: fintrack_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries: expense, income and transfer
    listings, the monthly expense series fed to budget prediction, and the
    balance breakdown that recomputes an account balance from stored rows.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - balance_breakdown() derives the balance purely from stored rows:

          initial + incomes + deposits + transfers_in
                  - expenses - transfers_out - allocations

      and reports it next to the stored current_balance.  The two are
      equal at every commit boundary; a mismatch means a write bypassed
      BalanceMutator.
    - Listings are filtered by user_id; single-entry reads are
      ownership-checked.

Audit relevance:
    verify_user_accounts() is the consistency check run after every
    mutation in the test suite and available to operators as a health
    check.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select

from fintrack_kernel.db.types import ZERO, round_money
from fintrack_kernel.domain.dtos import (
    BalanceBreakdown,
    LedgerEntryInfo,
    TransferInfo,
)
from fintrack_kernel.exceptions import AccountNotFoundError
from fintrack_kernel.logging_config import get_logger
from fintrack_kernel.models.account import Account
from fintrack_kernel.models.ledger import Expense, Income
from fintrack_kernel.models.movement import Deposit, GoalAllocation, Transfer
from fintrack_kernel.selectors.base import BaseSelector
from fintrack_kernel.services.ownership import OwnershipGuard

logger = get_logger("selectors.ledger")


def _money(value) -> Decimal:
    """Normalize an aggregate result (None, float on SQLite) to cents."""
    if value is None:
        return ZERO
    return round_money(Decimal(str(value)))


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Return (year, month) offset calendar months away from (year, month)."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


class LedgerSelector(BaseSelector[Expense]):
    """Reads ledger entries and recomputes balances from them."""

    # Entries

    def list_expenses(self, user_id: UUID) -> list[LedgerEntryInfo]:
        """Expenses of user_id, newest date first."""
        rows = self.session.execute(
            select(Expense)
            .where(Expense.user_id == user_id)
            .order_by(Expense.entry_date.desc(), Expense.created_at.desc())
        ).scalars()
        return [LedgerEntryInfo.from_model(row) for row in rows]

    def list_incomes(self, user_id: UUID) -> list[LedgerEntryInfo]:
        """Incomes of user_id, newest date first."""
        rows = self.session.execute(
            select(Income)
            .where(Income.user_id == user_id)
            .order_by(Income.entry_date.desc(), Income.created_at.desc())
        ).scalars()
        return [LedgerEntryInfo.from_model(row) for row in rows]

    def get_expense(self, user_id: UUID, expense_id: UUID) -> LedgerEntryInfo:
        expense = OwnershipGuard(self.session).load_owned(Expense, expense_id, user_id)
        return LedgerEntryInfo.from_model(expense)

    def get_income(self, user_id: UUID, income_id: UUID) -> LedgerEntryInfo:
        income = OwnershipGuard(self.session).load_owned(Income, income_id, user_id)
        return LedgerEntryInfo.from_model(income)

    def list_transfers(self, user_id: UUID) -> list[TransferInfo]:
        """Transfers made by user_id, newest first."""
        rows = self.session.execute(
            select(Transfer)
            .where(Transfer.user_id == user_id)
            .order_by(Transfer.created_at.desc())
        ).scalars()
        return [TransferInfo.from_model(row) for row in rows]

    # Consistency

    def balance_breakdown(self, account_id: UUID) -> BalanceBreakdown:
        """
        Recompute an account balance from every stored effect.

        Raises:
            AccountNotFoundError: If the account does not exist.
        """
        account = self.session.execute(
            select(Account)
            .where(Account.id == account_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))

        def total(model, column, *criteria) -> Decimal:
            return _money(
                self.session.execute(
                    select(func.sum(model.amount)).where(column == account_id, *criteria)
                ).scalar_one()
            )

        return BalanceBreakdown(
            account_id=account.id,
            initial_balance=account.initial_balance,
            incomes=total(Income, Income.account_id),
            deposits=total(Deposit, Deposit.account_id),
            transfers_in=total(Transfer, Transfer.destination_account_id),
            expenses=total(Expense, Expense.account_id),
            transfers_out=total(Transfer, Transfer.source_account_id),
            allocations=total(GoalAllocation, GoalAllocation.account_id),
            stored_balance=account.current_balance,
        )

    def verify_user_accounts(self, user_id: UUID) -> list[BalanceBreakdown]:
        """
        Breakdown for every account of user_id.

        Inconsistent accounts are logged at ERROR; callers decide what to
        do with them.
        """
        account_ids = self.session.execute(
            select(Account.id).where(Account.user_id == user_id).order_by(Account.id)
        ).scalars().all()
        breakdowns = [self.balance_breakdown(account_id) for account_id in account_ids]
        for breakdown in breakdowns:
            if not breakdown.is_consistent:
                logger.error(
                    "balance_invariant_violated",
                    extra={
                        "account_id": str(breakdown.account_id),
                        "stored_balance": str(breakdown.stored_balance),
                        "derived_balance": str(breakdown.derived_balance),
                    },
                )
        return breakdowns

    def count_account_references(self, account_id: UUID) -> int:
        """Number of ledger rows of any kind that point at account_id."""
        total = 0
        for model in (Expense, Income, Deposit, GoalAllocation):
            total += self.session.execute(
                select(func.count()).select_from(model).where(
                    model.account_id == account_id
                )
            ).scalar_one()
        total += self.session.execute(
            select(func.count()).select_from(Transfer).where(
                or_(
                    Transfer.source_account_id == account_id,
                    Transfer.destination_account_id == account_id,
                )
            )
        ).scalar_one()
        return total

    # Budget input

    def monthly_expense_series(
        self,
        user_id: UUID,
        as_of: date,
        months: int = 6,
    ) -> list[Decimal]:
        """
        Total expenses per calendar month for the `months` full months
        before as_of's month, oldest first.  Months without expenses are 0.
        """
        start_year, start_month = shift_month(as_of.year, as_of.month, -months)
        start = date(start_year, start_month, 1)
        end = date(as_of.year, as_of.month, 1)

        rows = self.session.execute(
            select(Expense.entry_date, Expense.amount).where(
                Expense.user_id == user_id,
                Expense.entry_date >= start,
                Expense.entry_date < end,
            )
        ).all()

        totals: dict[str, Decimal] = {}
        for entry_date, amount in rows:
            key = month_key(entry_date.year, entry_date.month)
            totals[key] = totals.get(key, ZERO) + amount

        series = []
        for offset in range(months, 0, -1):
            year, month = shift_month(as_of.year, as_of.month, -offset)
            series.append(totals.get(month_key(year, month), ZERO))
        return series
