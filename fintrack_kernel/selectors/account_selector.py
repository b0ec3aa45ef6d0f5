"""
Module: fintrack_kernel.selectors.account_selector
Responsibility: Read-only account queries for the acting user.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - A single-account read goes through OwnershipGuard: reading another
      user's account raises ForbiddenError exactly like a write would.
    - Two reads without an intervening mutation return identical values;
      nothing here writes.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from fintrack_kernel.db.types import ZERO, round_money
from fintrack_kernel.domain.dtos import AccountInfo
from fintrack_kernel.models.account import Account
from fintrack_kernel.selectors.base import BaseSelector
from fintrack_kernel.services.ownership import OwnershipGuard


class AccountSelector(BaseSelector[Account]):
    """Reads accounts and balances."""

    def get_account(self, user_id: UUID, account_id: UUID) -> AccountInfo:
        account = OwnershipGuard(self.session).load_owned(Account, account_id, user_id)
        return AccountInfo.from_model(account)

    def list_accounts(self, user_id: UUID) -> list[AccountInfo]:
        """All accounts of user_id, oldest first."""
        rows = self.session.execute(
            select(Account)
            .where(Account.user_id == user_id)
            .order_by(Account.created_at, Account.name)
        ).scalars()
        return [AccountInfo.from_model(account) for account in rows]

    def total_balance(self, user_id: UUID) -> Decimal:
        """Sum of current balances across the user's accounts (0 if none)."""
        total = self.session.execute(
            select(func.sum(Account.current_balance)).where(Account.user_id == user_id)
        ).scalar_one()
        if total is None:
            return ZERO
        return round_money(Decimal(str(total)))
