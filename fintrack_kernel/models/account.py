"""
Module: fintrack_kernel.models.account
Responsibility: ORM persistence for a user's money accounts -- the target of
    every expense, income, deposit, transfer and goal allocation.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    current_balance == initial_balance
                       + incomes + deposits + transfers in
                       - expenses - transfers out - goal allocations
    at every commit boundary.  current_balance is written only by
    BalanceMutator; initial_balance never changes after creation.

Failure modes:
    - AccountNotFoundError when an operation references a missing account.
    - AccountReferencedError when deletion is attempted while ledger rows
      still reference the account.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fintrack_kernel.db.base import TrackedBase, UUIDString
from fintrack_kernel.db.types import ZERO, Money

DEFAULT_ACCOUNT_NAME = "Main Account"


class Account(TrackedBase):
    """
    A single money account owned by one user.

    Contract:
        current_balance is mutated only through BalanceMutator, always in
        the same transaction as the ledger row that explains the change.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        Index("idx_account_user", "user_id"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Free-form label ("cash", "bank", "e-wallet", ...)
    account_type: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    initial_balance: Mapped[Money] = mapped_column(
        nullable=False,
        default=ZERO,
    )

    current_balance: Mapped[Money] = mapped_column(
        nullable=False,
        default=ZERO,
    )

    # Bumped on every balance write; a stale writer fails instead of
    # overwriting a newer balance.
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Account {self.name}: {self.current_balance}>"

    def can_cover(self, amount: Decimal) -> bool:
        """True iff debiting amount keeps the balance non-negative."""
        return self.current_balance - amount >= 0
