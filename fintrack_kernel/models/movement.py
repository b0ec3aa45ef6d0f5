"""
Module: fintrack_kernel.models.movement
Responsibility: Append-only records of balance movements that are not
    editable ledger entries: transfers between two accounts, allocations
    from an account into a saving goal, and direct deposits.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - amount > 0 on every row.
    - Each row is written in the same transaction as the balance update(s)
      it records, so the account balance invariant can be recomputed from
      stored rows alone.

Audit relevance:
    These rows are the audit trail for money that moved without an
    Expense or Income row.  They are never updated or deleted by the kernel.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from fintrack_kernel.db.base import TrackedBase, UUIDString
from fintrack_kernel.db.types import Money


class Transfer(TrackedBase):
    """Money moved between two accounts of the same user."""

    __tablename__ = "transfers"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transfer_amount_positive"),
        CheckConstraint(
            "source_account_id <> destination_account_id",
            name="ck_transfer_distinct_accounts",
        ),
        Index("idx_transfer_user", "user_id"),
        Index("idx_transfer_source", "source_account_id"),
        Index("idx_transfer_destination", "destination_account_id"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    source_account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    destination_account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    amount: Mapped[Money] = mapped_column(nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)


class GoalAllocation(TrackedBase):
    """Money moved from an account into a saving goal."""

    __tablename__ = "goal_allocations"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_allocation_amount_positive"),
        Index("idx_allocation_goal", "goal_id"),
        Index("idx_allocation_account", "account_id"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Not a foreign key: allocation history outlives a deleted goal.
    goal_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    amount: Mapped[Money] = mapped_column(nullable=False)


class Deposit(TrackedBase):
    """Money added directly to an account."""

    __tablename__ = "deposits"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_deposit_amount_positive"),
        Index("idx_deposit_account", "account_id"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    amount: Mapped[Money] = mapped_column(nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
