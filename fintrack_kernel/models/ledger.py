"""
Module: fintrack_kernel.models.ledger
Responsibility: ORM persistence for editable ledger entries -- Expense
    (balance-decreasing) and Income (balance-increasing).
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - amount > 0 (CHECK constraint, plus service validation).
    - Every row is written in the same transaction as the balance delta it
      explains (LedgerEntryManager).
"""

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from fintrack_kernel.db.base import TrackedBase, UUIDString
from fintrack_kernel.db.types import Money


class EntryKind(str, Enum):
    """Kinds of editable ledger entries."""

    EXPENSE = "expense"
    INCOME = "income"

    @property
    def sign(self) -> int:
        """Direction of the entry's effect on the account balance."""
        return -1 if self is EntryKind.EXPENSE else 1


class _LedgerEntryColumns:
    """Columns shared by Expense and Income."""

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    amount: Mapped[Money] = mapped_column(nullable=False)

    entry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )


class Expense(_LedgerEntryColumns, TrackedBase):
    """Money spent from an account."""

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount_positive"),
        Index("idx_expense_user_date", "user_id", "entry_date"),
        Index("idx_expense_account", "account_id"),
    )

    kind = EntryKind.EXPENSE

    category: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    @property
    def label(self) -> str:
        return self.category

    def __repr__(self) -> str:
        return f"<Expense {self.category}: {self.amount} on {self.entry_date}>"


class Income(_LedgerEntryColumns, TrackedBase):
    """Money received into an account."""

    __tablename__ = "incomes"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_income_amount_positive"),
        Index("idx_income_user_date", "user_id", "entry_date"),
        Index("idx_income_account", "account_id"),
    )

    kind = EntryKind.INCOME

    source: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    @property
    def label(self) -> str:
        return self.source

    def __repr__(self) -> str:
        return f"<Income {self.source}: {self.amount} on {self.entry_date}>"
