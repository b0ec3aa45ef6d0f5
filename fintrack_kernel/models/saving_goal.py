"""
Module: fintrack_kernel.models.saving_goal
Responsibility: ORM persistence for saving goals.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - 0 <= current_saved_amount <= target_amount (CHECK constraint).
    - is_completed == (current_saved_amount >= target_amount), recomputed by
      SavingGoalAllocator whenever either amount changes.
    - current_saved_amount grows only through allocations, each of which
      debits an account by the same amount.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fintrack_kernel.db.base import TrackedBase, UUIDString
from fintrack_kernel.db.types import ZERO, Money


class SavingGoal(TrackedBase):
    """A target amount a user is saving towards."""

    __tablename__ = "saving_goals"

    __table_args__ = (
        CheckConstraint("target_amount > 0", name="ck_goal_target_positive"),
        CheckConstraint(
            "current_saved_amount >= 0 AND current_saved_amount <= target_amount",
            name="ck_goal_saved_within_target",
        ),
        Index("idx_goal_user", "user_id"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    target_amount: Mapped[Money] = mapped_column(nullable=False)

    current_saved_amount: Mapped[Money] = mapped_column(
        nullable=False,
        default=ZERO,
    )

    is_completed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<SavingGoal {self.name}: "
            f"{self.current_saved_amount}/{self.target_amount}>"
        )

    @property
    def remaining_target(self) -> Decimal:
        return self.target_amount - self.current_saved_amount

    def refresh_completion(self) -> None:
        self.is_completed = self.current_saved_amount >= self.target_amount
