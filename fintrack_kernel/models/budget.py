"""
Module: fintrack_kernel.models.budget
Responsibility: Persisted budget recommendation per user and month.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - At most one recommendation per (user_id, month); writes are upserts.
    - month is "YYYY-MM".
"""

from uuid import UUID

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fintrack_kernel.db.base import TrackedBase, UUIDString
from fintrack_kernel.db.types import Money


class BudgetRecommendation(TrackedBase):
    """Predicted spending budget for one calendar month."""

    __tablename__ = "budget_recommendations"

    __table_args__ = (
        UniqueConstraint("user_id", "month", name="uq_budget_user_month"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    month: Mapped[str] = mapped_column(String(7), nullable=False)

    recommended_amount: Mapped[Money] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<BudgetRecommendation {self.month}: {self.recommended_amount}>"
