"""
Module: fintrack_kernel.selectors.goal_selector
Responsibility: Read-only queries over saving goals, their allocation
    history and stored budget recommendations.
Architecture position: Kernel > Selectors.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from fintrack_kernel.db.types import ZERO, round_money
from fintrack_kernel.domain.dtos import BudgetRecommendationInfo, SavingGoalInfo
from fintrack_kernel.models.budget import BudgetRecommendation
from fintrack_kernel.models.movement import GoalAllocation
from fintrack_kernel.models.saving_goal import SavingGoal
from fintrack_kernel.selectors.base import BaseSelector
from fintrack_kernel.services.ownership import OwnershipGuard


class GoalSelector(BaseSelector[SavingGoal]):
    """Reads saving goals and budget recommendations."""

    def get_goal(self, user_id: UUID, goal_id: UUID) -> SavingGoalInfo:
        goal = OwnershipGuard(self.session).load_owned(SavingGoal, goal_id, user_id)
        return SavingGoalInfo.from_model(goal)

    def list_goals(self, user_id: UUID) -> list[SavingGoalInfo]:
        rows = self.session.execute(
            select(SavingGoal)
            .where(SavingGoal.user_id == user_id)
            .order_by(SavingGoal.created_at, SavingGoal.name)
        ).scalars()
        return [SavingGoalInfo.from_model(goal) for goal in rows]

    def allocated_total(self, goal_id: UUID) -> Decimal:
        """Sum of GoalAllocation rows for goal_id, kept after goal deletion."""
        total = self.session.execute(
            select(func.sum(GoalAllocation.amount)).where(
                GoalAllocation.goal_id == goal_id
            )
        ).scalar_one()
        if total is None:
            return ZERO
        return round_money(Decimal(str(total)))

    def get_budget_recommendation(
        self, user_id: UUID, month: str
    ) -> BudgetRecommendationInfo | None:
        row = self.session.execute(
            select(BudgetRecommendation).where(
                BudgetRecommendation.user_id == user_id,
                BudgetRecommendation.month == month,
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        return BudgetRecommendationInfo(
            user_id=row.user_id,
            month=row.month,
            recommended_amount=row.recommended_amount,
        )
