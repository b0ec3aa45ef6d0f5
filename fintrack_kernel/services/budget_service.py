"""
BudgetService -- persists budget recommendations, one per user and month.

The prediction itself comes from an external collaborator; this service
only stores its result.  Writes are upserts keyed by (user_id, month); two
concurrent first inserts for the same key collide on uq_budget_user_month
and the loser's transaction fails with an IntegrityError.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from fintrack_kernel.db.types import parse_amount
from fintrack_kernel.domain.dtos import BudgetRecommendationInfo
from fintrack_kernel.exceptions import InvalidInputError
from fintrack_kernel.logging_config import get_logger
from fintrack_kernel.models.budget import BudgetRecommendation
from fintrack_kernel.services.base import BaseService

logger = get_logger("services.budget")


def _validate_month(month: str) -> str:
    year, sep, mon = month.partition("-")
    if not (sep and len(year) == 4 and len(mon) == 2 and year.isdigit() and mon.isdigit()):
        raise InvalidInputError(f"Invalid month {month!r}: expected YYYY-MM")
    if not 1 <= int(mon) <= 12:
        raise InvalidInputError(f"Invalid month {month!r}: expected YYYY-MM")
    return month


class BudgetService(BaseService[BudgetRecommendation]):
    """Upserts BudgetRecommendation rows."""

    def record_recommendation(
        self,
        user_id: UUID,
        month: str,
        recommended_amount: Decimal,
    ) -> BudgetRecommendationInfo:
        month = _validate_month(month)
        amount = parse_amount(recommended_amount, allow_zero=True)

        row = self._load(user_id, month)
        if row is None:
            row = BudgetRecommendation(
                user_id=user_id, month=month, recommended_amount=amount
            )
            self.session.add(row)
        row.recommended_amount = amount
        self.session.flush()

        logger.info(
            "budget_recommendation_saved",
            extra={"month": month, "recommended_amount": str(amount)},
        )
        return BudgetRecommendationInfo(
            user_id=row.user_id,
            month=row.month,
            recommended_amount=row.recommended_amount,
        )

    def _load(self, user_id: UUID, month: str) -> BudgetRecommendation | None:
        return self.session.execute(
            select(BudgetRecommendation)
            .where(
                BudgetRecommendation.user_id == user_id,
                BudgetRecommendation.month == month,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
