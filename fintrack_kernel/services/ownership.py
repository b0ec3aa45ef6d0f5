"""
OwnershipGuard -- loads records on behalf of a user and refuses foreign ones.

Every operation that names an existing record (account, expense, income,
saving goal) goes through here before any balance is touched.  A record
that does not exist raises the matching NotFoundError; a record owned by
someone else raises ForbiddenError.  Both checks run before any write, so
a rejected request leaves no trace.
"""

from typing import TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from fintrack_kernel.db.base import Base
from fintrack_kernel.exceptions import (
    AccountNotFoundError,
    ExpenseNotFoundError,
    ForbiddenError,
    IncomeNotFoundError,
    NotFoundError,
    SavingGoalNotFoundError,
)
from fintrack_kernel.logging_config import get_logger
from fintrack_kernel.models.account import Account
from fintrack_kernel.models.ledger import Expense, Income
from fintrack_kernel.models.saving_goal import SavingGoal

logger = get_logger("services.ownership")

RecordType = TypeVar("RecordType", bound=Base)

_NOT_FOUND: dict[type, type[NotFoundError]] = {
    Account: AccountNotFoundError,
    Expense: ExpenseNotFoundError,
    Income: IncomeNotFoundError,
    SavingGoal: SavingGoalNotFoundError,
}


class OwnershipGuard:
    """Loads user-owned records, raising NotFound/Forbidden as appropriate."""

    def __init__(self, session: Session):
        self._session = session

    def assert_owned(self, record: Base, user_id: UUID) -> None:
        """Raise ForbiddenError unless record.user_id == user_id."""
        if record.user_id != user_id:
            record_type = getattr(record, "__tablename__", type(record).__name__)
            logger.warning(
                "ownership_violation",
                extra={
                    "record_type": record_type,
                    "record_id": str(record.id),
                    "user_id": str(user_id),
                },
            )
            raise ForbiddenError(record_type, str(record.id), str(user_id))

    def load_owned(
        self,
        model: type[RecordType],
        record_id: UUID,
        user_id: UUID,
        *,
        for_update: bool = False,
    ) -> RecordType:
        """
        Load model by id and check that user_id owns it.

        With for_update=True the row is read with SELECT ... FOR UPDATE and
        the identity map is refreshed, so the caller sees committed values.
        Only a row owned by user_id is ever locked; a foreign row is read
        without a lock and rejected.

        Raises:
            NotFoundError subclass: If no row has this id.
            ForbiddenError: If the row belongs to another user.
        """
        stmt = select(model).where(model.id == record_id)
        if for_update:
            locked = self._session.execute(
                stmt.where(model.user_id == user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if locked is not None:
                return locked
        record = self._session.execute(stmt).scalar_one_or_none()
        if record is None:
            raise _NOT_FOUND.get(model, NotFoundError)(str(record_id))
        self.assert_owned(record, user_id)
        return record
