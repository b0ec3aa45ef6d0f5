"""
SavingGoalAllocator -- saving goal lifecycle and allocations.

Responsibility:
    Creates, edits and deletes saving goals, and moves money from an
    account into a goal.  An allocation debits the account, raises the
    goal's saved amount by the same value and records a GoalAllocation
    row, all in the caller's transaction.

Architecture position:
    Kernel > Services.  Called by LedgerOrchestrator.

Invariants enforced:
    - 0 <= current_saved_amount <= target_amount.
    - is_completed == (current_saved_amount >= target_amount) after every
      allocation or target change.
    - current_saved_amount grows only through allocate().
    - Edits may change name and target only, and the target can never
      drop below the amount already saved.
    - Deleting a goal keeps its GoalAllocation history.

Failure modes:
    - SavingGoalNotFoundError / AccountNotFoundError / ForbiddenError.
    - GoalAlreadyCompletedError: allocation into a completed goal.
    - GoalTargetExceededError: allocation beyond the remaining target.
    - InvalidGoalTargetError: target edit below the saved amount.
    - InsufficientFundsError: source balance below the allocation.
    - OptimisticLockError: the goal changed under a concurrent writer.
"""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fintrack_kernel.db.types import ZERO, parse_amount
from fintrack_kernel.domain.dtos import AllocationResult, SavingGoalInfo
from fintrack_kernel.domain.validation import require_text
from fintrack_kernel.exceptions import (
    GoalAlreadyCompletedError,
    GoalTargetExceededError,
    InvalidGoalTargetError,
    OptimisticLockError,
)
from fintrack_kernel.logging_config import get_logger
from fintrack_kernel.models.account import Account
from fintrack_kernel.models.movement import GoalAllocation
from fintrack_kernel.models.saving_goal import SavingGoal
from fintrack_kernel.services.balance_mutator import BalanceMutator
from fintrack_kernel.services.base import BaseService
from fintrack_kernel.services.ownership import OwnershipGuard

logger = get_logger("services.saving_goal")


class SavingGoalAllocator(BaseService[SavingGoal]):
    """Saving goal CRUD plus allocation from an account."""

    def __init__(self, session: Session):
        super().__init__(session)
        self._guard = OwnershipGuard(session)
        self._balances = BalanceMutator(session)

    def create_goal(self, user_id: UUID, name: Any, target_amount: Any) -> SavingGoalInfo:
        goal_name = require_text(name, "name")
        target = parse_amount(target_amount)

        goal = SavingGoal(
            user_id=user_id,
            name=goal_name,
            target_amount=target,
            current_saved_amount=ZERO,
            is_completed=False,
        )
        self.session.add(goal)
        self.session.flush()

        logger.info(
            "saving_goal_created",
            extra={"goal_id": str(goal.id), "target_amount": str(target)},
        )
        return SavingGoalInfo.from_model(goal)

    def update_goal(
        self,
        user_id: UUID,
        goal_id: UUID,
        name: Any = None,
        target_amount: Any = None,
    ) -> SavingGoalInfo:
        """
        Rename a goal and/or change its target.

        Omitted fields (None) keep their current value.
        """
        goal_name = require_text(name, "name") if name is not None else None
        target = parse_amount(target_amount) if target_amount is not None else None

        goal = self._guard.load_owned(SavingGoal, goal_id, user_id, for_update=True)
        if target is not None and target < goal.current_saved_amount:
            raise InvalidGoalTargetError(
                str(goal.id), target, goal.current_saved_amount
            )

        if goal_name is not None:
            goal.name = goal_name
        if target is not None:
            goal.target_amount = target
        goal.refresh_completion()
        self._flush_goal(goal)

        logger.info(
            "saving_goal_updated",
            extra={
                "goal_id": str(goal.id),
                "target_amount": str(goal.target_amount),
                "is_completed": goal.is_completed,
            },
        )
        return SavingGoalInfo.from_model(goal)

    def delete_goal(self, user_id: UUID, goal_id: UUID) -> SavingGoalInfo:
        goal = self._guard.load_owned(SavingGoal, goal_id, user_id, for_update=True)
        snapshot = SavingGoalInfo.from_model(goal)
        self.session.delete(goal)
        self._flush_goal(goal)

        logger.info("saving_goal_deleted", extra={"goal_id": str(snapshot.id)})
        return snapshot

    def allocate(
        self,
        user_id: UUID,
        goal_id: UUID,
        source_account_id: UUID,
        amount: Any,
    ) -> AllocationResult:
        """
        Move amount from source_account_id into the goal.

        Goal checks (existence, ownership, completion, remaining target)
        run before the account is touched, so a rejected allocation never
        changes a balance.
        """
        value = parse_amount(amount)

        goal = self._guard.load_owned(SavingGoal, goal_id, user_id, for_update=True)
        if goal.is_completed:
            raise GoalAlreadyCompletedError(str(goal.id))
        if goal.current_saved_amount + value > goal.target_amount:
            raise GoalTargetExceededError(str(goal.id), goal.remaining_target, value)

        account = self._guard.load_owned(
            Account, source_account_id, user_id, for_update=True
        )
        change = self._balances.apply(account, -value, allow_negative=False)

        goal.current_saved_amount = goal.current_saved_amount + value
        goal.refresh_completion()
        allocation = GoalAllocation(
            user_id=user_id,
            goal_id=goal.id,
            account_id=account.id,
            amount=value,
        )
        self.session.add(allocation)
        self._flush_goal(goal)

        logger.info(
            "goal_allocation_applied",
            extra={
                "goal_id": str(goal.id),
                "account_id": str(account.id),
                "amount": str(value),
                "saved_amount": str(goal.current_saved_amount),
                "is_completed": goal.is_completed,
            },
        )
        return AllocationResult(
            allocation_id=allocation.id,
            goal=SavingGoalInfo.from_model(goal),
            account_id=account.id,
            amount=value,
            new_account_balance=change.new_balance,
        )

    def _flush_goal(self, goal: SavingGoal) -> None:
        try:
            self.session.flush()
        except StaleDataError as exc:
            raise OptimisticLockError("saving_goal", str(goal.id)) from exc
