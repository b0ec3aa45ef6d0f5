"""
LedgerOrchestrator -- transaction owner for every Fintrack operation.

Responsibility:
    The single entry point an HTTP layer calls with an authenticated user
    id.  Each public method opens one session from the shared session
    factory, runs the kernel services inside session_scope(), and commits
    or rolls back the whole unit.

Architecture position:
    Services layer, above fintrack_kernel and fintrack_config.  Kernel
    services only flush; this class owns every commit.

Error handling:
    - FintrackError subclasses raised by the kernel propagate unchanged
      after rollback; they already carry code, http_status and payload.
    - Any SQLAlchemyError (connection loss, constraint violation, stale
      row) is rolled back and re-raised as PersistenceError, chained to
      the original with ``from``.
    - Anything else (a programming error) is rolled back and propagates.

Logging:
    Each unit binds correlation_id, actor_id and operation into LogContext
    and emits operation_completed / operation_rejected / operation_failed
    with its duration.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Generator, Sequence
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Protocol, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fintrack_kernel.db.engine import session_scope
from fintrack_kernel.db.types import ZERO, round_money, to_decimal
from fintrack_kernel.domain.clock import Clock, SystemClock
from fintrack_kernel.domain.dtos import (
    AccountInfo,
    AllocationResult,
    BalanceBreakdown,
    BudgetRecommendationInfo,
    DepositResult,
    EntryResult,
    LedgerEntryInfo,
    SavingGoalInfo,
    TransferInfo,
    TransferResult,
)
from fintrack_kernel.domain.policy import DEFAULT_BALANCE_POLICY, BalancePolicy
from fintrack_kernel.exceptions import FintrackError, PersistenceError
from fintrack_kernel.logging_config import LogContext, get_logger
from fintrack_kernel.selectors.account_selector import AccountSelector
from fintrack_kernel.selectors.goal_selector import GoalSelector
from fintrack_kernel.selectors.ledger_selector import (
    LedgerSelector,
    month_key,
    shift_month,
)
from fintrack_kernel.services.account_service import AccountService
from fintrack_kernel.services.budget_service import BudgetService
from fintrack_kernel.services.ledger_entry_manager import LedgerEntryManager
from fintrack_kernel.services.saving_goal_allocator import SavingGoalAllocator
from fintrack_kernel.services.transfer_coordinator import TransferCoordinator

logger = get_logger("services.ledger_orchestrator")

T = TypeVar("T")


class BudgetPredictor(Protocol):
    """External prediction collaborator (the model itself is out of scope)."""

    def predict(self, monthly_expenses: Sequence[Decimal]) -> Decimal | float | int | None: ...


class LedgerOrchestrator:
    """
    Runs each operation as one atomic unit of work.

    Args:
        session_factory: Shared sessionmaker (one connection pool per
            process); one session is opened per call.
        policy: Balance guarding policy.  Defaults to guarding every debit.
        clock: Time source for budget months.  Defaults to SystemClock.
        budget_history_months: Length of the series sent to the predictor.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        policy: BalancePolicy | None = None,
        clock: Clock | None = None,
        budget_history_months: int = 6,
    ):
        self._session_factory = session_factory
        self._policy = policy or DEFAULT_BALANCE_POLICY
        self._clock = clock or SystemClock()
        self._budget_history_months = budget_history_months

    @property
    def policy(self) -> BalancePolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def _unit(self, operation: str, user_id: UUID) -> Generator[Session, None, None]:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(user_id),
            operation=operation,
        ):
            t0 = time.monotonic()
            try:
                with session_scope(self._session_factory) as session:
                    yield session
            except FintrackError as exc:
                logger.info(
                    "operation_rejected",
                    extra={
                        "error_code": exc.code,
                        "http_status": exc.http_status,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                raise
            except SQLAlchemyError as exc:
                logger.error(
                    "operation_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise PersistenceError(operation, str(exc)) from exc
            logger.info(
                "operation_completed",
                extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
            )

    def _run(self, operation: str, user_id: UUID, work: Callable[[Session], T]) -> T:
        with self._unit(operation, user_id) as session:
            return work(session)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def open_default_account(self, user_id: UUID) -> AccountInfo:
        """Called once on user registration."""
        return self._run(
            "open_default_account", user_id,
            lambda s: AccountService(s).open_default_account(user_id),
        )

    def open_account(
        self,
        user_id: UUID,
        name: Any,
        account_type: Any = None,
        initial_balance: Any = ZERO,
    ) -> AccountInfo:
        return self._run(
            "open_account", user_id,
            lambda s: AccountService(s).open_account(
                user_id, name, account_type, initial_balance
            ),
        )

    def rename_account(
        self,
        user_id: UUID,
        account_id: UUID,
        name: Any,
        account_type: Any = None,
    ) -> AccountInfo:
        return self._run(
            "rename_account", user_id,
            lambda s: AccountService(s).rename_account(
                user_id, account_id, name, account_type
            ),
        )

    def delete_account(self, user_id: UUID, account_id: UUID) -> AccountInfo:
        return self._run(
            "delete_account", user_id,
            lambda s: AccountService(s).delete_account(user_id, account_id),
        )

    def deposit(
        self,
        user_id: UUID,
        account_id: UUID,
        amount: Any,
        description: Any = None,
    ) -> DepositResult:
        return self._run(
            "deposit", user_id,
            lambda s: AccountService(s).deposit(user_id, account_id, amount, description),
        )

    def get_account(self, user_id: UUID, account_id: UUID) -> AccountInfo:
        return self._run(
            "get_account", user_id,
            lambda s: AccountSelector(s).get_account(user_id, account_id),
        )

    def list_accounts(self, user_id: UUID) -> list[AccountInfo]:
        return self._run(
            "list_accounts", user_id,
            lambda s: AccountSelector(s).list_accounts(user_id),
        )

    def total_balance(self, user_id: UUID) -> Decimal:
        return self._run(
            "total_balance", user_id,
            lambda s: AccountSelector(s).total_balance(user_id),
        )

    # ------------------------------------------------------------------
    # Expenses and incomes
    # ------------------------------------------------------------------

    def create_expense(
        self,
        user_id: UUID,
        account_id: UUID,
        amount: Any,
        entry_date: Any,
        category: Any,
        description: Any = None,
    ) -> EntryResult:
        return self._run(
            "create_expense", user_id,
            lambda s: self._entries(s).create_expense(
                user_id, account_id, amount, entry_date, category, description
            ),
        )

    def update_expense(
        self,
        user_id: UUID,
        expense_id: UUID,
        amount: Any,
        entry_date: Any,
        category: Any,
        description: Any = None,
    ) -> EntryResult:
        return self._run(
            "update_expense", user_id,
            lambda s: self._entries(s).update_expense(
                user_id, expense_id, amount, entry_date, category, description
            ),
        )

    def delete_expense(self, user_id: UUID, expense_id: UUID) -> EntryResult:
        return self._run(
            "delete_expense", user_id,
            lambda s: self._entries(s).delete_expense(user_id, expense_id),
        )

    def create_income(
        self,
        user_id: UUID,
        account_id: UUID,
        amount: Any,
        entry_date: Any,
        source: Any,
        description: Any = None,
    ) -> EntryResult:
        return self._run(
            "create_income", user_id,
            lambda s: self._entries(s).create_income(
                user_id, account_id, amount, entry_date, source, description
            ),
        )

    def update_income(
        self,
        user_id: UUID,
        income_id: UUID,
        amount: Any,
        entry_date: Any,
        source: Any,
        description: Any = None,
    ) -> EntryResult:
        return self._run(
            "update_income", user_id,
            lambda s: self._entries(s).update_income(
                user_id, income_id, amount, entry_date, source, description
            ),
        )

    def delete_income(self, user_id: UUID, income_id: UUID) -> EntryResult:
        return self._run(
            "delete_income", user_id,
            lambda s: self._entries(s).delete_income(user_id, income_id),
        )

    def get_expense(self, user_id: UUID, expense_id: UUID) -> LedgerEntryInfo:
        return self._run(
            "get_expense", user_id,
            lambda s: LedgerSelector(s).get_expense(user_id, expense_id),
        )

    def get_income(self, user_id: UUID, income_id: UUID) -> LedgerEntryInfo:
        return self._run(
            "get_income", user_id,
            lambda s: LedgerSelector(s).get_income(user_id, income_id),
        )

    def list_expenses(self, user_id: UUID) -> list[LedgerEntryInfo]:
        return self._run(
            "list_expenses", user_id,
            lambda s: LedgerSelector(s).list_expenses(user_id),
        )

    def list_incomes(self, user_id: UUID) -> list[LedgerEntryInfo]:
        return self._run(
            "list_incomes", user_id,
            lambda s: LedgerSelector(s).list_incomes(user_id),
        )

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def transfer(
        self,
        user_id: UUID,
        source_account_id: UUID,
        destination_account_id: UUID,
        amount: Any,
        description: Any = None,
    ) -> TransferResult:
        return self._run(
            "transfer", user_id,
            lambda s: TransferCoordinator(s).transfer(
                user_id, source_account_id, destination_account_id, amount, description
            ),
        )

    def list_transfers(self, user_id: UUID) -> list[TransferInfo]:
        return self._run(
            "list_transfers", user_id,
            lambda s: LedgerSelector(s).list_transfers(user_id),
        )

    # ------------------------------------------------------------------
    # Saving goals
    # ------------------------------------------------------------------

    def create_goal(self, user_id: UUID, name: Any, target_amount: Any) -> SavingGoalInfo:
        return self._run(
            "create_goal", user_id,
            lambda s: SavingGoalAllocator(s).create_goal(user_id, name, target_amount),
        )

    def update_goal(
        self,
        user_id: UUID,
        goal_id: UUID,
        name: Any = None,
        target_amount: Any = None,
    ) -> SavingGoalInfo:
        return self._run(
            "update_goal", user_id,
            lambda s: SavingGoalAllocator(s).update_goal(
                user_id, goal_id, name, target_amount
            ),
        )

    def delete_goal(self, user_id: UUID, goal_id: UUID) -> SavingGoalInfo:
        return self._run(
            "delete_goal", user_id,
            lambda s: SavingGoalAllocator(s).delete_goal(user_id, goal_id),
        )

    def allocate_to_goal(
        self,
        user_id: UUID,
        goal_id: UUID,
        source_account_id: UUID,
        amount: Any,
    ) -> AllocationResult:
        return self._run(
            "allocate_to_goal", user_id,
            lambda s: SavingGoalAllocator(s).allocate(
                user_id, goal_id, source_account_id, amount
            ),
        )

    def get_goal(self, user_id: UUID, goal_id: UUID) -> SavingGoalInfo:
        return self._run(
            "get_goal", user_id,
            lambda s: GoalSelector(s).get_goal(user_id, goal_id),
        )

    def list_goals(self, user_id: UUID) -> list[SavingGoalInfo]:
        return self._run(
            "list_goals", user_id,
            lambda s: GoalSelector(s).list_goals(user_id),
        )

    # ------------------------------------------------------------------
    # Budget
    # ------------------------------------------------------------------

    def recommend_budget(
        self,
        user_id: UUID,
        predictor: BudgetPredictor,
        as_of: date | None = None,
    ) -> BudgetRecommendationInfo:
        """
        Predict next month's budget and store it.

        The expense series is read in one transaction, the predictor is
        called with no transaction open, and the result is upserted in a
        second transaction.  With no expenses in the window the predictor
        is not called and a zero recommendation is returned unsaved.
        Predictions are rounded to cents and floored at zero.
        """
        today = as_of or self._clock.today()
        year, month = shift_month(today.year, today.month, 1)
        target_month = month_key(year, month)

        series = self._run(
            "monthly_expense_series", user_id,
            lambda s: LedgerSelector(s).monthly_expense_series(
                user_id, today, months=self._budget_history_months
            ),
        )
        if sum(series, ZERO) == ZERO:
            logger.info(
                "budget_history_empty",
                extra={"actor_id": str(user_id), "target_month": target_month},
            )
            return BudgetRecommendationInfo(
                user_id=user_id, month=target_month, recommended_amount=ZERO
            )

        predicted = round_money(to_decimal(predictor.predict(series)))
        amount = max(predicted, ZERO)

        return self._run(
            "recommend_budget", user_id,
            lambda s: BudgetService(s).record_recommendation(user_id, target_month, amount),
        )

    def get_budget_recommendation(
        self, user_id: UUID, month: str
    ) -> BudgetRecommendationInfo | None:
        return self._run(
            "get_budget_recommendation", user_id,
            lambda s: GoalSelector(s).get_budget_recommendation(user_id, month),
        )

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_user_accounts(self, user_id: UUID) -> list[BalanceBreakdown]:
        """Recompute every account balance of user_id from stored rows."""
        return self._run(
            "verify_user_accounts", user_id,
            lambda s: LedgerSelector(s).verify_user_accounts(user_id),
        )

    def _entries(self, session: Session) -> LedgerEntryManager:
        return LedgerEntryManager(session, self._policy)
