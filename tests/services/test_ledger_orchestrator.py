"""
LedgerOrchestrator tests against committed transactions.

Tests cover:
- The reference scenarios (expense, overdraft, update, delete, transfer,
  goal allocation) with the balance invariant checked after each step
- Rollback of the whole unit when a kernel error is raised
- Translation of storage failures into PersistenceError
- Operation logging with correlation context
- Budget recommendation around an external predictor
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from fintrack_kernel.db.types import MAX_AMOUNT
from fintrack_kernel.domain.policy import BalancePolicy
from fintrack_kernel.exceptions import (
    ExpenseNotFoundError,
    FintrackError,
    ForbiddenError,
    GoalTargetExceededError,
    InsufficientFundsError,
    InvalidAmountError,
)
from fintrack_services.ledger_orchestrator import LedgerOrchestrator


class RecordingPredictor:
    """Fake BudgetPredictor that returns a fixed value and records calls."""

    def __init__(self, result):
        self.result = result
        self.calls: list[list[Decimal]] = []

    def predict(self, monthly_expenses):
        self.calls.append(list(monthly_expenses))
        return self.result


# =========================================================================
# Reference scenarios
# =========================================================================


class TestScenarios:
    """Balance outcomes of the six reference scenarios."""

    def test_expense_reduces_balance(self, orchestrator, funded_account, user_id, assert_consistent):
        result = orchestrator.create_expense(
            user_id, funded_account.id, "30000", "2024-05-01", "Food"
        )

        assert result.new_account_balance == Decimal("70000")
        assert orchestrator.get_account(user_id, funded_account.id).current_balance == Decimal("70000")
        assert_consistent(user_id)

    def test_overdraft_is_rejected_without_changes(
        self, orchestrator, funded_account, user_id, assert_consistent
    ):
        with pytest.raises(InsufficientFundsError) as exc_info:
            orchestrator.create_expense(
                user_id, funded_account.id, "150000", "2024-05-01", "Rent"
            )

        payload = exc_info.value.to_payload()
        assert payload["code"] == "INSUFFICIENT_FUNDS"
        assert payload["available"] == "100000.00"
        assert payload["requested"] == "150000.00"
        assert orchestrator.get_account(user_id, funded_account.id).current_balance == Decimal("100000")
        assert orchestrator.list_expenses(user_id) == []
        assert_consistent(user_id)

    def test_expense_update_applies_difference(
        self, orchestrator, funded_account, user_id, assert_consistent
    ):
        created = orchestrator.create_expense(
            user_id, funded_account.id, "30000", "2024-05-01", "Food"
        )

        result = orchestrator.update_expense(
            user_id, created.entry.id, "50000", "2024-05-01", "Food"
        )

        assert result.new_account_balance == Decimal("50000")
        assert orchestrator.get_expense(user_id, created.entry.id).amount == Decimal("50000")
        assert_consistent(user_id)

    def test_expense_delete_restores_balance(
        self, orchestrator, funded_account, user_id, assert_consistent
    ):
        created = orchestrator.create_expense(
            user_id, funded_account.id, "30000", "2024-05-01", "Food"
        )

        orchestrator.delete_expense(user_id, created.entry.id)

        assert orchestrator.get_account(user_id, funded_account.id).current_balance == Decimal("100000")
        with pytest.raises(ExpenseNotFoundError):
            orchestrator.get_expense(user_id, created.entry.id)
        assert_consistent(user_id)

    def test_transfer_between_accounts(self, orchestrator, funded_account, user_id, assert_consistent):
        other = orchestrator.open_account(user_id, "Account B", initial_balance="10000")

        result = orchestrator.transfer(user_id, funded_account.id, other.id, "40000")

        assert result.source_balance == Decimal("60000")
        assert result.destination_balance == Decimal("50000")
        assert orchestrator.total_balance(user_id) == Decimal("110000")
        transfers = orchestrator.list_transfers(user_id)
        assert [t.id for t in transfers] == [result.transfer.id]
        assert_consistent(user_id)

    def test_allocation_beyond_goal_target_is_rejected(
        self, orchestrator, funded_account, user_id, assert_consistent
    ):
        goal = orchestrator.create_goal(user_id, "Emergency fund", "200000")
        orchestrator.deposit(user_id, funded_account.id, "100000")
        orchestrator.allocate_to_goal(user_id, goal.id, funded_account.id, "150000")

        with pytest.raises(GoalTargetExceededError) as exc_info:
            orchestrator.allocate_to_goal(user_id, goal.id, funded_account.id, "60000")

        assert exc_info.value.remaining_target == Decimal("50000")
        assert exc_info.value.http_status == 400
        assert orchestrator.get_goal(user_id, goal.id).current_saved_amount == Decimal("150000")
        assert orchestrator.get_account(user_id, funded_account.id).current_balance == Decimal("50000")
        assert_consistent(user_id)


# =========================================================================
# Accounts and listings
# =========================================================================


class TestAccountsAndListings:

    def test_registration_opens_default_account(self, orchestrator, user_id):
        info = orchestrator.open_default_account(user_id)

        assert orchestrator.list_accounts(user_id) == [info]
        assert orchestrator.total_balance(user_id) == Decimal("0")

    def test_total_balance_without_accounts_is_zero(self, orchestrator, user_id):
        assert orchestrator.total_balance(user_id) == Decimal("0")

    def test_listings_are_scoped_to_user(self, orchestrator, funded_account, user_id, other_user_id):
        orchestrator.create_expense(user_id, funded_account.id, "10", "2024-05-01", "Food")
        orchestrator.create_income(user_id, funded_account.id, "20", "2024-05-01", "Gift")

        assert orchestrator.list_accounts(other_user_id) == []
        assert orchestrator.list_expenses(other_user_id) == []
        assert orchestrator.list_incomes(other_user_id) == []
        assert len(orchestrator.list_incomes(user_id)) == 1

    def test_reading_foreign_records_is_forbidden(
        self, orchestrator, funded_account, user_id, other_user_id
    ):
        created = orchestrator.create_income(user_id, funded_account.id, "20", "2024-05-01", "Gift")

        with pytest.raises(ForbiddenError):
            orchestrator.get_account(other_user_id, funded_account.id)
        with pytest.raises(ForbiddenError):
            orchestrator.get_income(other_user_id, created.entry.id)

    def test_rename_and_delete_account(self, orchestrator, user_id):
        spare = orchestrator.open_account(user_id, "Spare")

        renamed = orchestrator.rename_account(user_id, spare.id, "Holiday")
        orchestrator.delete_account(user_id, spare.id)

        assert renamed.name == "Holiday"
        assert orchestrator.list_accounts(user_id) == []

    def test_goal_crud(self, orchestrator, user_id):
        goal = orchestrator.create_goal(user_id, "Trip", "1000")

        updated = orchestrator.update_goal(user_id, goal.id, name="Long trip", target_amount="2000")
        assert [g.name for g in orchestrator.list_goals(user_id)] == ["Long trip"]
        assert updated.target_amount == Decimal("2000")

        orchestrator.delete_goal(user_id, goal.id)
        assert orchestrator.list_goals(user_id) == []

    def test_reads_are_idempotent(self, orchestrator, funded_account, user_id):
        orchestrator.create_expense(user_id, funded_account.id, "10", "2024-05-01", "Food")

        first = (
            orchestrator.list_accounts(user_id),
            orchestrator.list_expenses(user_id),
            orchestrator.total_balance(user_id),
        )
        second = (
            orchestrator.list_accounts(user_id),
            orchestrator.list_expenses(user_id),
            orchestrator.total_balance(user_id),
        )
        assert first == second


# =========================================================================
# Policy
# =========================================================================


class TestBalancePolicy:

    def test_default_policy_guards_income_deletion(self, orchestrator, user_id):
        account = orchestrator.open_default_account(user_id)
        income = orchestrator.create_income(user_id, account.id, "500", "2024-05-01", "Gift")
        orchestrator.create_expense(user_id, account.id, "400", "2024-05-02", "Food")

        with pytest.raises(InsufficientFundsError):
            orchestrator.delete_income(user_id, income.entry.id)

        assert orchestrator.get_account(user_id, account.id).current_balance == Decimal("100")

    def test_lenient_policy_allows_income_deletion_to_overdraw(
        self, session_factory, clock, user_id, assert_consistent
    ):
        lenient = LedgerOrchestrator(
            session_factory, policy=BalancePolicy(guard_all_debits=False), clock=clock
        )
        account = lenient.open_default_account(user_id)
        income = lenient.create_income(user_id, account.id, "500", "2024-05-01", "Gift")
        lenient.create_expense(user_id, account.id, "400", "2024-05-02", "Food")

        result = lenient.delete_income(user_id, income.entry.id)

        assert result.new_account_balance == Decimal("-400")
        assert_consistent(user_id)


# =========================================================================
# Logging
# =========================================================================


class TestOperationLogging:

    def test_completed_operation_is_logged_with_context(
        self, orchestrator, funded_account, user_id, captured_logs
    ):
        orchestrator.create_expense(user_id, funded_account.id, "10", "2024-05-01", "Food")

        records = captured_logs()
        created = [r for r in records if r["message"] == "expense_created"]
        completed = [r for r in records if r["message"] == "operation_completed"]
        assert len(created) == 1
        assert created[0]["actor_id"] == str(user_id)
        assert created[0]["operation"] == "create_expense"
        assert created[0]["amount"] == "10.00"
        assert completed[-1]["operation"] == "create_expense"
        assert completed[-1]["correlation_id"] == created[0]["correlation_id"]
        assert "duration_ms" in completed[-1]

    def test_rejected_operation_is_logged(self, orchestrator, funded_account, user_id, captured_logs):
        with pytest.raises(InvalidAmountError):
            orchestrator.create_expense(user_id, funded_account.id, "-1", "2024-05-01", "Food")

        rejected = [r for r in captured_logs() if r["message"] == "operation_rejected"]
        assert rejected[-1]["error_code"] == "INVALID_AMOUNT"
        assert rejected[-1]["http_status"] == 400

    def test_each_operation_gets_its_own_correlation_id(
        self, orchestrator, funded_account, user_id, captured_logs
    ):
        orchestrator.get_account(user_id, funded_account.id)
        orchestrator.get_account(user_id, funded_account.id)

        ids = [
            r["correlation_id"]
            for r in captured_logs()
            if r["message"] == "operation_completed"
        ]
        assert len(ids) == 2
        assert ids[0] != ids[1]


# =========================================================================
# Budget recommendation
# =========================================================================


class TestBudgetRecommendation:

    def test_series_is_sent_to_predictor_and_result_saved(
        self, orchestrator, funded_account, user_id
    ):
        orchestrator.create_expense(user_id, funded_account.id, "100", "2024-01-10", "Food")
        orchestrator.create_expense(user_id, funded_account.id, "50", "2024-05-02", "Food")
        orchestrator.create_expense(user_id, funded_account.id, "25", "2024-05-20", "Food")
        # Current month is outside the window
        orchestrator.create_expense(user_id, funded_account.id, "999", "2024-06-01", "Food")
        predictor = RecordingPredictor(123.456)

        info = orchestrator.recommend_budget(user_id, predictor)

        assert predictor.calls == [[
            Decimal("0"), Decimal("100"), Decimal("0"),
            Decimal("0"), Decimal("0"), Decimal("75"),
        ]]
        assert info.month == "2024-07"
        assert info.recommended_amount == Decimal("123.46")
        stored = orchestrator.get_budget_recommendation(user_id, "2024-07")
        assert stored.recommended_amount == Decimal("123.46")

    def test_second_recommendation_replaces_first(self, orchestrator, funded_account, user_id):
        orchestrator.create_expense(user_id, funded_account.id, "100", "2024-05-10", "Food")

        orchestrator.recommend_budget(user_id, RecordingPredictor(Decimal("80")))
        orchestrator.recommend_budget(user_id, RecordingPredictor(Decimal("90")))

        stored = orchestrator.get_budget_recommendation(user_id, "2024-07")
        assert stored.recommended_amount == Decimal("90")

    def test_negative_prediction_is_floored_at_zero(self, orchestrator, funded_account, user_id):
        orchestrator.create_expense(user_id, funded_account.id, "100", "2024-05-10", "Food")

        info = orchestrator.recommend_budget(user_id, RecordingPredictor(-42))

        assert info.recommended_amount == Decimal("0")

    def test_empty_history_skips_predictor(self, orchestrator, user_id):
        predictor = RecordingPredictor(500)

        info = orchestrator.recommend_budget(user_id, predictor)

        assert predictor.calls == []
        assert info.recommended_amount == Decimal("0")
        assert orchestrator.get_budget_recommendation(user_id, "2024-07") is None

    def test_explicit_as_of_moves_the_window(self, orchestrator, funded_account, user_id):
        orchestrator.create_expense(user_id, funded_account.id, "40", "2023-12-05", "Food")
        predictor = RecordingPredictor(40)

        info = orchestrator.recommend_budget(user_id, predictor, as_of=date(2024, 1, 3))

        assert info.month == "2024-02"
        assert predictor.calls[0][-1] == Decimal("40")

    def test_unusable_prediction_is_rejected(self, orchestrator, funded_account, user_id):
        orchestrator.create_expense(user_id, funded_account.id, "100", "2024-05-10", "Food")

        with pytest.raises(InvalidAmountError):
            orchestrator.recommend_budget(user_id, RecordingPredictor(float("nan")))

        assert orchestrator.get_budget_recommendation(user_id, "2024-07") is None


class TestErrorContract:

    def test_every_kernel_error_is_a_fintrack_error(self, orchestrator, user_id):
        with pytest.raises(FintrackError) as exc_info:
            orchestrator.get_account(user_id, uuid4())
        assert exc_info.value.http_status == 404
        assert exc_info.value.to_payload()["code"] == "ACCOUNT_NOT_FOUND"


# =========================================================================
# Amount limits
# =========================================================================


class TestAmountLimits:
    """Amounts and balances stay within what every supported store keeps exactly."""

    def test_exponent_amount_is_a_client_error(
        self, orchestrator, funded_account, user_id, captured_logs
    ):
        with pytest.raises(InvalidAmountError) as exc_info:
            orchestrator.create_expense(user_id, funded_account.id, "1e30", "2024-05-01", "Food")

        assert exc_info.value.http_status == 400
        assert exc_info.value.reason == "exceeds maximum amount"
        rejected = [r for r in captured_logs() if r["message"] == "operation_rejected"]
        assert rejected[-1]["error_code"] == "INVALID_AMOUNT"
        assert orchestrator.list_expenses(user_id) == []

    def test_oversized_deposit_is_rejected_and_balance_kept(
        self, orchestrator, funded_account, user_id, assert_consistent
    ):
        with pytest.raises(InvalidAmountError):
            orchestrator.deposit(user_id, funded_account.id, "12345678901234567891.23")

        account = orchestrator.get_account(user_id, funded_account.id)
        assert account.current_balance == Decimal("100000")
        assert_consistent(user_id)

    def test_largest_amount_is_stored_exactly(self, orchestrator, user_id, assert_consistent):
        empty = orchestrator.open_account(user_id, "Reserve", "bank", Decimal("0"))

        result = orchestrator.deposit(user_id, empty.id, str(MAX_AMOUNT))

        assert result.new_account_balance == MAX_AMOUNT
        assert orchestrator.get_account(user_id, empty.id).current_balance == MAX_AMOUNT
        assert_consistent(user_id)

    def test_credit_past_the_maximum_balance_is_rejected(
        self, orchestrator, funded_account, user_id, assert_consistent
    ):
        with pytest.raises(InvalidAmountError) as exc_info:
            orchestrator.deposit(user_id, funded_account.id, str(MAX_AMOUNT))

        assert exc_info.value.reason == "exceeds maximum balance"
        assert orchestrator.get_account(user_id, funded_account.id).current_balance == Decimal(
            "100000"
        )
        assert_consistent(user_id)

    def test_oversized_prediction_is_rejected(self, orchestrator, funded_account, user_id):
        orchestrator.create_expense(user_id, funded_account.id, "100", "2024-05-10", "Food")

        with pytest.raises(InvalidAmountError):
            orchestrator.recommend_budget(user_id, RecordingPredictor(Decimal("1e30")))

        assert orchestrator.get_budget_recommendation(user_id, "2024-07") is None
