"""
Typed exception hierarchy for the Fintrack kernel.

Every error the core can report is a subclass of FintrackError and carries:
  1. a CODE class attribute (machine-readable, API-safe)
  2. an HTTP_STATUS class attribute (what the HTTP layer should answer)
  3. structured attributes (available balance, requested amount, ...)

Callers catch by type and read attributes, never parse messages:

    try:
        orchestrator.create_expense(user_id, ...)
    except InsufficientFundsError as e:
        return json_response(e.to_payload(), status=e.http_status)

Hierarchy:

    FintrackError (base)
    |
    +-- UnauthenticatedError
    +-- ForbiddenError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- ExpenseNotFoundError
    |   +-- IncomeNotFoundError
    |   +-- SavingGoalNotFoundError
    |
    +-- InvalidInputError
    |   +-- InvalidAmountError
    |   +-- InvalidDateError
    |   +-- MissingFieldError
    |   +-- SelfTransferError
    |   +-- GoalAlreadyCompletedError
    |   +-- GoalTargetExceededError
    |   +-- InvalidGoalTargetError
    |
    +-- InsufficientFundsError
    +-- AccountReferencedError
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- PersistenceError
"""

from decimal import Decimal
from typing import Any
from uuid import UUID


class FintrackError(Exception):
    """
    Base exception for all Fintrack kernel errors.

    Subclasses must define `code` and `http_status` class attributes.
    """

    code: str = "FINTRACK_ERROR"
    http_status: int = 500

    def to_payload(self) -> dict[str, Any]:
        """Render the error as a JSON-safe dict for an API response."""
        payload: dict[str, Any] = {"code": self.code, "message": str(self)}
        for key, value in vars(self).items():
            if key.startswith("_"):
                continue
            if isinstance(value, (Decimal, UUID)):
                value = str(value)
            payload[key] = value
        return payload


class UnauthenticatedError(FintrackError):
    """Token missing, malformed, or rejected by the verifier."""

    code: str = "UNAUTHENTICATED"
    http_status: int = 401

    def __init__(self, reason: str = "Invalid or missing token"):
        self.reason = reason
        super().__init__(f"Unauthenticated: {reason}")


class ForbiddenError(FintrackError):
    """The acting user does not own the referenced record."""

    code: str = "FORBIDDEN"
    http_status: int = 403

    def __init__(self, record_type: str, record_id: str, user_id: str):
        self.record_type = record_type
        self.record_id = record_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} does not own {record_type} {record_id}"
        )


# Not-found exceptions


class NotFoundError(FintrackError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"
    http_status: int = 404
    record_type: str = "record"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"{self.record_type.capitalize()} not found: {record_id}")


class AccountNotFoundError(NotFoundError):
    code: str = "ACCOUNT_NOT_FOUND"
    record_type: str = "account"


class ExpenseNotFoundError(NotFoundError):
    code: str = "EXPENSE_NOT_FOUND"
    record_type: str = "expense"


class IncomeNotFoundError(NotFoundError):
    code: str = "INCOME_NOT_FOUND"
    record_type: str = "income"


class SavingGoalNotFoundError(NotFoundError):
    code: str = "SAVING_GOAL_NOT_FOUND"
    record_type: str = "saving goal"


# Input validation exceptions


class InvalidInputError(FintrackError):
    """Base exception for malformed or inconsistent input."""

    code: str = "INVALID_INPUT"
    http_status: int = 400


class InvalidAmountError(InvalidInputError):
    """Amount is not a positive, finite, cent-precise number."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, value: Any, reason: str = "must be a positive number"):
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid amount {value!r}: {reason}")


class InvalidDateError(InvalidInputError):
    code: str = "INVALID_DATE"

    def __init__(self, value: Any):
        self.value = str(value)
        super().__init__(f"Invalid date format: {value!r}")


class MissingFieldError(InvalidInputError):
    code: str = "MISSING_FIELD"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Missing required field: {field_name}")


class SelfTransferError(InvalidInputError):
    code: str = "SELF_TRANSFER"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(
            f"Source and destination accounts cannot be the same: {account_id}"
        )


class GoalAlreadyCompletedError(InvalidInputError):
    code: str = "GOAL_ALREADY_COMPLETED"

    def __init__(self, goal_id: str):
        self.goal_id = goal_id
        super().__init__(
            f"Saving goal {goal_id} is already completed. "
            "Cannot allocate more funds."
        )


class GoalTargetExceededError(InvalidInputError):
    """Allocation would push the saved amount above the goal target."""

    code: str = "GOAL_TARGET_EXCEEDED"

    def __init__(self, goal_id: str, remaining_target: Decimal, requested: Decimal):
        self.goal_id = goal_id
        self.remaining_target = remaining_target
        self.requested = requested
        super().__init__(
            f"Allocation of {requested} exceeds the remaining target for goal "
            f"{goal_id}. Remaining: {remaining_target}"
        )


class InvalidGoalTargetError(InvalidInputError):
    code: str = "INVALID_GOAL_TARGET"

    def __init__(self, goal_id: str, target_amount: Decimal, saved_amount: Decimal):
        self.goal_id = goal_id
        self.target_amount = target_amount
        self.saved_amount = saved_amount
        super().__init__(
            f"Target {target_amount} for goal {goal_id} is below the amount "
            f"already saved ({saved_amount})"
        )


# Balance exceptions


class InsufficientFundsError(FintrackError):
    """A guarded debit would drive the account balance below zero."""

    code: str = "INSUFFICIENT_FUNDS"
    http_status: int = 400

    def __init__(self, account_id: str, available: Decimal, requested: Decimal):
        self.account_id = account_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient balance in account {account_id}: "
            f"available={available}, requested={requested}"
        )


class AccountReferencedError(FintrackError):
    """Account cannot be deleted while ledger records reference it."""

    code: str = "ACCOUNT_REFERENCED"
    http_status: int = 409

    def __init__(self, account_id: str, reference_count: int):
        self.account_id = account_id
        self.reference_count = reference_count
        super().__init__(
            f"Cannot delete account {account_id}: "
            f"referenced by {reference_count} ledger record(s)"
        )


# Concurrency exceptions


class ConcurrencyError(FintrackError):
    """Base exception for concurrent-modification conflicts."""

    code: str = "CONCURRENCY_ERROR"
    http_status: int = 409


class OptimisticLockError(ConcurrencyError):
    """The row changed between read and write; the unit of work was aborted."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


class PersistenceError(FintrackError):
    """
    Unexpected storage failure. The whole unit of work was rolled back.
    """

    code: str = "PERSISTENCE_ERROR"
    http_status: int = 500

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Persistence failure during {operation}: {detail}")
