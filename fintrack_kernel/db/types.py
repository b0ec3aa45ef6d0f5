"""
Module: fintrack_kernel.db.types
Responsibility: Annotated column types and the money boundary helpers.
    Every amount that enters the kernel passes through parse_amount(), and
    every stored amount uses the Money column type.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats in arithmetic.  A float arriving from a JSON body is
      converted through its shortest decimal repr, then handled as Decimal.
    - Amounts carry at most MONEY_DECIMAL_PLACES fractional digits.
    - Amounts and balances stay within MAX_AMOUNT.  pysqlite binds Numeric
      values as floats, so the bound is set where cents are still exact in a
      double; it is well inside Numeric(20, 2) on PostgreSQL.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String

from fintrack_kernel.exceptions import InvalidAmountError

# 20 digits total, 2 decimal places
Money = Annotated[Decimal, Numeric(20, 2)]

# Short labels (category, source, account type)
ShortText = Annotated[str, String(100)]

# Free-form descriptions
LongText = Annotated[str, String(1000)]

MONEY_DECIMAL_PLACES = 2
ZERO = Decimal("0.00")
_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)
MAX_AMOUNT = Decimal("999999999999.99")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a boundary value (int, str, float or Decimal) to Decimal.

    Raises:
        InvalidAmountError: On booleans, None, non-numeric strings,
            NaN, infinity, or a magnitude above MAX_AMOUNT.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmountError(value, "must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmountError(value, "must be a number") from None
    else:
        raise InvalidAmountError(value, "must be a number")

    if not result.is_finite():
        raise InvalidAmountError(value, "must be finite")
    if abs(result) > MAX_AMOUNT:
        raise InvalidAmountError(value, "exceeds maximum amount")
    return result


def round_money(value: Decimal) -> Decimal:
    """Quantize to cents, ROUND_HALF_UP. The only sanctioned rounding."""
    try:
        return value.quantize(_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmountError(value, "exceeds maximum amount") from None


def parse_amount(value: Any, *, allow_zero: bool = False) -> Decimal:
    """
    Validate a monetary amount supplied by a caller.

    Returns:
        The amount as a Decimal quantized to cents.

    Raises:
        InvalidAmountError: If the amount is not numeric, not positive
            (or non-negative with allow_zero), or has sub-cent precision.
    """
    amount = to_decimal(value)
    if amount < 0 or (amount == 0 and not allow_zero):
        reason = "must not be negative" if allow_zero else "must be a positive number"
        raise InvalidAmountError(value, reason)
    if amount != round_money(amount):
        raise InvalidAmountError(
            value, f"must have at most {MONEY_DECIMAL_PLACES} decimal places"
        )
    return round_money(amount)
