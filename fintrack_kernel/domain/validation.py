"""
Lightweight input validation helpers.

Pure checks with no I/O, used by kernel services before any row is read or
written.  Amount parsing lives in fintrack_kernel.db.types.parse_amount.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from fintrack_kernel.exceptions import InvalidDateError, MissingFieldError


def require_text(value: Any, field_name: str) -> str:
    """Return value stripped; raise MissingFieldError if empty or not text."""
    if not isinstance(value, str) or not value.strip():
        raise MissingFieldError(field_name)
    return value.strip()


def optional_text(value: Any) -> str | None:
    """Normalize an optional description: blank strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_entry_date(value: Any, field_name: str = "date") -> date:
    """
    Parse a ledger entry date.

    Accepts a date, a datetime (its calendar date is used), or an ISO-8601
    string with or without a time part ("2024-05-01", "2024-05-01T10:00:00Z").

    Raises:
        MissingFieldError: If value is None or blank.
        InvalidDateError: If value cannot be parsed.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingFieldError(field_name)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDateError(value)

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise InvalidDateError(value) from None
