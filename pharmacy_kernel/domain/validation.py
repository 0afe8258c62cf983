"""
Lightweight payload validation helpers.

Pure checks with no I/O, run before any row is loaded or mutated so that a
malformed request never touches the ledger.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pharmacy_kernel.exceptions import InvalidExpiryDateError, InvalidPayloadError


def require_positive_int(value: Any, name: str) -> int:
    """Return ``value`` if it is an int greater than zero."""
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise InvalidPayloadError(name, value, "must be a positive integer")
    return value


def require_positive_decimal(value: Any, name: str) -> Decimal:
    """Coerce ``value`` to Decimal and require it to be greater than zero.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1"), not its binary
    expansion.
    """
    if isinstance(value, bool):
        raise InvalidPayloadError(name, value, "must be a positive number")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidPayloadError(name, value, "must be a positive number") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidPayloadError(name, value, "must be a positive number")
    return amount


def require_expiry_not_past(expiry_date: Any, today: date) -> date:
    """Require a calendar date that is today or later."""
    if isinstance(expiry_date, datetime):
        expiry_date = expiry_date.date()
    if not isinstance(expiry_date, date):
        raise InvalidPayloadError("expiry_date", expiry_date, "must be a date")
    if expiry_date < today:
        raise InvalidExpiryDateError(expiry_date.isoformat(), today.isoformat())
    return expiry_date
