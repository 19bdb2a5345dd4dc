# SPDX-License-Identifier: Apache-2.0

"""
Donation input parsing.

Pure helpers that turn loosely typed request values into ledger values.
They raise ``ValueError`` and leave error mapping to the caller.
"""

import math
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

CURRENCY_PATTERN = re.compile(r'^[A-Z]{3}$')


def parse_amount(value: Any) -> float:
    """
    Parse a donated amount.

    Accepts numbers and numeric strings; booleans, negatives, NaN and
    infinities are rejected.

    Raises:
        ValueError: If the value is not a finite, non-negative number
    """
    if value is None or isinstance(value, bool):
        raise ValueError("Amount is required")

    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Amount is not a number: {value!r}") from e

    if not amount.is_finite():
        raise ValueError("Amount must be finite")
    if amount < 0:
        raise ValueError("Amount must not be negative")

    result = float(amount)
    if math.isinf(result):
        raise ValueError("Amount must be finite")
    return result


def parse_optional_amount(value: Any) -> Optional[float]:
    """Like ``parse_amount`` but an absent or empty value yields None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_amount(value)


def parse_donation_date(value: Any, not_after: Optional[datetime] = None) -> datetime:
    """
    Parse a donation date into a naive UTC datetime.

    Accepts datetimes and ISO-8601 strings, including a trailing ``Z``.
    Naive input is taken to be UTC.

    Args:
        value: Date to parse
        not_after: Latest acceptable date (naive UTC), usually now

    Raises:
        ValueError: If the value cannot be parsed or is later than ``not_after``
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Invalid donation date: {value!r}") from e
    else:
        raise ValueError("Donation date is required")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if not_after is not None and parsed > not_after:
        raise ValueError("Donation date must not be in the future")
    return parsed


def normalize_currency(value: Optional[str], default: str = "USD") -> str:
    """
    Upper-case a currency code, falling back to ``default``.

    Raises:
        ValueError: If the code is not three letters
    """
    if value is None or not str(value).strip():
        return default
    code = str(value).strip().upper()
    if not CURRENCY_PATTERN.match(code):
        raise ValueError(f"Invalid currency code: {value!r}")
    return code


def include_unverified_from_query(verified: Optional[str]) -> bool:
    """An absent flag or ``true`` lists verified entries only; any other value lists all."""
    return verified is not None and verified != "true"
