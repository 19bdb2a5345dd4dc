# SPDX-License-Identifier: Apache-2.0

"""
Donation aggregation domain logic.

Pure functions over donation and need documents (camelCase keys as stored).
Amounts are summed as decimals so repeated additions do not drift.
Currencies are never converted; mixed-currency sums are plain sums.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

DEFAULT_CURRENCY = "USD"
RECENT_DONATIONS_LIMIT = 10


def sum_amounts(amounts: Iterable[Any]) -> float:
    """Sum amounts without float accumulation error."""
    return float(sum((Decimal(str(a)) for a in amounts if a is not None), Decimal("0")))


def split_by_verification(donations: Iterable[Dict[str, Any]]) -> Tuple[List[Dict], List[Dict]]:
    """Partition donations into (verified, unverified)."""
    verified, pending = [], []
    for donation in donations:
        (verified if donation.get("isVerified") else pending).append(donation)
    return verified, pending


def family_totals(donations: List[Dict[str, Any]], default_currency: str = DEFAULT_CURRENCY) -> Dict[str, Any]:
    """
    Summarize a family's donations.

    Args:
        donations: Donations of one family, newest first

    Returns:
        Dict with total and count of verified donations, the pending count
        and the currency of the newest entry
    """
    verified, pending = split_by_verification(donations)
    return {
        "total": sum_amounts(d.get("amount") for d in verified),
        "currency": (donations[0].get("currency") or default_currency) if donations else default_currency,
        "count": len(verified),
        "pending": len(pending)
    }


def window_start(now: datetime, window_days: Any) -> datetime:
    """
    Start of a trailing window of ``window_days`` days ending at ``now``.

    Raises:
        ValueError: If window_days is not a non-negative integer
    """
    if isinstance(window_days, bool) or not isinstance(window_days, int):
        raise ValueError("Timeframe must be a whole number of days")
    if window_days < 0:
        raise ValueError("Timeframe must not be negative")
    return now - timedelta(days=window_days)


def group_by_platform(donations: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Group donations by platform with amount sum and count.

    Groups are ordered by amount, largest first, then platform name.
    """
    groups: Dict[str, List[Any]] = {}
    for donation in donations:
        groups.setdefault(donation.get("platform"), []).append(donation.get("amount"))

    result = [
        {"platform": platform, "amount": sum_amounts(amounts), "count": len(amounts)}
        for platform, amounts in groups.items()
    ]
    result.sort(key=lambda g: (-g["amount"], g["platform"] or ""))
    return result


def most_recent(donations: Iterable[Dict[str, Any]], limit: int = RECENT_DONATIONS_LIMIT) -> List[Dict[str, Any]]:
    """Newest donations by donation date."""
    return sorted(donations, key=lambda d: d.get("donationDate") or datetime.min, reverse=True)[:limit]


def donor_stats(donations: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Summarize a donor's donations.

    Only verified donations count towards the amount, the count and the
    families supported.
    """
    verified, pending = split_by_verification(donations)
    return {
        "totalAmount": sum_amounts(d.get("amount") for d in verified),
        "totalCount": len(verified),
        "pendingCount": len(pending),
        "familiesSupported": len({d.get("familyCode") for d in verified})
    }


def needs_rollup(needs: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Open and fulfilled need counts plus the estimated cost still open."""
    open_needs = []
    fulfilled = 0
    for need in needs:
        if need.get("isFulfilled"):
            fulfilled += 1
        else:
            open_needs.append(need)
    return {
        "open": len(open_needs),
        "fulfilled": fulfilled,
        "openEstimatedCost": sum_amounts(n.get("estimatedCost") for n in open_needs)
    }


def parse_window_days(value: Optional[str], default: int = 30) -> int:
    """
    Parse a timeframe query value.

    Raises:
        ValueError: If the value is not a non-negative integer
    """
    if value is None or value == "":
        return default
    text = str(value).strip()
    if not text.isdigit():
        raise ValueError("Timeframe must be a non-negative whole number of days")
    return int(text)
