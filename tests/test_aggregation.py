# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for donation aggregation functions.
"""

import pytest
from datetime import datetime, timedelta

from yaqeen.domain import aggregation


def _donation(amount, verified=True, platform="GoFundMe", family_code="FAM-001",
              currency="USD", donation_date=None):
    return {
        "amount": amount,
        "isVerified": verified,
        "platform": platform,
        "familyCode": family_code,
        "currency": currency,
        "donationDate": donation_date or datetime(2024, 1, 1)
    }


class TestFamilyTotals:
    """Test family totals."""

    def test_only_verified_donations_are_summed(self):
        donations = [_donation(50), _donation(30, verified=False), _donation(20)]

        totals = aggregation.family_totals(donations)

        assert totals == {"total": 70.0, "currency": "USD", "count": 2, "pending": 1}

    def test_empty_family_uses_default_currency(self):
        assert aggregation.family_totals([], "EUR") == {"total": 0.0, "currency": "EUR", "count": 0, "pending": 0}

    def test_currency_comes_from_newest_entry(self):
        donations = [_donation(10, currency="EUR"), _donation(5, currency="USD")]
        assert aggregation.family_totals(donations)["currency"] == "EUR"

    def test_decimal_summation_does_not_drift(self):
        donations = [_donation(0.1) for _ in range(10)]
        assert aggregation.family_totals(donations)["total"] == 1.0


class TestWindow:
    """Test trailing window computation."""

    def test_window_start(self):
        now = datetime(2024, 2, 1)
        assert aggregation.window_start(now, 30) == now - timedelta(days=30)

    def test_zero_window_is_empty_interval(self):
        now = datetime(2024, 2, 1)
        assert aggregation.window_start(now, 0) == now

    @pytest.mark.parametrize("value", [-1, 1.5, "30", True, None])
    def test_rejects_non_integer_or_negative(self, value):
        with pytest.raises(ValueError):
            aggregation.window_start(datetime(2024, 2, 1), value)

    @pytest.mark.parametrize("value,expected", [(None, 30), ("", 30), ("7", 7), ("0", 0), (" 14 ", 14)])
    def test_parse_window_days(self, value, expected):
        assert aggregation.parse_window_days(value) == expected

    @pytest.mark.parametrize("value", ["-3", "abc", "1.5"])
    def test_parse_window_days_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            aggregation.parse_window_days(value)


class TestGroupByPlatform:
    """Test platform grouping."""

    def test_groups_sorted_by_amount(self):
        donations = [
            _donation(10, platform="PayPal"),
            _donation(100, platform="GoFundMe"),
            _donation(15, platform="PayPal"),
            _donation(25, platform="LaunchGood"),
        ]

        groups = aggregation.group_by_platform(donations)

        # Ties are broken by platform name
        assert groups == [
            {"platform": "GoFundMe", "amount": 100.0, "count": 1},
            {"platform": "LaunchGood", "amount": 25.0, "count": 1},
            {"platform": "PayPal", "amount": 25.0, "count": 2},
        ]

    def test_no_donations_no_groups(self):
        assert aggregation.group_by_platform([]) == []

    def test_most_recent_orders_by_donation_date(self):
        old = _donation(1, donation_date=datetime(2024, 1, 1))
        new = _donation(2, donation_date=datetime(2024, 1, 5))
        assert aggregation.most_recent([old, new], limit=1) == [new]


class TestDonorAndNeeds:
    """Test donor statistics and needs rollup."""

    def test_donor_stats_counts_distinct_families(self):
        donations = [
            _donation(10, family_code="FAM-001"),
            _donation(20, family_code="FAM-002"),
            _donation(5, family_code="FAM-001"),
            _donation(99, verified=False, family_code="FAM-003"),
        ]

        stats = aggregation.donor_stats(donations)

        assert stats == {"totalAmount": 35.0, "totalCount": 3, "pendingCount": 1, "familiesSupported": 2}

    def test_needs_rollup(self):
        needs = [
            {"isFulfilled": False, "estimatedCost": 100},
            {"isFulfilled": False, "estimatedCost": None},
            {"isFulfilled": True, "estimatedCost": 40},
        ]

        assert aggregation.needs_rollup(needs) == {"open": 2, "fulfilled": 1, "openEstimatedCost": 100.0}
