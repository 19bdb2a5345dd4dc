# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for family needs.
"""

import pytest

from yaqeen.middleware.error_handler import (
    AuthorizationException,
    FamilyNotFoundException,
    InvalidAmountException,
    NotFoundException,
    ValidationException
)


@pytest.fixture
def family(family_service, sample_family_fields):
    return family_service.create_family(sample_family_fields)


class TestCreateNeed:
    """Test posting needs."""

    def test_admin_creates_need(self, need_service, family, admin_context):
        need = need_service.create_need(admin_context, "FAM-001", "Food", "Monthly groceries",
                                        estimated_cost="150.50", priority="HIGH")

        assert need["familyCode"] == "FAM-001"
        assert need["estimatedCost"] == 150.5
        assert need["priority"] == "HIGH"
        assert need["isFulfilled"] is False
        assert need["fulfilledAt"] is None

    def test_family_creates_own_need(self, need_service, family, family_context):
        need = need_service.create_need(family_context("FAM-001"), "FAM-001", "Shelter", "Tent")

        assert need["priority"] == "MEDIUM"
        assert need["estimatedCost"] is None

    def test_family_cannot_post_for_other_family(self, need_service, family, family_context):
        with pytest.raises(AuthorizationException):
            need_service.create_need(family_context("FAM-002"), "FAM-001", "Shelter", "Tent")

    def test_donor_cannot_post(self, need_service, family, donor_context):
        with pytest.raises(AuthorizationException):
            need_service.create_need(donor_context("d1"), "FAM-001", "Shelter", "Tent")

    def test_unknown_family(self, need_service, admin_context):
        with pytest.raises(FamilyNotFoundException):
            need_service.create_need(admin_context, "NOPE", "Food", "Groceries")

    def test_negative_cost(self, need_service, family, admin_context):
        with pytest.raises(InvalidAmountException):
            need_service.create_need(admin_context, "FAM-001", "Food", "Groceries", estimated_cost=-10)


class TestFulfillNeed:
    """Test fulfilling needs."""

    def test_fulfill_once(self, need_service, family, admin_context, donor_context):
        need = need_service.create_need(admin_context, "FAM-001", "Food", "Groceries")
        caller = donor_context("d1")

        fulfilled = need_service.fulfill_need(need["id"], caller)

        assert fulfilled["isFulfilled"] is True
        assert fulfilled["fulfilledBy"] == caller.account_id
        assert fulfilled["fulfilledAt"] is not None

        with pytest.raises(ValidationException) as exc_info:
            need_service.fulfill_need(need["id"], caller)
        assert exc_info.value.message == "Need already fulfilled"

    def test_unknown_need(self, need_service, admin_context):
        with pytest.raises(NotFoundException):
            need_service.fulfill_need("507f1f77bcf86cd799439000", admin_context)
        with pytest.raises(NotFoundException):
            need_service.fulfill_need("bad-id", admin_context)


class TestListNeeds:
    """Test listing open needs."""

    def test_only_open_needs_newest_first(self, need_service, family_service, family, admin_context):
        family_service.create_family({
            "family_code": "FAM-002", "region": "SOUTH", "real_name": "N",
            "exact_location": "L", "story": "S"
        })
        first = need_service.create_need(admin_context, "FAM-001", "Food", "Groceries")
        done = need_service.create_need(admin_context, "FAM-001", "Food", "Water")
        other = need_service.create_need(admin_context, "FAM-002", "Medical", "Insulin")
        need_service.fulfill_need(done["id"], admin_context)

        needs, result = need_service.list_open_needs()
        assert {n["id"] for n in needs} == {first["id"], other["id"]}
        assert result.total == 2

        needs, _ = need_service.list_open_needs(family_code="FAM-002")
        assert [n["id"] for n in needs] == [other["id"]]

        needs, _ = need_service.list_open_needs(category="Food")
        assert [n["id"] for n in needs] == [first["id"]]
