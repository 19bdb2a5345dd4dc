# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for family profiles, verification and the sensitive data vault.
"""

import pytest
from datetime import datetime

from yaqeen.middleware.error_handler import (
    DuplicateFamilyCodeException,
    DuplicateFamilyProfileException,
    FamilyNotFoundException,
    MissingFieldsException,
    NotFoundException,
    ValidationException
)
from yaqeen.services.mongodb import DONATIONS, FAMILIES, NEEDS, SECURE_FAMILY_DATA

ACCOUNT_ID = "507f1f77bcf86cd799439012"


def _fields(code, region="NORTH", priority="MEDIUM"):
    return {
        "family_code": code,
        "region": region,
        "real_name": f"Family {code}",
        "exact_location": "Street 1",
        "story": "Story",
        "priority_level": priority
    }


class TestFamilyCreation:
    """Test family creation."""

    def test_create_family_splits_public_and_sensitive(self, family_service, mongodb_service, sample_family_fields):
        family = family_service.create_family(sample_family_fields)

        assert family["familyCode"] == "FAM-001"
        assert family["priorityRank"] == 3
        assert family["accountId"] is None
        assert family["isActive"] is True

        secure = mongodb_service.find_one(SECURE_FAMILY_DATA, {"familyCode": "FAM-001"})
        assert secure["exactLocation"] == "Street 1, Building 2"
        assert secure["verifiedBy"] is None

    def test_default_priority_is_medium(self, family_service, sample_family_fields):
        del sample_family_fields["priority_level"]

        family = family_service.create_family(sample_family_fields)

        assert family["priorityLevel"] == "MEDIUM"
        assert family["priorityRank"] == 2

    def test_missing_fields(self, family_service, mongodb_service):
        with pytest.raises(MissingFieldsException) as exc_info:
            family_service.create_family({"family_code": "FAM-001"})

        assert exc_info.value.missing_fields == ["region", "realName", "exactLocation", "story"]
        assert mongodb_service.count(FAMILIES) == 0

    def test_duplicate_code(self, family_service, sample_family_fields):
        family_service.create_family(sample_family_fields)

        with pytest.raises(DuplicateFamilyCodeException):
            family_service.create_family(sample_family_fields)

    def test_family_account_linked(self, family_service):
        family = family_service.create_family(_fields("FAM-010"), account_id=ACCOUNT_ID)

        assert family["accountId"] == ACCOUNT_ID
        assert family_service.find_by_account(ACCOUNT_ID)["familyCode"] == "FAM-010"

    def test_account_owns_one_family(self, family_service, mongodb_service):
        family_service.create_family(_fields("FAM-010"), account_id=ACCOUNT_ID)

        with pytest.raises(DuplicateFamilyProfileException):
            family_service.create_family(_fields("FAM-011"), account_id=ACCOUNT_ID)

        assert mongodb_service.count(FAMILIES, {"accountId": ACCOUNT_ID}) == 1
        assert mongodb_service.count(SECURE_FAMILY_DATA, {"familyCode": "FAM-011"}) == 0

    def test_admin_created_families_unlinked(self, family_service, mongodb_service):
        family_service.create_family(_fields("FAM-010"))
        family_service.create_family(_fields("FAM-011"))

        assert mongodb_service.count(FAMILIES, {"accountId": None}) == 2


class TestFamilyListing:
    """Test public listings."""

    def test_high_priority_first_then_newest(self, family_service, mongodb_service):
        family_service.create_family(_fields("FAM-LOW", priority="LOW"))
        family_service.create_family(_fields("FAM-HIGH-OLD", priority="HIGH"))
        family_service.create_family(_fields("FAM-MED", priority="MEDIUM"))
        family_service.create_family(_fields("FAM-HIGH-NEW", priority="HIGH"))
        mongodb_service.update_one(FAMILIES, {"familyCode": "FAM-HIGH-OLD"}, {"createdAt": datetime(2020, 1, 1)})

        families, result = family_service.list_families()

        assert [f["familyCode"] for f in families] == ["FAM-HIGH-NEW", "FAM-HIGH-OLD", "FAM-MED", "FAM-LOW"]
        assert result.total == 4

    def test_filters_and_inactive_excluded(self, family_service, mongodb_service):
        family_service.create_family(_fields("FAM-N1", region="NORTH"))
        family_service.create_family(_fields("FAM-S1", region="SOUTH"))
        family_service.create_family(_fields("FAM-N2", region="NORTH"))
        mongodb_service.update_one(FAMILIES, {"familyCode": "FAM-N2"}, {"isActive": False})

        families, result = family_service.list_families(region="NORTH")

        assert [f["familyCode"] for f in families] == ["FAM-N1"]
        assert result.total == 1

    def test_listing_hides_sensitive_data_and_embeds_open_items(self, family_service, mongodb_service):
        family_service.create_family(_fields("FAM-001"))
        mongodb_service.create(NEEDS, {"familyCode": "FAM-001", "title": "Food", "isFulfilled": False})
        mongodb_service.create(NEEDS, {"familyCode": "FAM-001", "title": "Tent", "isFulfilled": True})
        mongodb_service.create(DONATIONS, {"familyCode": "FAM-001", "amount": 10.0, "isVerified": True,
                                           "donationDate": datetime(2024, 1, 1)})
        mongodb_service.create(DONATIONS, {"familyCode": "FAM-001", "amount": 99.0, "isVerified": False,
                                           "donationDate": datetime(2024, 1, 2)})

        families, _ = family_service.list_families()

        family = families[0]
        assert "realName" not in family
        assert "accountId" not in family
        assert [n["title"] for n in family["needs"]] == ["Food"]
        assert [d["amount"] for d in family["externalDonations"]] == [10.0]

    def test_suggested_for_regions_only_verified(self, family_service):
        family_service.create_family(_fields("FAM-V", region="NORTH"))
        family_service.create_family(_fields("FAM-P", region="NORTH"))
        family_service.create_family(_fields("FAM-X", region="EAST"))
        family_service.decide("FAM-V", "admin-1", "VERIFIED")
        family_service.decide("FAM-X", "admin-1", "VERIFIED")

        suggested = family_service.suggested_for_regions(["NORTH"])

        assert [f["familyCode"] for f in suggested] == ["FAM-V"]
        assert family_service.suggested_for_regions([]) == []


class TestPublicFamily:
    """Test the public family view."""

    def test_public_view_totals(self, family_service, mongodb_service):
        family_service.create_family(_fields("FAM-001"))
        for amount, verified in ((50.0, True), (30.0, False), (20.0, True)):
            mongodb_service.create(DONATIONS, {"familyCode": "FAM-001", "amount": amount, "currency": "USD",
                                               "isVerified": verified, "donationDate": datetime(2024, 1, 1)})

        view = family_service.get_public_family("FAM-001")

        assert view["totals"]["total"] == 70.0
        assert view["totals"]["count"] == 2
        assert len(view["externalDonations"]) == 2
        assert "exactLocation" not in view

    def test_unknown_or_inactive_family(self, family_service, mongodb_service):
        with pytest.raises(FamilyNotFoundException):
            family_service.get_public_family("NOPE")

        family_service.create_family(_fields("FAM-001"))
        mongodb_service.update_one(FAMILIES, {"familyCode": "FAM-001"}, {"isActive": False})

        with pytest.raises(FamilyNotFoundException):
            family_service.get_public_family("FAM-001")


class TestVerification:
    """Test administrator verification decisions."""

    def test_decide_updates_family_and_stamps_vault(self, family_service, mongodb_service):
        family_service.create_family(_fields("FAM-001"))

        result = family_service.decide("FAM-001", "admin-1", "VERIFIED")

        assert result == {"familyCode": "FAM-001", "status": "VERIFIED"}
        family = family_service.get_family("FAM-001")
        assert family["verificationStatus"] == "VERIFIED"
        assert family["verifiedByAdminId"] == "admin-1"
        secure = mongodb_service.find_one(SECURE_FAMILY_DATA, {"familyCode": "FAM-001"})
        assert secure["verifiedBy"] == "admin-1"
        assert isinstance(secure["verifiedAt"], datetime)

    def test_decision_can_be_revised(self, family_service):
        family_service.create_family(_fields("FAM-001"))
        family_service.decide("FAM-001", "admin-1", "VERIFIED")

        family_service.decide("FAM-001", "admin-2", "REJECTED")

        family = family_service.get_family("FAM-001")
        assert family["verificationStatus"] == "REJECTED"
        assert family["verifiedByAdminId"] == "admin-2"

    def test_pending_is_not_a_decision(self, family_service):
        family_service.create_family(_fields("FAM-001"))

        with pytest.raises(ValidationException):
            family_service.decide("FAM-001", "admin-1", "PENDING")

        assert family_service.get_family("FAM-001")["verificationStatus"] == "PENDING"

    def test_unknown_family(self, family_service):
        with pytest.raises(FamilyNotFoundException):
            family_service.decide("NOPE", "admin-1", "VERIFIED")


class TestSensitiveData:
    """Test the sensitive record store."""

    def test_read_secure_includes_public_summary(self, family_service, sample_family_fields):
        family_service.create_family(sample_family_fields)

        record = family_service.read_secure("FAM-001")

        assert record["realName"] == "Al-Test Family"
        assert record["story"] == "Lost their home and need support"
        assert record["family"]["region"] == "GAZA-NORTH"

    def test_missing_record(self, vault):
        with pytest.raises(NotFoundException):
            vault.read("NOPE")
        with pytest.raises(NotFoundException):
            vault.stamp_verification("NOPE", "admin-1")

    def test_duplicate_record(self, vault):
        vault.create("FAM-001", "Name", "Location", "Story")

        with pytest.raises(DuplicateFamilyCodeException):
            vault.create("FAM-001", "Name", "Location", "Story")
