# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Family catalogue and verification workflow.

A family is a public FamilyProfile plus a SensitiveFamilyRecord in the
vault, joined by family code. Both are created together and, if the second
write fails, the first is removed again.
"""

import logging
from typing import Dict, Any, List, Optional, Tuple
from pymongo import DESCENDING
from opentelemetry import trace

from .mongodb import MongoDBService, PaginationResult, FAMILIES, NEEDS, DONATIONS
from .vault import SensitiveDataVault
from ..domain import aggregation
from ..domain.verification import validate_decision
from ..middleware.error_handler import (
    DuplicateException,
    DuplicateFamilyCodeException,
    DuplicateFamilyProfileException,
    FamilyNotFoundException,
    MissingFieldsException,
    ValidationException
)
from ..models.base import utc_now
from ..models.entities import FamilyProfile
from ..models.enums import PriorityLevel, VerificationStatus, PRIORITY_RANK

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

# Attribute name -> request key, in the order reported to clients
REQUIRED_FAMILY_FIELDS = (
    ("family_code", "familyCode"),
    ("region", "region"),
    ("real_name", "realName"),
    ("exact_location", "exactLocation"),
    ("story", "story"),
)

FAMILY_SORT = [("priorityRank", DESCENDING), ("createdAt", DESCENDING)]
SUGGESTED_FAMILIES_LIMIT = 10


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def public_family_view(family: Dict[str, Any]) -> Dict[str, Any]:
    """Fields of a family anyone may read."""
    return {
        "familyCode": family.get("familyCode"),
        "region": family.get("region"),
        "priorityLevel": family.get("priorityLevel"),
        "verificationStatus": family.get("verificationStatus"),
        "isActive": family.get("isActive"),
        "createdAt": family.get("createdAt")
    }


def _need_summary(need: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": need.get("id"),
        "category": need.get("category"),
        "title": need.get("title"),
        "priority": need.get("priority"),
        "estimatedCost": need.get("estimatedCost")
    }


def _donation_summary(donation: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "platform": donation.get("platform"),
        "donorName": donation.get("donorName"),
        "amount": donation.get("amount"),
        "currency": donation.get("currency"),
        "donationDate": donation.get("donationDate")
    }


class FamilyService:
    """Family creation, public views and verification decisions."""

    def __init__(self, mongodb_service: MongoDBService, vault: SensitiveDataVault):
        self.mongodb = mongodb_service
        self.vault = vault

    # Validation

    @staticmethod
    def require_family_fields(fields: Dict[str, Any]) -> None:
        """
        Check the five fields every family needs.

        Raises:
            MissingFieldsException: Naming every absent or blank field
        """
        missing = [key for attr, key in REQUIRED_FAMILY_FIELDS if _is_blank(fields.get(attr))]
        if missing:
            raise MissingFieldsException(
                "Family registration requires: familyCode, region, realName, exactLocation, story",
                missing
            )

    def ensure_code_available(self, family_code: str) -> None:
        """Raise DuplicateFamilyCodeException if the code is taken."""
        if self.mongodb.count(FAMILIES, {"familyCode": family_code}) > 0:
            raise DuplicateFamilyCodeException()

    # Lookups

    def get_family(self, family_code: str) -> Optional[Dict[str, Any]]:
        return self.mongodb.find_one(FAMILIES, {"familyCode": family_code})

    def require_family(self, family_code: str) -> Dict[str, Any]:
        """Family document or FamilyNotFoundException."""
        family = self.get_family(family_code)
        if family is None:
            raise FamilyNotFoundException()
        return family

    def find_by_account(self, account_id: str) -> Optional[Dict[str, Any]]:
        return self.mongodb.find_one(FAMILIES, {"accountId": account_id})

    # Creation

    def create_family(self, fields: Dict[str, Any], account_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a family and its sensitive record.

        Args:
            fields: family_code, region, real_name, exact_location, story and
                optionally priority_level
            account_id: Owning family account, None when an admin creates it

        Returns:
            The stored family document

        Raises:
            MissingFieldsException: If a required field is absent or blank
            DuplicateFamilyProfileException: If the account already owns a family
            DuplicateFamilyCodeException: If the code is taken
        """
        with tracer.start_as_current_span("families.create_family") as span:
            self.require_family_fields(fields)
            family_code = fields["family_code"].strip()
            span.set_attribute("family.code", family_code)

            # One family profile per account
            if account_id is not None and self.find_by_account(account_id) is not None:
                raise DuplicateFamilyProfileException()
            self.ensure_code_available(family_code)

            priority = PriorityLevel(fields.get("priority_level") or PriorityLevel.MEDIUM).value
            profile = FamilyProfile(
                family_code=family_code,
                region=fields["region"],
                priority_level=priority,
                priority_rank=PRIORITY_RANK[priority],
                account_id=account_id
            )

            try:
                family = self.mongodb.create(FAMILIES, profile.to_document())
            except DuplicateException as e:
                # Lost a race with a concurrent creation of the same code
                raise DuplicateFamilyCodeException() from e

            try:
                self.vault.create(
                    family_code,
                    fields["real_name"].strip(),
                    fields["exact_location"].strip(),
                    fields["story"].strip()
                )
            except Exception:
                logger.error(
                    "Sensitive record creation failed, removing family",
                    extra={"family_code": family_code}
                )
                self.mongodb.delete_one(FAMILIES, {"familyCode": family_code})
                raise

            logger.info(
                "Family created",
                extra={"family_code": family_code, "account_id": account_id, "region": family["region"]}
            )
            return family

    def delete_family(self, family_code: str) -> None:
        """Remove both halves of a family; used to undo a failed registration."""
        self.vault.delete(family_code)
        self.mongodb.delete_one(FAMILIES, {"familyCode": family_code})
        logger.warning("Family deleted", extra={"family_code": family_code})

    # Public views

    def _open_needs_by_family(self, family_codes: List[str]) -> Dict[str, List[Dict[str, Any]]]:
        grouped: Dict[str, List[Dict[str, Any]]] = {code: [] for code in family_codes}
        needs = self.mongodb.find(
            NEEDS,
            {"familyCode": {"$in": family_codes}, "isFulfilled": False},
            sort=[("createdAt", DESCENDING)]
        )
        for need in needs:
            grouped.setdefault(need["familyCode"], []).append(_need_summary(need))
        return grouped

    def _verified_donations_by_family(self, family_codes: List[str]) -> Dict[str, List[Dict[str, Any]]]:
        grouped: Dict[str, List[Dict[str, Any]]] = {code: [] for code in family_codes}
        donations = self.mongodb.find(
            DONATIONS,
            {"familyCode": {"$in": family_codes}, "isVerified": True},
            sort=[("donationDate", DESCENDING)]
        )
        for donation in donations:
            grouped.setdefault(donation["familyCode"], []).append(_donation_summary(donation))
        return grouped

    def _with_open_needs_and_donations(self, families: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        codes = [f["familyCode"] for f in families]
        needs = self._open_needs_by_family(codes)
        donations = self._verified_donations_by_family(codes)

        enriched = []
        for family in families:
            view = public_family_view(family)
            view["needs"] = needs.get(family["familyCode"], [])
            view["externalDonations"] = donations.get(family["familyCode"], [])
            enriched.append(view)
        return enriched

    def list_families(self, region: Optional[str] = None, verification_status: Optional[str] = None,
                      priority_level: Optional[str] = None, page: int = 1,
                      limit: int = 10) -> Tuple[List[Dict[str, Any]], PaginationResult]:
        """
        Active families, HIGH priority first then newest.

        Each family carries its open needs and verified donations.
        """
        with tracer.start_as_current_span("families.list_families") as span:
            filters: Dict[str, Any] = {"isActive": True}
            if region:
                filters["region"] = region
            if verification_status:
                filters["verificationStatus"] = VerificationStatus(verification_status).value
            if priority_level:
                filters["priorityLevel"] = PriorityLevel(priority_level).value

            result = self.mongodb.paginate(FAMILIES, filters, page=page, limit=limit, sort=FAMILY_SORT)
            span.set_attributes({"families.total": result.total, "families.page": page})
            return self._with_open_needs_and_donations(result.items), result

    def families_by_codes(self, family_codes: List[str]) -> List[Dict[str, Any]]:
        """Active families among the codes, in the order given."""
        if not family_codes:
            return []
        found = {
            f["familyCode"]: f
            for f in self.mongodb.find(FAMILIES, {"familyCode": {"$in": family_codes}, "isActive": True})
        }
        ordered = [found[code] for code in family_codes if code in found]
        return self._with_open_needs_and_donations(ordered)

    def suggested_for_regions(self, regions: List[str], limit: int = SUGGESTED_FAMILIES_LIMIT) -> List[Dict[str, Any]]:
        """Verified active families in the given regions, highest priority first."""
        if not regions:
            return []
        families = self.mongodb.find(
            FAMILIES,
            {
                "region": {"$in": list(regions)},
                "verificationStatus": VerificationStatus.VERIFIED.value,
                "isActive": True
            },
            sort=FAMILY_SORT,
            limit=limit
        )
        return self._with_open_needs_and_donations(families)

    def get_public_family(self, family_code: str) -> Dict[str, Any]:
        """
        Public view of one family with all needs, verified donations and totals.

        Raises:
            FamilyNotFoundException: If the family is missing or inactive
        """
        with tracer.start_as_current_span("families.get_public_family") as span:
            span.set_attribute("family.code", family_code)

            family = self.get_family(family_code)
            if family is None or not family.get("isActive"):
                raise FamilyNotFoundException()

            needs = self.mongodb.find(NEEDS, {"familyCode": family_code}, sort=[("createdAt", DESCENDING)])
            donations = self.mongodb.find(
                DONATIONS,
                {"familyCode": family_code, "isVerified": True},
                sort=[("donationDate", DESCENDING)]
            )

            view = public_family_view(family)
            view["needs"] = [
                {
                    "id": n.get("id"),
                    "category": n.get("category"),
                    "title": n.get("title"),
                    "description": n.get("description"),
                    "estimatedCost": n.get("estimatedCost"),
                    "priority": n.get("priority"),
                    "isFulfilled": n.get("isFulfilled"),
                    "createdAt": n.get("createdAt")
                }
                for n in needs
            ]
            view["externalDonations"] = [_donation_summary(d) for d in donations]
            view["totals"] = aggregation.family_totals(donations)
            view["needsSummary"] = aggregation.needs_rollup(needs)
            return view

    # Verification workflow

    def decide(self, family_code: str, admin_id: str, outcome: Any) -> Dict[str, Any]:
        """
        Apply an administrator's verification decision.

        Updates the family status and stamps the sensitive record. Earlier
        decisions may be overturned.

        Raises:
            ValidationException: If the outcome is not VERIFIED or REJECTED
            FamilyNotFoundException: If the family code is unknown
        """
        with tracer.start_as_current_span("families.decide") as span:
            span.set_attributes({"family.code": family_code, "admin.id": admin_id or ""})

            validation = validate_decision(outcome)
            if not validation.is_valid:
                raise ValidationException(
                    "Invalid verification status",
                    [{"field": "status", "message": error} for error in validation.errors]
                )

            family = self.require_family(family_code)
            previous = family.get("verificationStatus")

            self.mongodb.update_one(
                FAMILIES,
                {"familyCode": family_code},
                {"verificationStatus": validation.outcome, "verifiedByAdminId": admin_id}
            )
            self.vault.stamp_verification(family_code, admin_id, utc_now())

            span.set_attribute("family.status", validation.outcome)
            logger.info(
                "Family verification decided",
                extra={
                    "family_code": family_code,
                    "admin_id": admin_id,
                    "previous_status": previous,
                    "status": validation.outcome
                }
            )
            return {"familyCode": family_code, "status": validation.outcome}

    def read_secure(self, family_code: str) -> Dict[str, Any]:
        """Sensitive record together with the family's public summary."""
        family = self.require_family(family_code)
        record = self.vault.read(family_code)
        record["family"] = {
            "familyCode": family.get("familyCode"),
            "region": family.get("region"),
            "verificationStatus": family.get("verificationStatus"),
            "priorityLevel": family.get("priorityLevel")
        }
        return record
