# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Donation ledger for contributions made on external platforms.

Entries are append-only apart from the verification flag, which
administrators toggle freely; the last write wins.
"""

import logging
from typing import Dict, Any, List, Optional
from pymongo import DESCENDING
from opentelemetry import trace

from .mongodb import MongoDBService, DONATIONS, DONORS
from .families import FamilyService
from ..domain.authorization import can_attribute_donation, resolve_donor_attribution
from ..domain.donations import normalize_currency, parse_amount, parse_donation_date
from ..middleware.error_handler import (
    AuthorizationException,
    InvalidAmountException,
    NotFoundException,
    ValidationException
)
from ..models.base import utc_now
from ..models.entities import ExternalDonation, UserContext

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

NEWEST_FIRST = [("donationDate", DESCENDING), ("createdAt", DESCENDING)]


class DonationLedger:
    """Records, verifies and lists external donations."""

    def __init__(self, mongodb_service: MongoDBService, family_service: FamilyService,
                 default_currency: str = "USD"):
        self.mongodb = mongodb_service
        self.families = family_service
        self.default_currency = default_currency

    def record(self, family_code: str, platform: str, donor_name: str, amount: Any,
               donation_date: Any, currency: Optional[str] = None, external_link: Optional[str] = None,
               donor_id: Optional[str] = None, caller: Optional[UserContext] = None) -> Dict[str, Any]:
        """
        Record an unverified donation.

        A donor recording without ``donor_id`` is credited automatically;
        only administrators may credit someone else's donor profile.

        Raises:
            FamilyNotFoundException: If the family code is unknown
            InvalidAmountException: If the amount is not a finite, non-negative number
            ValidationException: If the date is unparseable or in the future, or the currency is invalid
            AuthorizationException: If the caller credits another donor
            NotFoundException: If the donor does not exist
        """
        with tracer.start_as_current_span("ledger.record") as span:
            span.set_attributes({"family.code": family_code, "donation.platform": platform})

            self.families.require_family(family_code)

            try:
                parsed_amount = parse_amount(amount)
            except ValueError as e:
                raise InvalidAmountException(str(e)) from e

            try:
                parsed_date = parse_donation_date(donation_date, not_after=utc_now())
            except ValueError as e:
                raise ValidationException(
                    "Invalid donation date",
                    [{"field": "donationDate", "message": str(e)}]
                ) from e

            try:
                parsed_currency = normalize_currency(currency, self.default_currency)
            except ValueError as e:
                raise ValidationException(
                    "Invalid currency",
                    [{"field": "currency", "message": str(e)}]
                ) from e

            if caller is not None:
                donor_id = resolve_donor_attribution(caller, donor_id)
                permission = can_attribute_donation(caller, donor_id)
                if not permission.allowed:
                    raise AuthorizationException(permission.reason)

            if donor_id is not None and self.mongodb.find_by_id(DONORS, donor_id) is None:
                raise NotFoundException("Donor not found")

            entry = ExternalDonation(
                family_code=family_code,
                platform=platform.strip(),
                external_link=external_link,
                donor_name=donor_name.strip(),
                amount=parsed_amount,
                currency=parsed_currency,
                donation_date=parsed_date,
                donor_id=donor_id
            )
            donation = self.mongodb.create(DONATIONS, entry.to_document())

            span.set_attribute("donation.id", donation["id"])
            logger.info(
                "Donation recorded",
                extra={
                    "donation_id": donation["id"],
                    "family_code": family_code,
                    "platform": donation["platform"],
                    "amount": parsed_amount,
                    "currency": parsed_currency,
                    "donor_id": donor_id
                }
            )
            return donation

    def get(self, donation_id: str) -> Dict[str, Any]:
        donation = self.mongodb.find_by_id(DONATIONS, donation_id)
        if donation is None:
            raise NotFoundException("Donation not found")
        return donation

    def set_verification(self, donation_id: str, is_verified: bool) -> Dict[str, Any]:
        """
        Set the verification flag of a donation.

        Raises:
            NotFoundException: If the id is unknown or malformed
        """
        with tracer.start_as_current_span("ledger.set_verification") as span:
            span.set_attributes({"donation.id": donation_id, "donation.verified": bool(is_verified)})

            if not self.mongodb.update_by_id(DONATIONS, donation_id, {"isVerified": bool(is_verified)}):
                raise NotFoundException("Donation not found")

            donation = self.get(donation_id)
            logger.info(
                "Donation verification updated",
                extra={"donation_id": donation_id, "is_verified": bool(is_verified)}
            )
            return donation

    def list_for_family(self, family_code: str, include_unverified: bool = False) -> List[Dict[str, Any]]:
        """Donations of a family, newest donation date first."""
        filters: Dict[str, Any] = {"familyCode": family_code}
        if not include_unverified:
            filters["isVerified"] = True
        return self.mongodb.find(DONATIONS, filters, sort=NEWEST_FIRST)

    def list_for_donor(self, donor_id: str, verified_only: bool = False, limit: int = 0) -> List[Dict[str, Any]]:
        """Donations credited to a donor, newest donation date first."""
        filters: Dict[str, Any] = {"donorId": donor_id}
        if verified_only:
            filters["isVerified"] = True
        return self.mongodb.find(DONATIONS, filters, sort=NEWEST_FIRST, limit=limit)
