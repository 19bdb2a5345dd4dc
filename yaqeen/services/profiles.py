# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Profile registry for role-specific account profiles.
"""

import logging
from typing import Dict, Any, List, Optional, Tuple
from pymongo import DESCENDING
from pydantic.alias_generators import to_camel
from opentelemetry import trace

from .mongodb import MongoDBService, PaginationResult, ACCOUNTS, ADMINS, DONORS
from .families import FamilyService
from ..domain.authorization import admin_permissions_for
from ..middleware.error_handler import DuplicateException, DuplicateAccountException, NotFoundException
from ..models.entities import AdminProfile, DonorProfile
from ..models.enums import Role

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DONOR_UPDATABLE_FIELDS = ("name", "country", "preferred_regions", "favorite_families")


def _without_password(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if document is not None:
        document.pop("passwordHash", None)
    return document


class ProfileRegistry:
    """Creates and resolves donor, admin and family profiles."""

    def __init__(self, mongodb_service: MongoDBService, family_service: FamilyService):
        self.mongodb = mongodb_service
        self.families = family_service

    # Creation

    def create_donor(self, account_id: str, name: str, country: Optional[str] = None,
                     preferred_regions: Optional[List[str]] = None) -> Dict[str, Any]:
        """Create the donor profile for an account."""
        with tracer.start_as_current_span("profiles.create_donor") as span:
            span.set_attribute("account.id", account_id)

            profile = DonorProfile(
                account_id=account_id,
                name=name,
                country=country or "Unknown",
                preferred_regions=preferred_regions or []
            )
            try:
                donor = self.mongodb.create(DONORS, profile.to_document())
            except DuplicateException as e:
                raise DuplicateAccountException("Donor profile already exists") from e

            logger.info("Donor profile created", extra={"account_id": account_id, "donor_id": donor["id"]})
            return donor

    def create_admin(self, email: str, password_hash: str, name: str) -> Dict[str, Any]:
        """
        Create an administrator profile.

        The first administrator ever created becomes SUPER_ADMIN. Counting
        and inserting are separate steps, so two simultaneous first
        registrations can both be granted SUPER_ADMIN.
        """
        with tracer.start_as_current_span("profiles.create_admin") as span:
            existing = self.mongodb.count(ADMINS)
            permissions = admin_permissions_for(existing)
            span.set_attribute("admin.permissions", ",".join(permissions))

            profile = AdminProfile(
                email=email,
                password_hash=password_hash,
                name=name,
                permissions=permissions
            )
            try:
                admin = self.mongodb.create(ADMINS, profile.to_document())
            except DuplicateException as e:
                raise DuplicateAccountException() from e

            logger.info("Admin profile created", extra={"email": email, "permissions": permissions})
            return _without_password(admin)

    def create_family(self, account_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create the family owned by a family account."""
        return self.families.create_family(fields, account_id=account_id)

    # Lookups

    def find_admin_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return _without_password(self.mongodb.find_one(ADMINS, {"email": email.lower()}))

    def find_donor_by_account(self, account_id: str) -> Optional[Dict[str, Any]]:
        return self.mongodb.find_one(DONORS, {"accountId": account_id})

    def require_donor_by_account(self, account_id: str) -> Dict[str, Any]:
        donor = self.find_donor_by_account(account_id)
        if donor is None:
            raise NotFoundException("Donor profile not found")
        return donor

    def get_donor(self, donor_id: str) -> Dict[str, Any]:
        """Donor profile by id, with the owning account's public fields."""
        donor = self.mongodb.find_by_id(DONORS, donor_id)
        if donor is None:
            raise NotFoundException("Donor not found")
        donor["user"] = self._account_summary(donor.get("accountId"))
        return donor

    def find_by_account(self, account: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Resolve the profile matching an account's role."""
        role = account.get("role")
        if role == Role.DONOR.value:
            return self.find_donor_by_account(account["id"])
        if role == Role.ADMIN.value:
            return self.find_admin_by_email(account["email"])
        if role == Role.FAMILY.value:
            return self.families.find_by_account(account["id"])
        return None

    @staticmethod
    def profile_id_for(role: str, profile: Optional[Dict[str, Any]]) -> Optional[str]:
        """Token profile id: donor id for donors, family code for families."""
        if profile is None:
            return None
        if role == Role.DONOR.value:
            return profile.get("id")
        if role == Role.FAMILY.value:
            return profile.get("familyCode")
        return None

    def _account_summary(self, account_id: Optional[str]) -> Optional[Dict[str, Any]]:
        account = self.mongodb.find_by_id(ACCOUNTS, account_id) if account_id else None
        if account is None:
            return None
        return {
            "email": account.get("email"),
            "isActive": account.get("isActive"),
            "createdAt": account.get("createdAt")
        }

    # Donor self-service

    def update_donor_profile(self, account_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply allowed changes to the caller's donor profile.

        Only name, country, preferred regions and favorite families are
        applied; any other key is ignored. Favorites are de-duplicated
        keeping the first occurrence.
        """
        with tracer.start_as_current_span("profiles.update_donor_profile") as span:
            span.set_attribute("account.id", account_id)

            donor = self.require_donor_by_account(account_id)
            profile = DonorProfile.from_document(donor)

            applied = []
            for field in DONOR_UPDATABLE_FIELDS:
                value = changes.get(field)
                if value is not None:
                    # validate_assignment runs the model validators
                    setattr(profile, field, value)
                    applied.append(field)

            if applied:
                document = profile.to_document()
                updates = {to_camel(f): document[to_camel(f)] for f in applied}
                self.mongodb.update_by_id(DONORS, donor["id"], updates)
                donor.update(updates)

            logger.info("Donor profile updated", extra={"account_id": account_id, "fields": applied})
            return donor

    def add_favorite(self, account_id: str, family_code: str) -> List[str]:
        """Append a family to the donor's favorites unless already there."""
        donor = self.require_donor_by_account(account_id)
        self.families.require_family(family_code)

        favorites = list(donor.get("favoriteFamilies") or [])
        if family_code not in favorites:
            favorites.append(family_code)
            self.mongodb.update_by_id(DONORS, donor["id"], {"favoriteFamilies": favorites})
            logger.info("Favorite family added", extra={"donor_id": donor["id"], "family_code": family_code})
        return favorites

    def remove_favorite(self, account_id: str, family_code: str) -> List[str]:
        """Remove a family from the donor's favorites."""
        donor = self.require_donor_by_account(account_id)

        favorites = [code for code in donor.get("favoriteFamilies") or [] if code != family_code]
        self.mongodb.update_by_id(DONORS, donor["id"], {"favoriteFamilies": favorites})
        logger.info("Favorite family removed", extra={"donor_id": donor["id"], "family_code": family_code})
        return favorites

    def list_favorites(self, account_id: str) -> List[Dict[str, Any]]:
        """Active favorite families with their open needs and verified donations."""
        donor = self.require_donor_by_account(account_id)
        return self.families.families_by_codes(donor.get("favoriteFamilies") or [])

    # Administration

    def list_donors(self, country: Optional[str] = None, region: Optional[str] = None,
                    page: int = 1, limit: int = 20) -> Tuple[List[Dict[str, Any]], PaginationResult]:
        """Donors newest first, optionally filtered by country or preferred region."""
        filters: Dict[str, Any] = {}
        if country:
            filters["country"] = country
        if region:
            # Matches array elements
            filters["preferredRegions"] = region

        result = self.mongodb.paginate(DONORS, filters, page=page, limit=limit, sort=[("joinedAt", DESCENDING)])
        for donor in result.items:
            donor["user"] = self._account_summary(donor.get("accountId"))
        return result.items, result
