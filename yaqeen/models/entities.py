# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the Yaqeen platform.
"""

import re
from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import Field, field_validator
from .base import BaseEntity, DocumentModel, generate_object_id, utc_now
from .enums import (
    Role,
    AdminPermission,
    PriorityLevel,
    VerificationStatus,
    PRIORITY_RANK
)

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


class Account(BaseEntity):
    """Login account holding credentials and the role tag."""

    email: str = Field(..., description="Account email address")
    password_hash: str = Field(..., description="Hashed password")
    role: Role = Field(..., description="Account role, immutable after creation")
    is_active: bool = Field(default=True, description="Whether the account may log in")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if not re.match(EMAIL_PATTERN, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()

    def to_public(self) -> Dict[str, Any]:
        """Account fields safe to return to clients."""
        return self.to_document(exclude={"password_hash", "updated_at"})


class DonorProfile(DocumentModel):
    """Profile of a registered donor."""

    id: str = Field(default_factory=generate_object_id, description="Donor profile ID")
    account_id: str = Field(..., description="Owning account ID")
    name: str = Field(..., min_length=1, max_length=200, description="Donor display name")
    country: str = Field(default="Unknown", description="Donor country")
    preferred_regions: List[str] = Field(default_factory=list, description="Regions the donor follows")
    favorite_families: List[str] = Field(default_factory=list, description="Favorite family codes, ordered")
    joined_at: datetime = Field(default_factory=utc_now, description="Join timestamp")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate donor name."""
        if not v.strip():
            raise ValueError('Donor name cannot be empty')
        return v.strip()

    @field_validator('preferred_regions', 'favorite_families')
    @classmethod
    def deduplicate(cls, v):
        """Drop duplicates while keeping first-seen order."""
        return list(dict.fromkeys(v))


class AdminProfile(DocumentModel):
    """Administrator profile keyed by the account email."""

    id: str = Field(default_factory=generate_object_id, description="Admin profile ID")
    email: str = Field(..., description="Mirrors the account email")
    password_hash: str = Field(..., description="Mirrors the account password hash")
    name: str = Field(..., min_length=1, max_length=200, description="Administrator name")
    permissions: List[AdminPermission] = Field(default_factory=list, description="Capability tags")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")

    def to_public(self) -> Dict[str, Any]:
        """Profile fields safe to return to clients."""
        return self.to_document(exclude={"password_hash"})


class FamilyProfile(DocumentModel):
    """Public half of a family record."""

    id: str = Field(default_factory=generate_object_id, description="Family record ID")
    family_code: str = Field(..., min_length=1, max_length=64, description="Public family identifier")
    region: str = Field(..., min_length=1, description="Region code")
    priority_level: PriorityLevel = Field(default=PriorityLevel.MEDIUM, description="Family priority")
    priority_rank: int = Field(default=PRIORITY_RANK[PriorityLevel.MEDIUM.value], description="Sortable priority")
    verification_status: VerificationStatus = Field(
        default=VerificationStatus.PENDING,
        description="Verification workflow status"
    )
    is_active: bool = Field(default=True, description="Whether the family is listed")
    account_id: Optional[str] = Field(None, description="Owning family account, if any")
    verified_by_admin_id: Optional[str] = Field(None, description="Admin who decided verification")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update timestamp")

    @field_validator('family_code', 'region')
    @classmethod
    def strip_value(cls, v):
        """Reject blank identifiers."""
        if not v.strip():
            raise ValueError('Value cannot be empty')
        return v.strip()

    def to_public(self) -> Dict[str, Any]:
        """Fields anyone may read."""
        return {
            "familyCode": self.family_code,
            "region": self.region,
            "priorityLevel": self.priority_level,
            "verificationStatus": self.verification_status,
            "isActive": self.is_active,
            "createdAt": self.created_at
        }


class SensitiveFamilyRecord(DocumentModel):
    """Identifying family data, readable by administrators only."""

    id: str = Field(default_factory=generate_object_id, description="Record ID")
    family_code: str = Field(..., description="Owning family code")
    real_name: str = Field(..., min_length=1, description="Real family name")
    exact_location: str = Field(..., min_length=1, description="Exact location")
    story: str = Field(..., min_length=1, description="Family narrative")
    verified_by: Optional[str] = Field(None, description="Admin who stamped verification")
    verified_at: Optional[datetime] = Field(None, description="Verification stamp time")


class FamilyNeed(BaseEntity):
    """A costed request from a family, open until fulfilled."""

    family_code: str = Field(..., description="Family the need belongs to")
    category: str = Field(..., min_length=1, max_length=100, description="Need category")
    title: str = Field(..., min_length=1, max_length=200, description="Need title")
    description: Optional[str] = Field(None, max_length=2000, description="Need description")
    estimated_cost: Optional[float] = Field(None, description="Estimated cost")
    priority: PriorityLevel = Field(default=PriorityLevel.MEDIUM, description="Need priority")
    is_fulfilled: bool = Field(default=False, description="Whether the need is fulfilled")
    fulfilled_at: Optional[datetime] = Field(None, description="Fulfillment timestamp")
    fulfilled_by: Optional[str] = Field(None, description="Account that marked it fulfilled")


class ExternalDonation(BaseEntity):
    """Contribution made on a third-party platform, tracked for aggregation."""

    family_code: str = Field(..., description="Receiving family code")
    platform: str = Field(..., min_length=1, max_length=100, description="Donation platform")
    external_link: Optional[str] = Field(None, description="Link to the external donation")
    donor_name: str = Field(..., min_length=1, max_length=200, description="Donor display name")
    amount: float = Field(..., ge=0, description="Donated amount")
    currency: str = Field(default="USD", min_length=3, max_length=3, description="ISO currency code")
    donation_date: datetime = Field(..., description="When the donation was made")
    donor_id: Optional[str] = Field(None, description="Registered donor profile, if any")
    is_verified: bool = Field(default=False, description="Verified by an administrator")


class UserContext(DocumentModel):
    """User context for request processing built from token claims."""

    account_id: str = Field(..., description="Authenticated account ID")
    email: Optional[str] = Field(None, description="Account email")
    role: Role = Field(..., description="Account role")
    profile_id: Optional[str] = Field(None, description="Donor ID or family code; None for admins")
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    def has_role(self, *roles: Role) -> bool:
        """Check if the user holds any of the given roles."""
        return self.role in [Role(r).value for r in roles]
