# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.

Bodies arrive with camelCase keys; attributes are snake_case.
"""

import re
from typing import List, Optional, Any
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from .entities import EMAIL_PATTERN
from .enums import Role, PriorityLevel, VerificationStatus


class RequestModel(BaseModel):
    """Base for request bodies; unknown keys are ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore'
    )


def _validate_email(v: str) -> str:
    v = v.strip().lower()
    if not re.match(EMAIL_PATTERN, v):
        raise ValueError('Invalid email format')
    return v


class RegisterRequest(RequestModel):
    """Request model for account registration.

    Role-specific fields are optional here; the credential store checks the
    ones the chosen role needs before writing anything.
    """

    email: str = Field(..., description="Account email address")
    password: str = Field(..., min_length=8, description="Account password")
    role: Role = Field(..., description="DONOR, FAMILY or ADMIN")

    # Donor and admin profile fields
    name: Optional[str] = Field(None, max_length=200, description="Display name")
    country: Optional[str] = Field(None, max_length=100, description="Donor country")
    preferred_regions: Optional[List[str]] = Field(None, description="Donor preferred regions")

    # Family profile fields
    family_code: Optional[str] = Field(None, max_length=64, description="Public family identifier")
    region: Optional[str] = Field(None, description="Family region")
    real_name: Optional[str] = Field(None, description="Real family name")
    exact_location: Optional[str] = Field(None, description="Exact family location")
    story: Optional[str] = Field(None, description="Family narrative")
    priority_level: Optional[PriorityLevel] = Field(None, description="Family priority")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        return _validate_email(v)

    @field_validator('role', mode='before')
    @classmethod
    def upper_case_role(cls, v):
        """Roles are case-insensitive on input."""
        return v.strip().upper() if isinstance(v, str) else v


class LoginRequest(RequestModel):
    """Request model for user login."""

    email: str = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        """Lookups are case-insensitive."""
        return v.strip().lower()


class CreateFamilyRequest(RequestModel):
    """Request model for creating a family with its sensitive record."""

    family_code: Optional[str] = Field(None, max_length=64, description="Public family identifier")
    region: Optional[str] = Field(None, description="Region code")
    real_name: Optional[str] = Field(None, description="Real family name")
    exact_location: Optional[str] = Field(None, description="Exact location")
    story: Optional[str] = Field(None, description="Family narrative")
    priority_level: Optional[PriorityLevel] = Field(None, description="Family priority")


class VerifyFamilyRequest(RequestModel):
    """Request model for an administrator verification decision."""

    status: VerificationStatus = Field(..., description="VERIFIED or REJECTED")


class RecordDonationRequest(RequestModel):
    """Request model for recording an external donation.

    ``amount`` and ``donation_date`` are parsed by the ledger so that bad
    values surface as the ledger's own errors.
    """

    family_code: str = Field(..., min_length=1, description="Receiving family code")
    platform: str = Field(..., min_length=1, max_length=100, description="Donation platform")
    donor_name: str = Field(..., min_length=1, max_length=200, description="Donor display name")
    amount: Any = Field(..., description="Donated amount")
    currency: Optional[str] = Field(None, description="ISO currency code")
    donation_date: Any = Field(..., description="ISO-8601 donation date")
    external_link: Optional[str] = Field(None, max_length=2000, description="External donation link")
    donor_id: Optional[str] = Field(None, description="Registered donor profile ID")


class VerifyDonationRequest(RequestModel):
    """Request model for toggling donation verification."""

    is_verified: bool = Field(..., description="New verification flag")


class UpdateDonorProfileRequest(RequestModel):
    """Request model for donor profile updates; omitted fields are unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=200, description="Donor display name")
    country: Optional[str] = Field(None, min_length=1, max_length=100, description="Donor country")
    preferred_regions: Optional[List[str]] = Field(None, description="Preferred regions")
    favorite_families: Optional[List[str]] = Field(None, description="Favorite family codes")


class CreateNeedRequest(RequestModel):
    """Request model for creating a family need."""

    family_code: str = Field(..., min_length=1, description="Family the need belongs to")
    category: str = Field(..., min_length=1, max_length=100, description="Need category")
    title: str = Field(..., min_length=1, max_length=200, description="Need title")
    description: Optional[str] = Field(None, max_length=2000, description="Need description")
    estimated_cost: Any = Field(None, description="Estimated cost")
    priority: PriorityLevel = Field(default=PriorityLevel.MEDIUM, description="Need priority")
