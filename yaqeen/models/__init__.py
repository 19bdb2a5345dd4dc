# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the Yaqeen platform.
"""

# Base models
from .base import BaseEntity, DocumentModel, generate_object_id, utc_now

# Enumerations
from .enums import (
    Role,
    AdminPermission,
    PriorityLevel,
    VerificationStatus,
    PRIORITY_RANK
)

# Core entities
from .entities import (
    Account,
    DonorProfile,
    AdminProfile,
    FamilyProfile,
    SensitiveFamilyRecord,
    FamilyNeed,
    ExternalDonation,
    UserContext
)

# Request models
from .requests import (
    RegisterRequest,
    LoginRequest,
    CreateFamilyRequest,
    VerifyFamilyRequest,
    RecordDonationRequest,
    VerifyDonationRequest,
    UpdateDonorProfileRequest,
    CreateNeedRequest
)

__all__ = [
    # Base models
    "BaseEntity",
    "DocumentModel",
    "generate_object_id",
    "utc_now",

    # Enumerations
    "Role",
    "AdminPermission",
    "PriorityLevel",
    "VerificationStatus",
    "PRIORITY_RANK",

    # Core entities
    "Account",
    "DonorProfile",
    "AdminProfile",
    "FamilyProfile",
    "SensitiveFamilyRecord",
    "FamilyNeed",
    "ExternalDonation",
    "UserContext",

    # Request models
    "RegisterRequest",
    "LoginRequest",
    "CreateFamilyRequest",
    "VerifyFamilyRequest",
    "RecordDonationRequest",
    "VerifyDonationRequest",
    "UpdateDonorProfileRequest",
    "CreateNeedRequest"
]
