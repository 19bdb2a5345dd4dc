# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the Yaqeen platform.
"""

from enum import Enum


class Role(str, Enum):
    """Account role; fixed at registration."""
    DONOR = "DONOR"
    FAMILY = "FAMILY"
    ADMIN = "ADMIN"


class AdminPermission(str, Enum):
    """Capability tags granted to administrator profiles."""
    SUPER_ADMIN = "SUPER_ADMIN"
    BASIC_ADMIN = "BASIC_ADMIN"


class PriorityLevel(str, Enum):
    """Priority of a family or a need."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class VerificationStatus(str, Enum):
    """Family verification workflow status."""
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


# Numeric rank stored next to the priority so the store can sort HIGH first
PRIORITY_RANK = {
    PriorityLevel.LOW.value: 1,
    PriorityLevel.MEDIUM.value: 2,
    PriorityLevel.HIGH.value: 3,
}
