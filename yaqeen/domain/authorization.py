# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for role-based access control.

This module contains pure functions for role checks, resource ownership
checks and administrator permission bootstrapping.
"""

from typing import List, Optional
from dataclasses import dataclass
from ..models.entities import UserContext
from ..models.enums import Role, AdminPermission


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None


def _role_value(role) -> str:
    return Role(role).value


def required_role_message(*roles) -> str:
    """Error message naming the roles an endpoint accepts."""
    return f"Access denied. Required role: {' or '.join(_role_value(r) for r in roles)}"


def check_role(user_context: UserContext, *roles) -> AuthorizationResult:
    """
    Check if the user holds one of the given roles.

    Args:
        user_context: Authenticated user context
        roles: Accepted roles

    Returns:
        AuthorizationResult indicating if access is granted
    """
    if user_context.has_role(*roles):
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(allowed=False, reason=required_role_message(*roles))


def can_manage_family(user_context: UserContext, family_code: str) -> AuthorizationResult:
    """
    Check if the user may act on behalf of a family.

    Administrators manage every family; a family account only its own.
    """
    if user_context.has_role(Role.ADMIN):
        return AuthorizationResult(allowed=True)

    if user_context.has_role(Role.FAMILY) and user_context.profile_id == family_code:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Access denied to family {family_code}"
    )


def can_attribute_donation(user_context: UserContext, donor_id: Optional[str]) -> AuthorizationResult:
    """
    Check if the user may attribute a donation to a donor profile.

    Administrators may attribute to any donor; everyone else only to their
    own donor profile.
    """
    if donor_id is None or user_context.has_role(Role.ADMIN):
        return AuthorizationResult(allowed=True)

    if user_context.has_role(Role.DONOR) and user_context.profile_id == donor_id:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason="Access denied. Donations can only be attributed to your own donor profile"
    )


def resolve_donor_attribution(user_context: UserContext, donor_id: Optional[str]) -> Optional[str]:
    """Donor a new donation is attributed to; donors default to themselves."""
    if donor_id is None and user_context.has_role(Role.DONOR):
        return user_context.profile_id
    return donor_id


def admin_permissions_for(existing_admin_count: int) -> List[str]:
    """
    Permissions granted to a new administrator.

    The very first administrator becomes SUPER_ADMIN, every later one BASIC_ADMIN.
    """
    if existing_admin_count == 0:
        return [AdminPermission.SUPER_ADMIN.value]
    return [AdminPermission.BASIC_ADMIN.value]
