# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Credential store: registration, login and token introspection.

Registration is all-or-nothing. Every check runs before the first write and,
if the role profile cannot be created, the account is removed again before
the error propagates.
"""

import logging
from typing import Dict, Any, Optional
from opentelemetry import trace

from .auth import AuthService, TokenValidationError
from .families import FamilyService
from .mongodb import MongoDBService, ACCOUNTS, ADMINS, DONORS
from .profiles import ProfileRegistry
from ..middleware.error_handler import (
    DuplicateException,
    DuplicateAccountException,
    InvalidCredentialsException,
    InvalidTokenException,
    MissingFieldsException,
    NotFoundException,
    TokenRequiredException,
    ValidationException
)
from ..models.entities import Account
from ..models.enums import Role

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class CredentialStore:
    """Accounts with bcrypt-hashed passwords and RS256 session tokens."""

    def __init__(self, mongodb_service: MongoDBService, auth_service: AuthService,
                 profiles: ProfileRegistry, family_service: FamilyService):
        self.mongodb = mongodb_service
        self.auth = auth_service
        self.profiles = profiles
        self.families = family_service

    @staticmethod
    def _normalize_role(role: Any) -> Role:
        if isinstance(role, str):
            role = role.strip().upper()
        try:
            return Role(role)
        except ValueError as e:
            raise ValidationException(
                "Invalid role",
                [{"field": "role", "message": f"Role must be one of: {', '.join(r.value for r in Role)}"}]
            ) from e

    def _validate_role_fields(self, role: Role, role_fields: Dict[str, Any]) -> None:
        """Checks that must pass before anything is written."""
        if role in (Role.DONOR, Role.ADMIN):
            if _is_blank(role_fields.get("name")):
                raise MissingFieldsException(f"{role.value.title()} registration requires: name", ["name"])
        elif role == Role.FAMILY:
            self.families.require_family_fields(role_fields)
            self.families.ensure_code_available(role_fields["family_code"].strip())

    def _create_profile(self, account: Dict[str, Any], role: Role,
                        role_fields: Dict[str, Any]) -> Dict[str, Any]:
        if role == Role.DONOR:
            return self.profiles.create_donor(
                account["id"],
                role_fields["name"].strip(),
                role_fields.get("country"),
                role_fields.get("preferred_regions")
            )
        if role == Role.ADMIN:
            return self.profiles.create_admin(account["email"], account["passwordHash"], role_fields["name"].strip())
        return self.profiles.create_family(account["id"], role_fields)

    def _undo_registration(self, account: Dict[str, Any], role: Role, role_fields: Dict[str, Any]) -> None:
        """Remove everything a failed registration may have written."""
        if role == Role.FAMILY:
            family = self.families.find_by_account(account["id"])
            if family is not None:
                self.families.delete_family(family["familyCode"])
        elif role == Role.DONOR:
            self.mongodb.delete_one(DONORS, {"accountId": account["id"]})
        elif role == Role.ADMIN:
            self.mongodb.delete_one(ADMINS, {"email": account["email"]})
        self.mongodb.delete_by_id(ACCOUNTS, account["id"])

    def _session(self, account: Dict[str, Any], profile: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        role = account["role"]
        token = self.auth.generate_token(
            account["id"],
            account["email"],
            role,
            self.profiles.profile_id_for(role, profile)
        )
        return {
            "token": token["token"],
            "expiresAt": token["expires_at"],
            "user": {
                "id": account["id"],
                "email": account["email"],
                "role": role,
                "profile": profile
            }
        }

    def register(self, email: str, password: str, role: Any,
                 role_fields: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Register an account and its role profile.

        Args:
            email: Account email, stored lower-cased
            password: Plain text password
            role: DONOR, FAMILY or ADMIN
            role_fields: name, country, preferred_regions for donors and
                admins; family_code, region, real_name, exact_location,
                story and priority_level for families

        Returns:
            Dict with the session token and the new user with its profile
        """
        with tracer.start_as_current_span("accounts.register") as span:
            role = self._normalize_role(role)
            role_fields = role_fields or {}
            email = email.strip().lower()
            span.set_attribute("user.role", role.value)

            if self.mongodb.count(ACCOUNTS, {"email": email}) > 0:
                raise DuplicateAccountException()
            self._validate_role_fields(role, role_fields)

            account_model = Account(
                email=email,
                password_hash=self.auth.hash_password(password),
                role=role
            )
            try:
                account = self.mongodb.create(ACCOUNTS, account_model.to_document())
            except DuplicateException as e:
                raise DuplicateAccountException() from e

            try:
                profile = self._create_profile(account, role, role_fields)
            except Exception:
                logger.error(
                    "Profile creation failed, rolling back registration",
                    extra={"account_id": account["id"], "role": role.value}
                )
                self._undo_registration(account, role, role_fields)
                raise

            span.set_attribute("user.id", account["id"])
            logger.info(
                "Account registered",
                extra={"account_id": account["id"], "email": email, "role": role.value}
            )
            return self._session(account, profile)

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """
        Log in with email and password.

        Raises:
            InvalidCredentialsException: If the account is absent, inactive
                or the password does not match
        """
        with tracer.start_as_current_span("accounts.authenticate") as span:
            account = self.mongodb.find_one(ACCOUNTS, {"email": email.strip().lower()})

            # Always run bcrypt so unknown emails take as long as known ones
            password_ok = self.auth.verify_password(password, account.get("passwordHash") if account else None)

            if account is None or not account.get("isActive", True) or not password_ok:
                span.set_attribute("auth.result", "failed")
                logger.warning(
                    "Login failed",
                    extra={"email": email, "account_found": account is not None}
                )
                raise InvalidCredentialsException()

            profile = self.profiles.find_by_account(account)
            span.set_attributes({"auth.result": "success", "user.id": account["id"]})
            logger.info("Login successful", extra={"account_id": account["id"], "role": account["role"]})
            return self._session(account, profile)

    def introspect(self, token: Optional[str]) -> Dict[str, Any]:
        """
        Validate a bearer token and return its claims.

        Raises:
            TokenRequiredException: If no token was supplied
            InvalidTokenException: If the token is expired, tampered or malformed
        """
        if not token:
            raise TokenRequiredException()
        try:
            return self.auth.validate_token(token)
        except TokenValidationError as e:
            raise InvalidTokenException() from e

    def current_user(self, claims: Dict[str, Any]) -> Dict[str, Any]:
        """The token's account, without its password hash, and its profile."""
        account = self.mongodb.find_by_id(ACCOUNTS, claims.get("sub"))
        if account is None:
            raise NotFoundException("User not found")

        user = {
            "id": account["id"],
            "email": account["email"],
            "role": account["role"],
            "isActive": account.get("isActive"),
            "createdAt": account.get("createdAt")
        }
        return {"user": user, "profile": self.profiles.find_by_account(account)}
