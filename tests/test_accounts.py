# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for registration, login and token introspection.
"""

import pytest
from unittest.mock import patch

from yaqeen.middleware.error_handler import (
    DuplicateAccountException,
    DuplicateFamilyCodeException,
    InternalException,
    InvalidCredentialsException,
    InvalidTokenException,
    MissingFieldsException,
    NotFoundException,
    TokenRequiredException,
    ValidationException
)
from yaqeen.services.mongodb import ACCOUNTS, ADMINS, DONORS, FAMILIES, SECURE_FAMILY_DATA


class TestRegistration:
    """Test account registration."""

    def test_register_donor(self, credential_store, mongodb_service):
        session = credential_store.register(
            "Jane@Example.com", "password123", "DONOR",
            {"name": "Jane", "country": "Canada", "preferred_regions": ["NORTH"]}
        )

        user = session["user"]
        assert user["email"] == "jane@example.com"
        assert user["role"] == "DONOR"
        assert user["profile"]["name"] == "Jane"
        assert user["profile"]["accountId"] == user["id"]
        assert session["token"]

        account = mongodb_service.find_by_id(ACCOUNTS, user["id"])
        assert account["passwordHash"] != "password123"

    def test_donor_token_carries_profile_id(self, credential_store):
        session = credential_store.register("jane@example.com", "password123", "DONOR", {"name": "Jane"})

        claims = credential_store.introspect(session["token"])

        assert claims["profileId"] == session["user"]["profile"]["id"]
        assert claims["role"] == "DONOR"

    def test_register_family_writes_both_halves(self, credential_store, mongodb_service, sample_family_fields):
        session = credential_store.register("fam@example.com", "password123", "FAMILY", sample_family_fields)

        family = mongodb_service.find_one(FAMILIES, {"familyCode": "FAM-001"})
        secure = mongodb_service.find_one(SECURE_FAMILY_DATA, {"familyCode": "FAM-001"})

        assert family["accountId"] == session["user"]["id"]
        assert family["verificationStatus"] == "PENDING"
        assert family["priorityLevel"] == "HIGH"
        assert "realName" not in family
        assert secure["realName"] == "Al-Test Family"
        assert credential_store.introspect(session["token"])["profileId"] == "FAM-001"

    def test_first_admin_is_super_then_basic(self, credential_store, mongodb_service):
        first = credential_store.register("root@example.com", "password123", "ADMIN", {"name": "Root"})
        second = credential_store.register("ops@example.com", "password123", "ADMIN", {"name": "Ops"})

        assert first["user"]["profile"]["permissions"] == ["SUPER_ADMIN"]
        assert second["user"]["profile"]["permissions"] == ["BASIC_ADMIN"]
        assert "passwordHash" not in first["user"]["profile"]
        assert credential_store.introspect(first["token"])["profileId"] is None

    def test_duplicate_email(self, credential_store):
        credential_store.register("jane@example.com", "password123", "DONOR", {"name": "Jane"})

        with pytest.raises(DuplicateAccountException) as exc_info:
            credential_store.register("JANE@example.com", "password456", "DONOR", {"name": "Other"})

        assert exc_info.value.message == "User already exists"
        assert exc_info.value.status_code == 400

    def test_lower_case_role(self, credential_store):
        session = credential_store.register("jane@example.com", "password123", "donor", {"name": "Jane"})

        assert session["user"]["role"] == "DONOR"

    def test_invalid_role(self, credential_store, mongodb_service):
        with pytest.raises(ValidationException):
            credential_store.register("jane@example.com", "password123", "SUPERUSER", {"name": "Jane"})

        assert mongodb_service.count(ACCOUNTS) == 0

    def test_donor_requires_name(self, credential_store, mongodb_service):
        with pytest.raises(MissingFieldsException):
            credential_store.register("jane@example.com", "password123", "DONOR", {})

        assert mongodb_service.count(ACCOUNTS) == 0

    def test_family_missing_fields_leaves_no_rows(self, credential_store, mongodb_service, sample_family_fields):
        del sample_family_fields["story"]
        sample_family_fields["region"] = "  "

        with pytest.raises(MissingFieldsException) as exc_info:
            credential_store.register("fam@example.com", "password123", "FAMILY", sample_family_fields)

        fields = {d["field"] for d in exc_info.value.validation_errors}
        assert fields == {"region", "story"}
        assert mongodb_service.count(ACCOUNTS) == 0
        assert mongodb_service.count(FAMILIES) == 0

    def test_duplicate_family_code(self, credential_store, mongodb_service, sample_family_fields):
        credential_store.register("one@example.com", "password123", "FAMILY", sample_family_fields)

        with pytest.raises(DuplicateFamilyCodeException):
            credential_store.register("two@example.com", "password123", "FAMILY", sample_family_fields)

        assert mongodb_service.count(ACCOUNTS) == 1

    def test_profile_failure_rolls_back_account(self, credential_store, mongodb_service, vault,
                                                sample_family_fields):
        with patch.object(vault, "create", side_effect=InternalException("Internal server error")):
            with pytest.raises(InternalException):
                credential_store.register("fam@example.com", "password123", "FAMILY", sample_family_fields)

        assert mongodb_service.count(ACCOUNTS) == 0
        assert mongodb_service.count(FAMILIES) == 0
        assert mongodb_service.count(SECURE_FAMILY_DATA) == 0

    def test_donor_profile_failure_rolls_back_account(self, credential_store, mongodb_service, profile_registry):
        with patch.object(profile_registry, "create_donor", side_effect=InternalException("Internal server error")):
            with pytest.raises(InternalException):
                credential_store.register("jane@example.com", "password123", "DONOR", {"name": "Jane"})

        assert mongodb_service.count(ACCOUNTS) == 0
        assert mongodb_service.count(DONORS) == 0
        assert mongodb_service.count(ADMINS) == 0


class TestAuthentication:
    """Test login."""

    def test_login_success(self, credential_store):
        registered = credential_store.register("jane@example.com", "password123", "DONOR", {"name": "Jane"})

        session = credential_store.authenticate("JANE@example.com", "password123")

        assert session["user"]["id"] == registered["user"]["id"]
        assert session["user"]["profile"]["name"] == "Jane"

    def test_wrong_password(self, credential_store):
        credential_store.register("jane@example.com", "password123", "DONOR", {"name": "Jane"})

        with pytest.raises(InvalidCredentialsException):
            credential_store.authenticate("jane@example.com", "wrong-password")

    def test_unknown_email_still_checks_password(self, credential_store, auth_service):
        with patch.object(auth_service, "verify_password", wraps=auth_service.verify_password) as verify:
            with pytest.raises(InvalidCredentialsException):
                credential_store.authenticate("nobody@example.com", "password123")

        verify.assert_called_once_with("password123", None)

    def test_inactive_account_cannot_log_in(self, credential_store, mongodb_service):
        registered = credential_store.register("jane@example.com", "password123", "DONOR", {"name": "Jane"})
        mongodb_service.update_by_id(ACCOUNTS, registered["user"]["id"], {"isActive": False})

        with pytest.raises(InvalidCredentialsException):
            credential_store.authenticate("jane@example.com", "password123")


class TestIntrospection:
    """Test token introspection and the current user."""

    def test_missing_token(self, credential_store):
        with pytest.raises(TokenRequiredException):
            credential_store.introspect(None)

    def test_invalid_token(self, credential_store):
        with pytest.raises(InvalidTokenException) as exc_info:
            credential_store.introspect("garbage")

        assert exc_info.value.status_code == 403

    def test_current_user(self, credential_store):
        registered = credential_store.register("jane@example.com", "password123", "DONOR", {"name": "Jane"})
        claims = credential_store.introspect(registered["token"])

        current = credential_store.current_user(claims)

        assert current["user"]["email"] == "jane@example.com"
        assert "passwordHash" not in current["user"]
        assert current["profile"]["name"] == "Jane"

    def test_current_user_for_deleted_account(self, credential_store, mongodb_service):
        registered = credential_store.register("jane@example.com", "password123", "DONOR", {"name": "Jane"})
        claims = credential_store.introspect(registered["token"])
        mongodb_service.delete_by_id(ACCOUNTS, registered["user"]["id"])

        with pytest.raises(NotFoundException):
            credential_store.current_user(claims)
