# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
import mongomock
from typing import Dict, Any

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['MONGODB_DATABASE'] = 'yaqeen_test'

from yaqeen.app import create_app
from yaqeen.models.entities import UserContext
from yaqeen.models.enums import Role
from yaqeen.services.mongodb import MongoDBService
from yaqeen.services.auth import AuthService
from yaqeen.services.vault import SensitiveDataVault
from yaqeen.services.families import FamilyService
from yaqeen.services.profiles import ProfileRegistry
from yaqeen.services.accounts import CredentialStore
from yaqeen.services.ledger import DonationLedger
from yaqeen.services.aggregation import AggregationEngine
from yaqeen.services.needs import NeedService


@pytest.fixture(scope="session")
def key_pair():
    """RS256 key pair shared by the whole test session."""
    return AuthService.generate_dev_key_pair()


@pytest.fixture(scope="session")
def test_database_name():
    """Test database name."""
    return 'yaqeen_test'


@pytest.fixture
def mongodb_service(test_database_name):
    """MongoDB service backed by an in-memory mongomock client."""
    service = MongoDBService(database_name=test_database_name, client=mongomock.MongoClient())
    service.create_indexes()
    yield service
    service.close_connection()


@pytest.fixture
def auth_service(key_pair):
    private_key, public_key = key_pair
    return AuthService(private_key, public_key, bcrypt_rounds=4)


@pytest.fixture
def vault(mongodb_service):
    return SensitiveDataVault(mongodb_service)


@pytest.fixture
def family_service(mongodb_service, vault):
    return FamilyService(mongodb_service, vault)


@pytest.fixture
def profile_registry(mongodb_service, family_service):
    return ProfileRegistry(mongodb_service, family_service)


@pytest.fixture
def credential_store(mongodb_service, auth_service, profile_registry, family_service):
    return CredentialStore(mongodb_service, auth_service, profile_registry, family_service)


@pytest.fixture
def donation_ledger(mongodb_service, family_service):
    return DonationLedger(mongodb_service, family_service)


@pytest.fixture
def aggregation_engine(mongodb_service, donation_ledger):
    return AggregationEngine(mongodb_service, donation_ledger)


@pytest.fixture
def need_service(mongodb_service, family_service):
    return NeedService(mongodb_service, family_service)


@pytest.fixture
def admin_context():
    """Context of an administrator caller."""
    return UserContext(account_id="507f1f77bcf86cd799439011", email="admin@example.com", role=Role.ADMIN)


@pytest.fixture
def family_context():
    """Factory for the context of a family caller."""

    def _context(family_code: str) -> UserContext:
        return UserContext(
            account_id="507f1f77bcf86cd799439012",
            email="family@example.com",
            role=Role.FAMILY,
            profile_id=family_code
        )

    return _context


@pytest.fixture
def donor_context():
    """Factory for the context of a donor caller."""

    def _context(donor_id: str) -> UserContext:
        return UserContext(
            account_id="507f1f77bcf86cd799439013",
            email="donor@example.com",
            role=Role.DONOR,
            profile_id=donor_id
        )

    return _context


@pytest.fixture
def sample_family_fields() -> Dict[str, Any]:
    """Fields of a complete family registration."""
    return {
        "family_code": "FAM-001",
        "region": "GAZA-NORTH",
        "real_name": "Al-Test Family",
        "exact_location": "Street 1, Building 2",
        "story": "Lost their home and need support",
        "priority_level": "HIGH"
    }


@pytest.fixture
def sample_donation_data() -> Dict[str, Any]:
    """Donation as sent by a client."""
    return {
        "familyCode": "FAM-001",
        "platform": "GoFundMe",
        "donorName": "Jane Doe",
        "amount": 50,
        "currency": "usd",
        "donationDate": "2024-01-10T12:00:00Z",
        "externalLink": "https://gofundme.example/fam-001"
    }


# Application fixtures

@pytest.fixture
def app(mongodb_service, key_pair):
    """Flask application wired to the mongomock store."""
    private_key, public_key = key_pair
    application = create_app(
        {
            'ENVIRONMENT': 'test',
            'TESTING': True,
            'OTEL_ENABLED': False,
            'DOCS_ENABLED': False,
            'BCRYPT_ROUNDS': 4,
            'JWT_PRIVATE_KEY': private_key,
            'JWT_PUBLIC_KEY': public_key,
            'MONGODB_CREATE_INDEXES': False
        },
        mongodb_service=mongodb_service
    )
    return application


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def register_user(client):
    """Register an account through the API and return the response JSON."""

    def _register(email: str, role: str, password: str = "password123", **fields) -> Dict[str, Any]:
        body = {"email": email, "password": password, "role": role}
        body.update(fields)
        response = client.post('/api/auth/register', json=body)
        assert response.status_code == 201, response.get_json()
        return response.get_json()

    return _register


@pytest.fixture
def auth_header():
    """Build the bearer header for a session returned by register or login."""

    def _header(session: Dict[str, Any]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {session['token']}"}

    return _header


@pytest.fixture
def admin_session(register_user):
    return register_user("admin@example.com", "ADMIN", name="Site Admin")


@pytest.fixture
def donor_session(register_user):
    return register_user(
        "donor@example.com", "DONOR",
        name="Jane Doe", country="Canada", preferredRegions=["GAZA-NORTH"]
    )


@pytest.fixture
def family_session(register_user):
    return register_user(
        "family@example.com", "FAMILY",
        familyCode="FAM-001",
        region="GAZA-NORTH",
        realName="Al-Test Family",
        exactLocation="Street 1, Building 2",
        story="Lost their home and need support",
        priorityLevel="HIGH"
    )
