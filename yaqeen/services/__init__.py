# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - persistence, credentials and business operations.
"""

from .mongodb import MongoDBService, PaginationResult
from .auth import AuthService, AuthenticationError, TokenValidationError
from .vault import SensitiveDataVault
from .families import FamilyService
from .profiles import ProfileRegistry
from .accounts import CredentialStore
from .ledger import DonationLedger
from .aggregation import AggregationEngine
from .needs import NeedService
from .health import HealthCheckService

__all__ = [
    "MongoDBService",
    "PaginationResult",
    "AuthService",
    "AuthenticationError",
    "TokenValidationError",
    "SensitiveDataVault",
    "FamilyService",
    "ProfileRegistry",
    "CredentialStore",
    "DonationLedger",
    "AggregationEngine",
    "NeedService",
    "HealthCheckService"
]
