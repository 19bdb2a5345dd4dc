# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Yaqeen API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support, wires
the services to a single MongoDB handle and registers the route blueprints.
"""

import atexit
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from bson import ObjectId
from flask.json.provider import DefaultJSONProvider
from flask_openapi3 import OpenAPI, Info

from . import __version__
from .config import load_config
from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .middleware.auth import AuthMiddleware
from .middleware.error_handler import register_error_handlers
from .services.mongodb import MongoDBService
from .services.auth import AuthService
from .services.vault import SensitiveDataVault
from .services.families import FamilyService
from .services.profiles import ProfileRegistry
from .services.accounts import CredentialStore
from .services.ledger import DonationLedger
from .services.aggregation import AggregationEngine
from .services.needs import NeedService
from .services.health import HealthCheckService

logger = logging.getLogger(__name__)


class YaqeenJSONProvider(DefaultJSONProvider):
    """JSON provider emitting ISO-8601 UTC timestamps and string ObjectIds."""

    @staticmethod
    def default(o: Any) -> Any:
        if isinstance(o, datetime):
            # Stored datetimes are naive UTC
            return o.isoformat() + "Z" if o.tzinfo is None else o.isoformat()
        if isinstance(o, ObjectId):
            return str(o)
        return DefaultJSONProvider.default(o)


def create_app(config_overrides: Optional[Dict[str, Any]] = None,
               mongodb_service: Optional[MongoDBService] = None) -> OpenAPI:
    """
    Application factory.

    Args:
        config_overrides: Configuration values taking precedence over the environment
        mongodb_service: Store handle to use instead of connecting from configuration

    Returns:
        Configured Flask application
    """
    config = load_config(config_overrides)

    # Initialize observability first
    setup_observability(config['ENVIRONMENT'], config['OTEL_ENABLED'], __version__)

    info = Info(
        title="Yaqeen API",
        version=__version__,
        description="Donation brokerage between donors and verified families"
    )
    app = OpenAPI(__name__, info=info, doc_ui=config['DOCS_ENABLED'])
    app.config.update(config)
    app.json = YaqeenJSONProvider(app)

    add_observability_middleware(app, instrument=config['OTEL_ENABLED'])

    # Initialize services
    owns_store = mongodb_service is None
    if owns_store:
        mongodb_service = MongoDBService(
            config['MONGODB_URI'],
            config['MONGODB_DATABASE'],
            max_pool_size=config['MONGODB_MAX_POOL_SIZE']
        )
    if config['MONGODB_CREATE_INDEXES']:
        mongodb_service.create_indexes()

    auth_service = AuthService(
        config['JWT_PRIVATE_KEY'],
        config['JWT_PUBLIC_KEY'],
        token_expire_days=config['JWT_EXPIRES_DAYS'],
        bcrypt_rounds=config['BCRYPT_ROUNDS']
    )
    vault = SensitiveDataVault(mongodb_service)
    family_service = FamilyService(mongodb_service, vault)
    profile_registry = ProfileRegistry(mongodb_service, family_service)
    credential_store = CredentialStore(mongodb_service, auth_service, profile_registry, family_service)
    donation_ledger = DonationLedger(mongodb_service, family_service, config['DEFAULT_CURRENCY'])
    aggregation_engine = AggregationEngine(mongodb_service, donation_ledger, config['DEFAULT_CURRENCY'])
    need_service = NeedService(mongodb_service, family_service)
    health_service = HealthCheckService(mongodb_service, config['ENVIRONMENT'])

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.auth_service = auth_service
    app.vault = vault
    app.family_service = family_service
    app.profile_registry = profile_registry
    app.credential_store = credential_store
    app.donation_ledger = donation_ledger
    app.aggregation_engine = aggregation_engine
    app.need_service = need_service
    app.health_service = health_service
    app.auth_middleware = AuthMiddleware(credential_store)

    register_error_handlers(app)

    # Register routes
    from .routes.auth import auth_bp
    from .routes.families import families_bp
    from .routes.donations import donations_bp
    from .routes.donors import donors_bp
    from .routes.needs import needs_bp
    from .routes.system import system_bp

    app.register_api(auth_bp)
    app.register_api(families_bp)
    app.register_api(donations_bp)
    app.register_api(donors_bp)
    app.register_api(needs_bp)
    app.register_api(system_bp)

    if owns_store:
        atexit.register(mongodb_service.close_connection)

    logger.info(
        "Application created",
        extra={"environment": config['ENVIRONMENT'], "database": mongodb_service.database_name}
    )
    return app


def main():
    """Run the development server."""
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=app.config['PORT'],
        debug=app.config['DEBUG']
    )


if __name__ == '__main__':
    main()
