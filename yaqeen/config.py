# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Application configuration read from environment variables.
"""

import os
from typing import Any, Dict, Optional


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


def _env_pem(name: str) -> Optional[str]:
    """PEM keys are often passed with escaped newlines."""
    value = os.getenv(name)
    return value.replace('\\n', '\n') if value else None


def load_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the application configuration.

    Args:
        overrides: Values that take precedence over the environment

    Returns:
        Dict suitable for ``app.config.update``
    """
    environment = os.getenv('ENVIRONMENT', 'development')

    config = {
        # Environment configuration
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'DOCS_ENABLED': _env_flag('DOCS_ENABLED', 'true'),
        'OTEL_ENABLED': _env_flag('OTEL_ENABLED', 'true'),
        'PORT': int(os.getenv('PORT', '5000')),

        # Database configuration
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/yaqeen_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'yaqeen_dev'),
        'MONGODB_MAX_POOL_SIZE': int(os.getenv('MONGODB_MAX_POOL_SIZE', '10')),
        'MONGODB_CREATE_INDEXES': _env_flag('MONGODB_CREATE_INDEXES', 'false'),

        # Security configuration
        'JWT_PRIVATE_KEY': _env_pem('JWT_PRIVATE_KEY'),
        'JWT_PUBLIC_KEY': _env_pem('JWT_PUBLIC_KEY'),
        'JWT_EXPIRES_DAYS': int(os.getenv('JWT_EXPIRES_DAYS', '7')),
        'BCRYPT_ROUNDS': int(os.getenv('BCRYPT_ROUNDS', '12')),

        # Ledger configuration
        'DEFAULT_CURRENCY': os.getenv('DEFAULT_CURRENCY', 'USD').upper(),
    }

    if overrides:
        config.update(overrides)
    return config
