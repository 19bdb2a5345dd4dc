# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

This module provides decorators that validate bearer tokens, build the user
context for request processing and enforce role requirements.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from .error_handler import AuthorizationException, InvalidTokenException, TokenRequiredException
from ..domain.authorization import check_role
from ..models.entities import UserContext

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation and user context building for
    protected endpoints.
    """

    def __init__(self, credential_store):
        """
        Initialize the authentication middleware.

        Args:
            credential_store: Credential store used to introspect tokens
        """
        self.credential_store = credential_store

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '').strip()
        if not auth_header:
            return None

        scheme, _, token = auth_header.partition(' ')
        if scheme.lower() != 'bearer':
            return None
        return token.strip() or None

    def build_user_context(self, token_payload: Dict[str, Any], request_info: Dict[str, Any]) -> UserContext:
        """
        Build user context from validated token payload and request information.

        Args:
            token_payload: Decoded JWT payload
            request_info: Request metadata (IP, user agent)

        Returns:
            UserContext object for request processing
        """
        return UserContext(
            account_id=token_payload["sub"],
            email=token_payload.get("email"),
            role=token_payload.get("role"),
            profile_id=token_payload.get("profileId"),
            token_payload=token_payload,
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent")
        )

    def get_request_info(self) -> Dict[str, Any]:
        """
        Extract request metadata for user context.

        Returns:
            Dictionary with request information
        """
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', '')
        }

    def authenticate_request(self) -> UserContext:
        """
        Validate the request's bearer token and store the user context on ``g``.

        Raises:
            TokenRequiredException: If no bearer token is present
            InvalidTokenException: If the token is expired, tampered or malformed
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            span.set_attribute("auth.operation", "validate_request")

            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token", extra={"path": request.path})
                raise TokenRequiredException()

            token_payload = self.credential_store.introspect(token)
            try:
                user_context = self.build_user_context(token_payload, self.get_request_info())
            except ValueError as e:
                # Claims that do not fit the user context, e.g. an unknown role
                span.set_attribute("auth.result", "invalid_claims")
                logger.warning(f"Authentication failed: invalid claims: {str(e)}")
                raise InvalidTokenException() from e

            g.user_context = user_context
            span.set_attributes({
                "auth.result": "success",
                "user.id": user_context.account_id,
                "user.role": user_context.role
            })
            logger.debug(
                "Authentication successful",
                extra={
                    "account_id": user_context.account_id,
                    "role": user_context.role,
                    "ip_address": user_context.ip_address
                }
            )
            return user_context


def get_user_context() -> UserContext:
    """User context of the current authenticated request."""
    return g.user_context


def require_auth(f: Callable) -> Callable:
    """Decorator requiring a valid bearer token."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        current_app.auth_middleware.authenticate_request()
        return f(*args, **kwargs)
    return decorated_function


def require_role(*roles) -> Callable:
    """
    Decorator requiring a valid bearer token for one of the given roles.

    Args:
        roles: Accepted roles

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_context = current_app.auth_middleware.authenticate_request()

            with tracer.start_as_current_span("auth.middleware.check_role") as span:
                result = check_role(user_context, *roles)
                span.set_attributes({
                    "auth.operation": "check_role",
                    "user.id": user_context.account_id,
                    "auth.role_result": "granted" if result.allowed else "denied"
                })

                if not result.allowed:
                    logger.warning(
                        "Authorization failed: role not permitted",
                        extra={
                            "account_id": user_context.account_id,
                            "role": user_context.role,
                            "path": request.path
                        }
                    )
                    raise AuthorizationException(result.reason)

            return f(*args, **kwargs)
        return decorated_function
    return decorator
