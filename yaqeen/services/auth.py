# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token management and password hashing.

This module provides JWT token generation and validation using RS256
signing, and bcrypt password hashing.
"""

import jwt
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when token issuance fails."""
    pass


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


class AuthService:
    """
    JWT authentication service with RS256 signing and bcrypt password hashing.

    Issues a single access token per login, valid for ``token_expire_days``.
    """

    def __init__(self, private_key: Optional[str] = None, public_key: Optional[str] = None,
                 token_expire_days: int = 7, bcrypt_rounds: int = 12):
        """
        Initialize the authentication service.

        Args:
            private_key: RS256 private key for token signing (PEM format)
            public_key: RS256 public key for token verification (PEM format)
            token_expire_days: Token lifetime in days
            bcrypt_rounds: bcrypt cost factor
        """
        if not private_key or not public_key:
            # Both halves must come from the same pair
            logger.warning("No JWT key pair configured, generating development key pair")
            private_key, public_key = self.generate_dev_key_pair()

        self.private_key = private_key
        self.public_key = public_key
        self.algorithm = "RS256"
        self.token_expire_days = token_expire_days
        self.bcrypt_rounds = bcrypt_rounds
        # Checked when an account is absent so the response time matches
        self._dummy_hash = self.hash_password("yaqeen-dummy-password")

    @staticmethod
    def generate_dev_key_pair() -> Tuple[str, str]:
        """Generate RSA key pair for development use."""
        private_key = rsa.generate_private_key(
            public_exponent=65537,
            key_size=2048
        )

        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        ).decode('utf-8')

        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode('utf-8')

        return private_pem, public_pem

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt with salt.

        Args:
            password: Plain text password to hash

        Returns:
            Hashed password string
        """
        with tracer.start_as_current_span("auth.hash_password") as span:
            span.set_attribute("auth.operation", "hash_password")

            salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
            hashed = bcrypt.hashpw(password.encode('utf-8'), salt)

            logger.debug("Password hashed successfully")
            return hashed.decode('utf-8')

    def verify_password(self, password: str, hashed_password: Optional[str]) -> bool:
        """
        Verify a password against its hash.

        A missing hash is compared against a dummy hash and always fails.

        Args:
            password: Plain text password to verify
            hashed_password: Stored hashed password, or None for an unknown account

        Returns:
            True if password matches, False otherwise
        """
        with tracer.start_as_current_span("auth.verify_password") as span:
            span.set_attribute("auth.operation", "verify_password")

            candidate = hashed_password or self._dummy_hash
            try:
                result = bcrypt.checkpw(password.encode('utf-8'), candidate.encode('utf-8'))
            except ValueError as e:
                # Stored value is not a bcrypt hash
                span.set_attribute("auth.verification_result", "error")
                logger.error(f"Password verification error: {str(e)}")
                return False

            result = result and hashed_password is not None
            span.set_attribute("auth.verification_result", "success" if result else "failed")
            logger.debug(f"Password verification: {'success' if result else 'failed'}")
            return result

    def generate_token(self, account_id: str, email: str, role: str,
                       profile_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate a signed access token.

        Args:
            account_id: Account the token is issued for
            email: Account email
            role: Account role
            profile_id: Donor profile id or family code; None for admins

        Returns:
            Dictionary with the token and its expiry
        """
        with tracer.start_as_current_span("auth.generate_token") as span:
            span.set_attributes({
                "auth.operation": "generate_token",
                "user.id": account_id,
                "user.role": role
            })

            now = datetime.now(timezone.utc)
            expires_at = now + timedelta(days=self.token_expire_days)

            payload = {
                "sub": account_id,
                "accountId": account_id,
                "email": email,
                "role": role,
                "profileId": profile_id,
                "iat": now,
                "exp": expires_at,
                "type": "access"
            }

            try:
                token = jwt.encode(payload, self.private_key, algorithm=self.algorithm)
            except (jwt.PyJWTError, ValueError, TypeError) as e:
                span.set_attribute("auth.token_generated", "error")
                logger.error(f"Token generation failed: {str(e)}")
                raise AuthenticationError(f"Failed to generate token: {str(e)}") from e

            span.set_attribute("auth.token_generated", "success")
            logger.info(
                "JWT token generated successfully",
                extra={
                    "account_id": account_id,
                    "role": role,
                    "expires_at": expires_at.isoformat()
                }
            )

            return {
                "token": token,
                "token_type": "Bearer",
                "expires_in": self.token_expire_days * 86400,
                "expires_at": expires_at.isoformat()
            }

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Args:
            token: JWT token string to validate

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid, tampered or expired
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attribute("auth.operation", "validate_token")

            try:
                payload = jwt.decode(
                    token,
                    self.public_key,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True, "require": ["exp", "sub"]}
                )
            except jwt.ExpiredSignatureError as e:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired") from e
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}") from e

            if payload.get("type") != "access":
                span.set_attribute("auth.validation_result", "invalid")
                raise TokenValidationError("Invalid token type")

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": payload.get("sub"),
                "user.role": payload.get("role") or ""
            })
            logger.debug(
                "Token validated successfully",
                extra={"account_id": payload.get("sub"), "role": payload.get("role")}
            )
            return payload
