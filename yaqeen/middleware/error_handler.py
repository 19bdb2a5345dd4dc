# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured JSON responses.
Provides centralized error handling and formatting for Flask applications.

Every error body carries an ``error`` message; validation errors add
``details`` and, outside production, unexpected errors add ``message``.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from pydantic import ValidationError as PydanticValidationError
from typing import Dict, Any, List, Optional, Tuple
from opentelemetry import trace
import logging
import traceback

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type


class ValidationException(CustomException):
    """Exception for validation errors."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class MissingFieldsException(ValidationException):
    """Required fields are absent or blank."""

    def __init__(self, message: str, missing_fields: Optional[List[str]] = None):
        self.missing_fields = missing_fields or []
        super().__init__(
            message,
            [{"field": field, "message": "Field is required"} for field in self.missing_fields]
        )


class InvalidAmountException(ValidationException):
    """Amount is not a finite, non-negative number."""

    def __init__(self, message: str = "Amount must be a non-negative number"):
        super().__init__(message, [{"field": "amount", "message": message}])


class DuplicateException(CustomException):
    """Exception for uniqueness violations."""

    def __init__(self, message: str):
        super().__init__(message, 400, "duplicate")


class DuplicateAccountException(DuplicateException):
    """An account with the email already exists."""

    def __init__(self, message: str = "User already exists"):
        super().__init__(message)


class DuplicateFamilyCodeException(DuplicateException):
    """A family with the code already exists."""

    def __init__(self, message: str = "Family code already exists"):
        super().__init__(message)


class DuplicateFamilyProfileException(DuplicateException):
    """The family account already owns a family profile."""

    def __init__(self, message: str = "Account already has a family profile"):
        super().__init__(message)


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, status_code, "authentication-required")


class InvalidCredentialsException(AuthenticationException):
    """Unknown account, inactive account or wrong password."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, 401)


class TokenRequiredException(AuthenticationException):
    """No bearer token on a protected request."""

    def __init__(self, message: str = "Access token required"):
        super().__init__(message, 401)


class InvalidTokenException(AuthenticationException):
    """Expired, tampered or malformed token."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, 403)
        self.error_type = "invalid-token"


class AuthorizationException(CustomException):
    """Exception for authorization errors."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class FamilyNotFoundException(NotFoundException):
    """No family with the given code."""

    def __init__(self, message: str = "Family not found"):
        super().__init__(message)


class InternalException(CustomException):
    """Store or infrastructure failure."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, 500, "internal-error")


def build_error_body(message: str, details: Optional[List[Dict[str, Any]]] = None, **extra) -> Dict[str, Any]:
    """Build the JSON error body."""
    body = {"error": message}
    if details:
        body["details"] = details
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def format_pydantic_errors(error: PydanticValidationError) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into field/message pairs."""
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())) or "body",
            "message": err.get("msg", "Invalid value")
        }
        for err in error.errors()
    ]


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with JSON response formatting."""

    def __init__(self, app: Flask):
        self.app = app
        self.register_error_handlers()

    @property
    def is_production(self) -> bool:
        return self.app.config.get('ENVIRONMENT') == 'production'

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(CustomException)
        def handle_custom_exception(error: CustomException):
            return self.handle_custom_exception(error)

        @self.app.errorhandler(PydanticValidationError)
        def handle_pydantic_error(error: PydanticValidationError):
            return self.handle_custom_exception(
                ValidationException("Invalid request data", format_pydantic_errors(error))
            )

        @self.app.errorhandler(404)
        def handle_not_found(error):
            with tracer.start_as_current_span("error_handler.not_found") as span:
                span.set_attributes({
                    "http.method": request.method,
                    "http.path": request.path
                })
                logger.info(
                    "Route not found",
                    extra={"path": request.path, "method": request.method}
                )
                return jsonify(build_error_body(
                    "Route not found", path=request.path, method=request.method
                )), 404

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            return self.handle_http_error(error)

        # Handle generic exceptions
        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def handle_custom_exception(self, error: CustomException):
        """
        Handle application exceptions raised by services and decorators.

        Args:
            error: Application exception

        Returns:
            Tuple of (JSON response, status code)
        """
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            log = logger.error if error.status_code >= 500 else logger.warning
            log(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "detail": error.message,
                    "path": request.path,
                    "method": request.method,
                    "ip_address": request.remote_addr
                }
            )

            details = error.validation_errors if isinstance(error, ValidationException) else None
            return jsonify(build_error_body(error.message, details)), error.status_code

    def handle_http_error(self, error: HTTPException) -> Tuple[Any, int]:
        """
        Handle werkzeug HTTP errors (405, 415 and friends).

        Args:
            error: HTTP exception

        Returns:
            Tuple of (JSON response, status code)
        """
        with tracer.start_as_current_span("error_handler.http_error") as span:
            status = error.code or 500
            span.set_attributes({
                "error.status": status,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else error.name
            logger.warning(
                f"HTTP error: {error.name}",
                extra={
                    "status_code": status,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method
                }
            )
            return jsonify(build_error_body(detail)), status

    def handle_unexpected_error(self, error: Exception) -> Tuple[Any, int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Tuple of (JSON response, status code)
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })

            # Record exception in span
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method,
                    "ip_address": request.remote_addr,
                    "traceback": traceback.format_exc()
                },
                exc_info=True
            )

            # Don't expose internal error details in production
            message = None if self.is_production else str(error)
            return jsonify(build_error_body("Internal server error", message=message)), 500


def register_error_handlers(app: Flask) -> ErrorHandlerMiddleware:
    """Attach the error handler middleware to an application."""
    return ErrorHandlerMiddleware(app)
