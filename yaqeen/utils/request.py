# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request utilities for extracting and validating request data.
"""

from enum import Enum
from flask import request
from typing import Dict, Optional, Type, TypeVar
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging

from ..middleware.error_handler import ValidationException, format_pydantic_errors

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RequestParser:
    """Utility for parsing and extracting request data."""

    @staticmethod
    def get_pagination_params(
        default_page: int = 1,
        default_limit: int = 20,
        max_limit: int = 100
    ) -> Dict[str, int]:
        """
        Extract pagination parameters from request.

        Args:
            default_page: Default page number
            default_limit: Default page size
            max_limit: Maximum allowed page size

        Returns:
            Dictionary with page and limit
        """
        try:
            page = int(request.args.get('page', default_page))
            page = max(1, page)  # Ensure page is at least 1
        except (ValueError, TypeError):
            page = default_page

        try:
            limit = int(request.args.get('limit', default_limit))
            limit = max(1, min(limit, max_limit))  # Clamp between 1 and max
        except (ValueError, TypeError):
            limit = default_limit

        return {
            'page': page,
            'limit': limit
        }

    @staticmethod
    def get_str_arg(name: str) -> Optional[str]:
        """Stripped query parameter, None when absent or blank."""
        value = request.args.get(name, '').strip()
        return value or None

    @staticmethod
    def get_enum_arg(name: str, enum_class: Type[Enum]) -> Optional[str]:
        """
        Read an optional query parameter restricted to an enum's values.

        Raises:
            ValidationException: If the value is not a member of the enum
        """
        value = request.args.get(name)
        if value is None or value == '':
            return None
        try:
            return enum_class(value).value
        except ValueError as e:
            allowed = ', '.join(member.value for member in enum_class)
            raise ValidationException(
                f"Invalid {name}",
                [{"field": name, "message": f"Must be one of: {allowed}"}]
            ) from e


def parse_json_body(model_class: Type[ModelT]) -> ModelT:
    """
    Parse and validate the JSON request body against a pydantic model.

    Args:
        model_class: Pydantic model class for validation

    Returns:
        Validated model instance

    Raises:
        ValidationException: If the body is missing, not JSON or invalid
    """
    with tracer.start_as_current_span("validation.parse_json_body") as span:
        span.set_attributes({
            "validation.model": model_class.__name__,
            "http.method": request.method,
            "http.path": request.path
        })

        json_data = request.get_json(silent=True)
        if not isinstance(json_data, dict):
            span.set_attribute("validation.result", "invalid_json")
            raise ValidationException(
                "Request body must be a JSON object",
                [{"field": "body", "message": "Expected a JSON object"}]
            )

        try:
            validated = model_class.model_validate(json_data)
        except ValidationError as e:
            span.set_attribute("validation.result", "failed")
            logger.info(
                "Request validation failed",
                extra={"model": model_class.__name__, "path": request.path, "error_count": e.error_count()}
            )
            raise ValidationException("Invalid request data", format_pydantic_errors(e)) from e

        span.set_attribute("validation.result", "success")
        return validated
