# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Family need endpoints.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
from opentelemetry import trace
import logging

from ..models.enums import Role
from ..models.requests import CreateNeedRequest
from ..middleware.auth import require_auth, require_role, get_user_context
from ..utils.request import RequestParser, parse_json_body

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
needs_tag = Tag(name="Needs", description="Concrete needs posted for families")
needs_bp = APIBlueprint(
    'needs',
    __name__,
    url_prefix='/api/needs',
    abp_tags=[needs_tag]
)


class NeedIdPath(BaseModel):
    need_id: str = Field(..., description="Need ID")


@needs_bp.get('')
def list_needs():
    """
    Open needs, newest first, optionally filtered by familyCode or category.
    """
    with tracer.start_as_current_span("needs.list"):
        pagination = RequestParser.get_pagination_params()
        needs, result = current_app.need_service.list_open_needs(
            family_code=RequestParser.get_str_arg('familyCode'),
            category=RequestParser.get_str_arg('category'),
            page=pagination['page'],
            limit=pagination['limit']
        )
        return jsonify({
            "needs": needs,
            "pagination": result.to_dict()
        })


@needs_bp.post('')
@require_role(Role.ADMIN, Role.FAMILY)
def create_need():
    """
    Post a need for a family.

    Family accounts may only post needs for their own family.
    """
    with tracer.start_as_current_span("needs.create") as span:
        user_context = get_user_context()
        need_request = parse_json_body(CreateNeedRequest)
        span.set_attribute("family.code", need_request.family_code)

        need = current_app.need_service.create_need(
            user_context,
            need_request.family_code,
            need_request.category,
            need_request.title,
            description=need_request.description,
            estimated_cost=need_request.estimated_cost,
            priority=need_request.priority
        )
        return jsonify({
            "message": "Need created successfully",
            "need": need
        }), 201


@needs_bp.put('/<string:need_id>/fulfill')
@require_auth
def fulfill_need(path: NeedIdPath):
    """Mark a need fulfilled."""
    with tracer.start_as_current_span("needs.fulfill", attributes={"need.id": path.need_id}):
        user_context = get_user_context()
        need = current_app.need_service.fulfill_need(path.need_id, user_context)
        return jsonify({
            "message": "Need marked as fulfilled",
            "need": need
        })
