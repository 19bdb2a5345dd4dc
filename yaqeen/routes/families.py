# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Family endpoints: public listing and detail, creation, verification and
administrator access to the sensitive record.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
from opentelemetry import trace
import logging

from ..models.enums import Role, PriorityLevel, VerificationStatus
from ..models.requests import CreateFamilyRequest, VerifyFamilyRequest
from ..middleware.auth import require_role, get_user_context
from ..middleware.error_handler import NotFoundException
from ..domain.verification import decision_message
from ..utils.request import RequestParser, parse_json_body

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
families_tag = Tag(name="Families", description="Family profiles and verification")
families_bp = APIBlueprint(
    'families',
    __name__,
    url_prefix='/api/families',
    abp_tags=[families_tag]
)


class FamilyCodePath(BaseModel):
    family_code: str = Field(..., description="Public family identifier")


@families_bp.get('')
def list_families():
    """
    List active families, highest priority first.

    Optional filters: region, verificationStatus and priorityLevel. Each
    family carries its open needs and verified donations.
    """
    with tracer.start_as_current_span("families.list") as span:
        pagination = RequestParser.get_pagination_params(default_limit=10)
        region = RequestParser.get_str_arg('region')
        verification_status = RequestParser.get_enum_arg('verificationStatus', VerificationStatus)
        priority_level = RequestParser.get_enum_arg('priorityLevel', PriorityLevel)

        families, result = current_app.family_service.list_families(
            region=region,
            verification_status=verification_status,
            priority_level=priority_level,
            page=pagination['page'],
            limit=pagination['limit']
        )
        span.set_attribute("families.count", len(families))

        return jsonify({
            "families": families,
            "pagination": result.to_dict()
        })


@families_bp.get('/<string:family_code>')
def get_family(path: FamilyCodePath):
    """
    Public view of one active family with needs, verified donations and totals.
    """
    with tracer.start_as_current_span("families.get", attributes={"family.code": path.family_code}):
        return jsonify(current_app.family_service.get_public_family(path.family_code))


@families_bp.post('')
@require_role(Role.ADMIN, Role.FAMILY)
def create_family():
    """
    Create a family profile with its sensitive record.

    Families created by a family account are linked to that account; an
    account that already owns a family gets 400.
    """
    with tracer.start_as_current_span("families.create") as span:
        user_context = get_user_context()
        create_request = parse_json_body(CreateFamilyRequest)

        account_id = user_context.account_id if user_context.has_role(Role.FAMILY) else None
        family = current_app.family_service.create_family(
            create_request.model_dump(exclude_none=True),
            account_id=account_id
        )
        span.set_attribute("family.code", family["familyCode"])

        logger.info(
            "Family created via API",
            extra={"family_code": family["familyCode"], "created_by": user_context.account_id}
        )
        return jsonify({
            "message": "Family created successfully",
            "familyCode": family["familyCode"]
        }), 201


@families_bp.put('/<string:family_code>/verify')
@require_role(Role.ADMIN)
def verify_family(path: FamilyCodePath):
    """
    Record an administrator's VERIFIED or REJECTED decision for a family.
    """
    with tracer.start_as_current_span("families.verify", attributes={"family.code": path.family_code}):
        user_context = get_user_context()
        verify_request = parse_json_body(VerifyFamilyRequest)

        admin = current_app.profile_registry.find_admin_by_email(user_context.email)
        if admin is None:
            raise NotFoundException("Admin profile not found")

        decision = current_app.family_service.decide(path.family_code, admin["id"], verify_request.status)
        return jsonify({
            "message": decision_message(decision["status"]),
            "family": decision
        })


@families_bp.get('/<string:family_code>/secure')
@require_role(Role.ADMIN)
def get_secure_family_data(path: FamilyCodePath):
    """
    Sensitive record of a family together with its public summary.
    """
    with tracer.start_as_current_span("families.secure", attributes={"family.code": path.family_code}):
        user_context = get_user_context()
        record = current_app.family_service.read_secure(path.family_code)

        logger.info(
            "Sensitive family data accessed",
            extra={"family_code": path.family_code, "account_id": user_context.account_id}
        )
        return jsonify(record)
