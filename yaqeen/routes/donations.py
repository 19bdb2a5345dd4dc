# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Donation ledger endpoints.
"""

from flask import request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
from opentelemetry import trace
import logging
from typing import Any, Dict

from ..models.enums import Role
from ..models.requests import RecordDonationRequest, VerifyDonationRequest
from ..middleware.auth import require_auth, require_role, get_user_context
from ..middleware.error_handler import ValidationException
from ..domain.aggregation import parse_window_days
from ..domain.donations import include_unverified_from_query
from ..utils.request import RequestParser, parse_json_body

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
donations_tag = Tag(name="Donations", description="External donation records and statistics")
donations_bp = APIBlueprint(
    'donations',
    __name__,
    url_prefix='/api/donations',
    abp_tags=[donations_tag]
)


class DonationIdPath(BaseModel):
    donation_id: str = Field(..., description="Donation ID")


class FamilyCodePath(BaseModel):
    family_code: str = Field(..., description="Public family identifier")


def _donation_view(donation: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": donation.get("id"),
        "familyCode": donation.get("familyCode"),
        "platform": donation.get("platform"),
        "externalLink": donation.get("externalLink"),
        "donorName": donation.get("donorName"),
        "amount": donation.get("amount"),
        "currency": donation.get("currency"),
        "donationDate": donation.get("donationDate"),
        "donorId": donation.get("donorId"),
        "isVerified": donation.get("isVerified"),
        "createdAt": donation.get("createdAt")
    }


@donations_bp.post('')
@require_auth
def record_donation():
    """
    Record a donation made on an external platform.

    New entries are unverified until an administrator reviews them. A donor
    recording a donation is credited automatically.
    """
    with tracer.start_as_current_span("donations.record") as span:
        user_context = get_user_context()
        donation_request = parse_json_body(RecordDonationRequest)
        span.set_attribute("family.code", donation_request.family_code)

        donation = current_app.donation_ledger.record(
            family_code=donation_request.family_code,
            platform=donation_request.platform,
            donor_name=donation_request.donor_name,
            amount=donation_request.amount,
            donation_date=donation_request.donation_date,
            currency=donation_request.currency,
            external_link=donation_request.external_link,
            donor_id=donation_request.donor_id,
            caller=user_context
        )

        return jsonify({
            "message": "Donation added successfully",
            "donation": _donation_view(donation)
        }), 201


@donations_bp.get('/family/<string:family_code>')
def list_family_donations(path: FamilyCodePath):
    """
    Donations of one family with its totals.

    Verified entries only, unless ``verified`` is present with a value other than ``true``.
    """
    with tracer.start_as_current_span("donations.list_for_family", attributes={"family.code": path.family_code}):
        include_unverified = include_unverified_from_query(request.args.get('verified'))

        current_app.family_service.require_family(path.family_code)
        donations = current_app.donation_ledger.list_for_family(path.family_code, include_unverified)

        return jsonify({
            "donations": [_donation_view(d) for d in donations],
            "summary": current_app.aggregation_engine.family_totals(path.family_code)
        })


@donations_bp.put('/<string:donation_id>/verify')
@require_role(Role.ADMIN)
def verify_donation(path: DonationIdPath):
    """
    Set the verification flag of a donation.
    """
    with tracer.start_as_current_span("donations.verify", attributes={"donation.id": path.donation_id}):
        user_context = get_user_context()
        verify_request = parse_json_body(VerifyDonationRequest)

        donation = current_app.donation_ledger.set_verification(path.donation_id, verify_request.is_verified)

        logger.info(
            "Donation reviewed",
            extra={
                "donation_id": path.donation_id,
                "is_verified": verify_request.is_verified,
                "reviewed_by": user_context.account_id
            }
        )
        outcome = "verified" if verify_request.is_verified else "rejected"
        return jsonify({
            "message": f"Donation {outcome} successfully",
            "donation": _donation_view(donation)
        })


@donations_bp.get('/stats')
def donation_stats():
    """
    Verified donations of the trailing window grouped by platform.

    Query parameters: ``region`` and ``timeframe`` in days (default 30).
    """
    with tracer.start_as_current_span("donations.stats") as span:
        region = RequestParser.get_str_arg('region')
        try:
            window_days = parse_window_days(request.args.get('timeframe'))
        except ValueError as e:
            raise ValidationException(
                "Invalid timeframe",
                [{"field": "timeframe", "message": str(e)}]
            ) from e
        span.set_attributes({"stats.window_days": window_days, "stats.region": region or ""})

        return jsonify(current_app.aggregation_engine.platform_breakdown(region=region, window_days=window_days))
