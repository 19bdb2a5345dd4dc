# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Donor endpoints: administrator directory, donor dashboard, profile and favorites.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import BaseModel, Field
from opentelemetry import trace
import logging

from ..models.enums import Role
from ..models.requests import UpdateDonorProfileRequest
from ..middleware.auth import require_role, get_user_context
from ..utils.request import RequestParser, parse_json_body

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

RECENT_DONATIONS_ON_DASHBOARD = 5

# Create API blueprint
donors_tag = Tag(name="Donors", description="Donor profiles, dashboards and favorites")
donors_bp = APIBlueprint(
    'donors',
    __name__,
    url_prefix='/api/donors',
    abp_tags=[donors_tag]
)


class DonorIdPath(BaseModel):
    donor_id: str = Field(..., description="Donor profile ID")


class FavoriteFamilyPath(BaseModel):
    family_code: str = Field(..., description="Public family identifier")


@donors_bp.get('')
@require_role(Role.ADMIN)
def list_donors():
    """
    List donors newest first, optionally filtered by country or region.
    """
    with tracer.start_as_current_span("donors.list"):
        pagination = RequestParser.get_pagination_params()
        donors, result = current_app.profile_registry.list_donors(
            country=RequestParser.get_str_arg('country'),
            region=RequestParser.get_str_arg('region'),
            page=pagination['page'],
            limit=pagination['limit']
        )
        for donor in donors:
            donor["stats"] = current_app.aggregation_engine.donor_stats(donor["id"])

        return jsonify({
            "donors": donors,
            "pagination": result.to_dict()
        })


@donors_bp.get('/dashboard/me')
@require_role(Role.DONOR)
def donor_dashboard():
    """
    Dashboard of the calling donor: profile, giving statistics, recent
    verified donations and families suggested from preferred regions.
    """
    with tracer.start_as_current_span("donors.dashboard"):
        user_context = get_user_context()
        donor = current_app.profile_registry.require_donor_by_account(user_context.account_id)

        stats = current_app.aggregation_engine.donor_stats(donor["id"])
        stats["favoritesCount"] = len(donor.get("favoriteFamilies") or [])

        recent = current_app.donation_ledger.list_for_donor(
            donor["id"], verified_only=True, limit=RECENT_DONATIONS_ON_DASHBOARD
        )
        suggested = current_app.family_service.suggested_for_regions(donor.get("preferredRegions") or [])

        return jsonify({
            "profile": donor,
            "stats": stats,
            "recentDonations": recent,
            "suggestedFamilies": suggested
        })


@donors_bp.get('/profile')
@require_role(Role.DONOR)
def get_profile():
    """Donor profile of the caller."""
    user_context = get_user_context()
    return jsonify(current_app.profile_registry.require_donor_by_account(user_context.account_id))


@donors_bp.put('/profile')
@require_role(Role.DONOR)
def update_profile():
    """
    Update name, country, preferred regions or favorite families.

    Other fields in the body are ignored.
    """
    with tracer.start_as_current_span("donors.update_profile"):
        user_context = get_user_context()
        update_request = parse_json_body(UpdateDonorProfileRequest)

        donor = current_app.profile_registry.update_donor_profile(
            user_context.account_id,
            update_request.model_dump(exclude_none=True)
        )
        return jsonify(donor)


@donors_bp.get('/favorites')
@require_role(Role.DONOR)
def list_favorites():
    """Active favorite families of the caller."""
    user_context = get_user_context()
    favorites = current_app.profile_registry.list_favorites(user_context.account_id)
    return jsonify({
        "favorites": favorites,
        "count": len(favorites)
    })


@donors_bp.post('/favorites/<string:family_code>')
@require_role(Role.DONOR)
def add_favorite(path: FavoriteFamilyPath):
    """Add a family to the caller's favorites."""
    with tracer.start_as_current_span("donors.add_favorite", attributes={"family.code": path.family_code}):
        user_context = get_user_context()
        favorites = current_app.profile_registry.add_favorite(user_context.account_id, path.family_code)
        return jsonify({
            "message": "Family added to favorites",
            "familyCode": path.family_code,
            "totalFavorites": len(favorites)
        })


@donors_bp.delete('/favorites/<string:family_code>')
@require_role(Role.DONOR)
def remove_favorite(path: FavoriteFamilyPath):
    """Remove a family from the caller's favorites."""
    with tracer.start_as_current_span("donors.remove_favorite", attributes={"family.code": path.family_code}):
        user_context = get_user_context()
        favorites = current_app.profile_registry.remove_favorite(user_context.account_id, path.family_code)
        return jsonify({
            "message": "Family removed from favorites",
            "familyCode": path.family_code,
            "totalFavorites": len(favorites)
        })


@donors_bp.get('/<string:donor_id>')
@require_role(Role.ADMIN)
def get_donor(path: DonorIdPath):
    """
    One donor with account details, statistics and donation history.
    """
    with tracer.start_as_current_span("donors.get", attributes={"donor.id": path.donor_id}):
        donor = current_app.profile_registry.get_donor(path.donor_id)
        donor["stats"] = current_app.aggregation_engine.donor_stats(donor["id"])
        donor["donations"] = current_app.donation_ledger.list_for_donor(donor["id"])
        return jsonify(donor)
