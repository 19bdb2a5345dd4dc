# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Platform statistics and health check endpoints.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..models.base import utc_now

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

system_tag = Tag(name="System", description="Platform statistics and health")
system_bp = APIBlueprint(
    'system',
    __name__,
    url_prefix='/api',
    abp_tags=[system_tag]
)


@system_bp.get('/stats')
def platform_stats():
    """Site-wide family, donation and need counts."""
    with tracer.start_as_current_span("system.stats"):
        stats = current_app.aggregation_engine.platform_stats()
        stats["generatedAt"] = utc_now()
        return jsonify(stats)


@system_bp.get('/healthz')
def health_check():
    """
    Health check endpoint with dependency monitoring.

    Returns 503 when the database is unreachable.
    """
    health_data = current_app.health_service.get_health()
    status_code = 200 if health_data['status'] == 'healthy' else 503
    return jsonify(health_data), status_code
