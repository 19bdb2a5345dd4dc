# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints for registration, login and the current user.
"""

from flask import request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..models.requests import RegisterRequest, LoginRequest
from ..middleware.auth import require_auth, get_user_context
from ..utils.request import parse_json_body

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
auth_tag = Tag(name="Authentication", description="Account registration and token issuance")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    url_prefix='/api/auth',
    abp_tags=[auth_tag]
)


@auth_bp.post('/register')
def register():
    """
    Register a donor, family or admin account.

    Creates the account together with its role profile and returns a
    session token. Family registrations also store the sensitive record.
    """
    with tracer.start_as_current_span(
        "auth.register",
        attributes={"operation": "register", "ip_address": request.remote_addr or ""}
    ) as span:
        register_request = parse_json_body(RegisterRequest)
        span.set_attribute("auth.role", register_request.role.value)

        role_fields = register_request.model_dump(exclude={"email", "password", "role"}, exclude_none=True)
        session = current_app.credential_store.register(
            register_request.email,
            register_request.password,
            register_request.role,
            role_fields
        )

        return jsonify({
            "message": "User registered successfully",
            "token": session["token"],
            "expiresAt": session["expiresAt"],
            "user": session["user"]
        }), 201


@auth_bp.post('/login')
def login():
    """
    Authenticate with email and password and return a session token.
    """
    with tracer.start_as_current_span(
        "auth.login",
        attributes={"operation": "login", "ip_address": request.remote_addr or ""}
    ) as span:
        login_request = parse_json_body(LoginRequest)
        span.set_attribute("auth.email", login_request.email)

        session = current_app.credential_store.authenticate(login_request.email, login_request.password)

        return jsonify({
            "message": "Login successful",
            "token": session["token"],
            "expiresAt": session["expiresAt"],
            "user": session["user"]
        })


@auth_bp.get('/me')
@require_auth
def get_current_user():
    """
    Current account and its role profile.
    """
    with tracer.start_as_current_span("auth.me"):
        user_context = get_user_context()
        return jsonify(current_app.credential_store.current_user(user_context.token_payload))
