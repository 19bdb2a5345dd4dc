# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request instrumentation for the Yaqeen API.

Every request gets a trace id echoed in ``X-Trace-Id`` and one completion
log line carrying the caller's account and role once a route has
authenticated it.
"""

import time
import logging
from typing import Any, Dict
from flask import Flask, request, g
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

logger = logging.getLogger(__name__)

# Polled by load balancers; logged at debug only
QUIET_PATHS = frozenset({'/api/healthz'})


def _caller_attributes() -> Dict[str, Any]:
    user_context = g.get('user_context')
    if user_context is None:
        return {}
    return {"account_id": user_context.account_id, "role": user_context.role}


def add_observability_middleware(app: Flask, instrument: bool = True):
    """Attach tracing and per-request logging to the app."""

    if instrument:
        FlaskInstrumentor().instrument_app(app, excluded_urls="api/healthz")

    @app.before_request
    def start_request_timer():
        g.start_time = time.perf_counter()
        g.trace_id = None

        span = trace.get_current_span()
        if span.is_recording():
            g.trace_id = format(span.get_span_context().trace_id, "032x")

    @app.after_request
    def log_request(response):
        duration_ms = round((time.perf_counter() - g.get('start_time', time.perf_counter())) * 1000, 2)
        caller = _caller_attributes()

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("http.duration_ms", duration_ms)
            if caller:
                span.set_attributes({"yaqeen.account.id": caller["account_id"], "yaqeen.role": caller["role"]})

        if request.path in QUIET_PATHS:
            log = logger.debug
        elif response.status_code >= 500:
            log = logger.warning
        else:
            log = logger.info
        log(
            "HTTP request completed",
            extra={
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "trace_id": g.get('trace_id'),
                **caller
            }
        )

        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id
        return response
