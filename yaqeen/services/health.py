# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Health Check Service

Reports MongoDB connectivity and basic process and system metrics.
"""

import os
import time
import psutil
from typing import Dict, Any
from opentelemetry import trace
from pymongo.errors import PyMongoError
import logging

from .mongodb import MongoDBService
from ..middleware.error_handler import InternalException
from ..models.base import utc_now
from .. import __version__

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class HealthCheckService:
    """Service for system health monitoring."""

    def __init__(self, mongodb_service: MongoDBService, environment: str = "development"):
        self.mongodb_service = mongodb_service
        self.environment = environment
        self.service_version = __version__

    def get_health(self) -> Dict[str, Any]:
        """Health status including the database and system metrics."""
        with tracer.start_as_current_span("health.check") as span:
            start_time = time.time()

            mongodb_health = self._check_mongodb_health()
            overall_status = mongodb_health["status"]
            response_time_ms = round((time.time() - start_time) * 1000, 2)

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms
            })

            return {
                "status": overall_status,
                "service": "yaqeen-api",
                "version": self.service_version,
                "environment": self.environment,
                "timestamp": utc_now().isoformat() + "Z",
                "response_time_ms": response_time_ms,
                "dependencies": {
                    "mongodb": mongodb_health
                },
                "system_metrics": self._get_system_metrics()
            }

    def _check_mongodb_health(self) -> Dict[str, Any]:
        """Check MongoDB connectivity."""
        with tracer.start_as_current_span("health.mongodb_check") as span:
            try:
                start_time = time.time()
                self.mongodb_service.client.admin.command('ping')
                response_time = round((time.time() - start_time) * 1000, 2)
            except (PyMongoError, InternalException) as e:
                span.set_attribute("mongodb.status", "unhealthy")
                span.record_exception(e)
                logger.error(f"MongoDB health check failed: {e}")
                return {
                    "status": "unhealthy",
                    "error": str(e),
                    "last_check": utc_now().isoformat() + "Z"
                }

            span.set_attributes({
                "mongodb.status": "healthy",
                "mongodb.response_time_ms": response_time
            })
            return {
                "status": "healthy",
                "response_time_ms": response_time,
                "database": self.mongodb_service.database_name,
                "last_check": utc_now().isoformat() + "Z"
            }

    def _get_system_metrics(self) -> Dict[str, Any]:
        """Get basic process and system metrics."""
        try:
            memory = psutil.virtual_memory()
            process = psutil.Process()
            return {
                "cpu_percent": psutil.cpu_percent(interval=None),
                "memory": {
                    "used_mb": round(memory.used / 1024 / 1024, 2),
                    "total_mb": round(memory.total / 1024 / 1024, 2),
                    "percent": memory.percent
                },
                "process": {
                    "rss_mb": round(process.memory_info().rss / 1024 / 1024, 2),
                    "threads": process.num_threads()
                },
                "load_average": list(os.getloadavg()) if hasattr(os, 'getloadavg') else None
            }
        except psutil.Error as e:
            return {
                "error": f"Failed to collect system metrics: {str(e)}"
            }
