# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Sensitive data vault for identifying family information.

The vault performs no authorization of its own; every route that reaches it
is restricted to administrators.
"""

import logging
from datetime import datetime
from typing import Dict, Any, Optional
from opentelemetry import trace

from .mongodb import MongoDBService, SECURE_FAMILY_DATA
from ..middleware.error_handler import (
    DuplicateException,
    DuplicateFamilyCodeException,
    NotFoundException
)
from ..models.base import utc_now
from ..models.entities import SensitiveFamilyRecord

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class SensitiveDataVault:
    """Store for SensitiveFamilyRecord documents keyed by family code."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb = mongodb_service

    def create(self, family_code: str, real_name: str, exact_location: str, story: str) -> Dict[str, Any]:
        """Write the sensitive half of a new family."""
        with tracer.start_as_current_span("vault.create") as span:
            span.set_attribute("family.code", family_code)

            record = SensitiveFamilyRecord(
                family_code=family_code,
                real_name=real_name,
                exact_location=exact_location,
                story=story
            )
            try:
                created = self.mongodb.create(SECURE_FAMILY_DATA, record.to_document())
            except DuplicateException as e:
                raise DuplicateFamilyCodeException() from e

            logger.info("Sensitive family record created", extra={"family_code": family_code})
            return created

    def stamp_verification(self, family_code: str, admin_id: str,
                           timestamp: Optional[datetime] = None) -> Dict[str, Any]:
        """Record who verified the family and when; re-stamping overwrites."""
        with tracer.start_as_current_span("vault.stamp_verification") as span:
            span.set_attributes({"family.code": family_code, "admin.id": admin_id or ""})

            stamp = {"verifiedBy": admin_id, "verifiedAt": timestamp or utc_now()}
            if not self.mongodb.update_one(SECURE_FAMILY_DATA, {"familyCode": family_code}, stamp, touch=False):
                raise NotFoundException("Secure data not found")

            logger.info(
                "Sensitive family record stamped",
                extra={"family_code": family_code, "admin_id": admin_id}
            )
            return stamp

    def read(self, family_code: str) -> Dict[str, Any]:
        """Full sensitive record for a family."""
        with tracer.start_as_current_span("vault.read") as span:
            span.set_attribute("family.code", family_code)

            record = self.mongodb.find_one(SECURE_FAMILY_DATA, {"familyCode": family_code})
            if record is None:
                raise NotFoundException("Secure data not found")

            logger.info("Sensitive family record read", extra={"family_code": family_code})
            return record

    def delete(self, family_code: str) -> bool:
        """Remove a record; only used to undo a half-created family."""
        deleted = self.mongodb.delete_one(SECURE_FAMILY_DATA, {"familyCode": family_code})
        if deleted:
            logger.warning("Sensitive family record deleted", extra={"family_code": family_code})
        return deleted
