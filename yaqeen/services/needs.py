# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Family needs: costed requests that stay open until fulfilled once.
"""

import logging
from typing import Dict, Any, List, Optional, Tuple
from pymongo import DESCENDING
from opentelemetry import trace

from .mongodb import MongoDBService, PaginationResult, NEEDS
from .families import FamilyService
from ..domain.authorization import can_manage_family, check_role
from ..domain.donations import parse_optional_amount
from ..middleware.error_handler import (
    AuthorizationException,
    InvalidAmountException,
    NotFoundException,
    ValidationException
)
from ..models.base import utc_now
from ..models.entities import FamilyNeed, UserContext
from ..models.enums import PriorityLevel, Role

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class NeedService:
    """Creates, fulfils and lists family needs."""

    def __init__(self, mongodb_service: MongoDBService, family_service: FamilyService):
        self.mongodb = mongodb_service
        self.families = family_service

    def create_need(self, caller: UserContext, family_code: str, category: str, title: str,
                    description: Optional[str] = None, estimated_cost: Any = None,
                    priority: Any = PriorityLevel.MEDIUM) -> Dict[str, Any]:
        """
        Create an open need for a family.

        Raises:
            AuthorizationException: If the caller is neither an admin nor the family
            FamilyNotFoundException: If the family code is unknown
            InvalidAmountException: If the estimated cost is not a valid amount
        """
        with tracer.start_as_current_span("needs.create_need") as span:
            span.set_attribute("family.code", family_code)

            role_check = check_role(caller, Role.ADMIN, Role.FAMILY)
            if not role_check.allowed:
                raise AuthorizationException(role_check.reason)
            ownership = can_manage_family(caller, family_code)
            if not ownership.allowed:
                raise AuthorizationException(ownership.reason)

            self.families.require_family(family_code)

            try:
                cost = parse_optional_amount(estimated_cost)
            except ValueError as e:
                raise InvalidAmountException(str(e)) from e

            need = FamilyNeed(
                family_code=family_code,
                category=category.strip(),
                title=title.strip(),
                description=description,
                estimated_cost=cost,
                priority=PriorityLevel(priority or PriorityLevel.MEDIUM).value
            )
            created = self.mongodb.create(NEEDS, need.to_document())

            logger.info(
                "Need created",
                extra={"need_id": created["id"], "family_code": family_code, "account_id": caller.account_id}
            )
            return created

    def fulfill_need(self, need_id: str, caller: UserContext) -> Dict[str, Any]:
        """
        Mark a need fulfilled; a need can be fulfilled only once.

        Raises:
            NotFoundException: If the need does not exist
            ValidationException: If the need is already fulfilled
        """
        with tracer.start_as_current_span("needs.fulfill_need") as span:
            span.set_attribute("need.id", need_id)

            need = self.mongodb.find_by_id(NEEDS, need_id)
            if need is None:
                raise NotFoundException("Need not found")
            if need.get("isFulfilled"):
                raise ValidationException("Need already fulfilled")

            updates = {"isFulfilled": True, "fulfilledAt": utc_now(), "fulfilledBy": caller.account_id}
            # Matching on isFulfilled keeps concurrent fulfilments from both succeeding
            object_id = self.mongodb.to_object_id(need_id)
            if not self.mongodb.update_one(NEEDS, {"_id": object_id, "isFulfilled": False}, updates):
                raise ValidationException("Need already fulfilled")

            need.update(updates)
            logger.info(
                "Need fulfilled",
                extra={"need_id": need_id, "family_code": need.get("familyCode"), "account_id": caller.account_id}
            )
            return need

    def list_open_needs(self, family_code: Optional[str] = None, category: Optional[str] = None,
                        page: int = 1, limit: int = 20) -> Tuple[List[Dict[str, Any]], PaginationResult]:
        """Open needs, newest first."""
        filters: Dict[str, Any] = {"isFulfilled": False}
        if family_code:
            filters["familyCode"] = family_code
        if category:
            filters["category"] = category

        result = self.mongodb.paginate(NEEDS, filters, page=page, limit=limit, sort=[("createdAt", DESCENDING)])
        return result.items, result
