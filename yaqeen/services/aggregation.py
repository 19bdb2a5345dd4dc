# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Aggregation engine producing donation summaries.

Only verified donations count towards totals; pending ones are counted
separately where a summary reports them.
"""

import logging
from datetime import datetime
from typing import Dict, Any, Optional
from opentelemetry import trace

from .mongodb import MongoDBService, DONATIONS, FAMILIES, NEEDS
from .ledger import DonationLedger
from ..domain import aggregation
from ..middleware.error_handler import ValidationException
from ..models.base import utc_now
from ..models.enums import VerificationStatus

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AggregationEngine:
    """Read-only summaries over the donation ledger."""

    def __init__(self, mongodb_service: MongoDBService, ledger: DonationLedger,
                 default_currency: str = aggregation.DEFAULT_CURRENCY):
        self.mongodb = mongodb_service
        self.ledger = ledger
        self.default_currency = default_currency

    def family_totals(self, family_code: str) -> Dict[str, Any]:
        """Verified total and count plus the pending count for one family."""
        with tracer.start_as_current_span("aggregation.family_totals") as span:
            span.set_attribute("family.code", family_code)
            donations = self.ledger.list_for_family(family_code, include_unverified=True)
            return aggregation.family_totals(donations, self.default_currency)

    def platform_breakdown(self, region: Optional[str] = None, window_days: Any = 30,
                           now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Verified donations of the trailing window grouped by platform.

        Args:
            region: Restrict to families in this region
            window_days: Window length in days; 0 selects nothing
            now: Time the window counts back from, defaults to the current time

        Returns:
            Dict with summary, byPlatform and the ten most recent donations

        Raises:
            ValidationException: If window_days is not a non-negative integer
        """
        with tracer.start_as_current_span("aggregation.platform_breakdown") as span:
            now = now or utc_now()
            try:
                start = aggregation.window_start(now, window_days)
            except ValueError as e:
                raise ValidationException(
                    "Invalid timeframe",
                    [{"field": "timeframe", "message": str(e)}]
                ) from e

            span.set_attributes({"aggregation.window_days": window_days, "aggregation.region": region or ""})

            filters: Dict[str, Any] = {
                "isVerified": True,
                "donationDate": {"$gte": start}
            }
            regions: Dict[str, str] = {}
            if region:
                families = self.mongodb.find(FAMILIES, {"region": region}, projection={"familyCode": 1, "region": 1})
                regions = {f["familyCode"]: f["region"] for f in families}
                filters["familyCode"] = {"$in": list(regions)}

            # Nothing is dated within the last 0 days
            donations = self.mongodb.find(DONATIONS, filters) if window_days > 0 else []
            recent = aggregation.most_recent(donations)

            if not region and recent:
                codes = list({d["familyCode"] for d in recent})
                families = self.mongodb.find(FAMILIES, {"familyCode": {"$in": codes}},
                                             projection={"familyCode": 1, "region": 1})
                regions = {f["familyCode"]: f["region"] for f in families}

            return {
                "summary": {
                    "totalAmount": aggregation.sum_amounts(d.get("amount") for d in donations),
                    "totalCount": len(donations),
                    "timeframe": f"{window_days} days"
                },
                "byPlatform": aggregation.group_by_platform(donations),
                "recent": [
                    {
                        "donorName": d.get("donorName"),
                        "amount": d.get("amount"),
                        "currency": d.get("currency"),
                        "platform": d.get("platform"),
                        "donationDate": d.get("donationDate"),
                        "family": {"familyCode": d.get("familyCode"), "region": regions.get(d.get("familyCode"))}
                    }
                    for d in recent
                ]
            }

    def donor_stats(self, donor_id: str) -> Dict[str, Any]:
        """Verified giving of one donor."""
        with tracer.start_as_current_span("aggregation.donor_stats") as span:
            span.set_attribute("donor.id", donor_id)
            return aggregation.donor_stats(self.ledger.list_for_donor(donor_id))

    def needs_rollup(self, family_code: str) -> Dict[str, Any]:
        """Open and fulfilled needs of one family."""
        needs = self.mongodb.find(NEEDS, {"familyCode": family_code})
        return aggregation.needs_rollup(needs)

    def platform_stats(self) -> Dict[str, Any]:
        """Site-wide counts for the public statistics page."""
        with tracer.start_as_current_span("aggregation.platform_stats"):
            totals = self.mongodb.aggregate(DONATIONS, [
                {"$match": {"isVerified": True}},
                {"$group": {"_id": None, "total": {"$sum": "$amount"}, "count": {"$sum": 1}}}
            ])
            verified_total = totals[0] if totals else {"total": 0, "count": 0}

            stats = {
                "families": {
                    "active": self.mongodb.count(FAMILIES, {"isActive": True}),
                    "verified": self.mongodb.count(FAMILIES, {
                        "isActive": True,
                        "verificationStatus": VerificationStatus.VERIFIED.value
                    })
                },
                "donations": {
                    "verifiedCount": verified_total.get("count", 0),
                    "verifiedTotal": float(verified_total.get("total") or 0),
                    "pendingCount": self.mongodb.count(DONATIONS, {"isVerified": False})
                },
                "needs": {
                    "open": self.mongodb.count(NEEDS, {"isFulfilled": False}),
                    "fulfilled": self.mongodb.count(NEEDS, {"isFulfilled": True})
                }
            }
            logger.debug("Platform stats computed", extra={"stats": stats})
            return stats
