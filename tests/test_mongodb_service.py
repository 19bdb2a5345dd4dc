# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for MongoDB service layer.
"""

import pytest
from unittest.mock import MagicMock
from bson import ObjectId
from pymongo.errors import PyMongoError

from yaqeen.middleware.error_handler import DuplicateException, InternalException
from yaqeen.services.mongodb import MongoDBService, PaginationResult, ACCOUNTS, FAMILIES


class TestMongoDBService:
    """Test MongoDB service functionality."""

    def test_create_document(self, mongodb_service):
        """Created documents carry a string id and timestamps."""
        created = mongodb_service.create(FAMILIES, {"familyCode": "FAM-001", "region": "NORTH"})

        assert ObjectId.is_valid(created["id"])
        assert "_id" not in created
        assert "createdAt" in created
        assert "updatedAt" in created

        found = mongodb_service.find_by_id(FAMILIES, created["id"])
        assert found["familyCode"] == "FAM-001"

    def test_create_keeps_supplied_id(self, mongodb_service):
        doc_id = str(ObjectId())
        created = mongodb_service.create(FAMILIES, {"id": doc_id, "familyCode": "FAM-002"})

        assert created["id"] == doc_id

    def test_unique_index_raises_duplicate(self, mongodb_service):
        mongodb_service.create(ACCOUNTS, {"email": "jane@example.com"})

        with pytest.raises(DuplicateException):
            mongodb_service.create(ACCOUNTS, {"email": "jane@example.com"})

        assert mongodb_service.count(ACCOUNTS, {"email": "jane@example.com"}) == 1

    def test_find_with_sort_and_limit(self, mongodb_service):
        for rank in (1, 3, 2):
            mongodb_service.create(FAMILIES, {"familyCode": f"FAM-{rank}", "priorityRank": rank})

        found = mongodb_service.find(FAMILIES, {}, sort=[("priorityRank", -1)], limit=2)

        assert [f["familyCode"] for f in found] == ["FAM-3", "FAM-2"]

    def test_malformed_id_finds_nothing(self, mongodb_service):
        assert mongodb_service.find_by_id(FAMILIES, "not-an-object-id") is None
        assert mongodb_service.update_by_id(FAMILIES, "not-an-object-id", {"region": "X"}) is False
        assert mongodb_service.delete_by_id(FAMILIES, "not-an-object-id") is False

    def test_update_sets_fields_and_touches(self, mongodb_service):
        created = mongodb_service.create(FAMILIES, {"familyCode": "FAM-001", "region": "NORTH"})

        assert mongodb_service.update_by_id(FAMILIES, created["id"], {"region": "SOUTH"})

        updated = mongodb_service.find_by_id(FAMILIES, created["id"])
        assert updated["region"] == "SOUTH"
        assert updated["updatedAt"] >= updated["createdAt"]

    def test_update_without_touch(self, mongodb_service):
        created = mongodb_service.create(FAMILIES, {"familyCode": "FAM-001", "updatedAt": None})

        mongodb_service.update_one(FAMILIES, {"familyCode": "FAM-001"}, {"region": "EAST"}, touch=False)

        assert mongodb_service.find_by_id(FAMILIES, created["id"])["updatedAt"] is None

    def test_update_unmatched_returns_false(self, mongodb_service):
        assert mongodb_service.update_one(FAMILIES, {"familyCode": "MISSING"}, {"region": "X"}) is False

    def test_delete(self, mongodb_service):
        created = mongodb_service.create(FAMILIES, {"familyCode": "FAM-001"})

        assert mongodb_service.delete_by_id(FAMILIES, created["id"]) is True
        assert mongodb_service.find_by_id(FAMILIES, created["id"]) is None

    def test_paginate(self, mongodb_service):
        for i in range(5):
            mongodb_service.create(FAMILIES, {"familyCode": f"FAM-{i}", "priorityRank": i})

        result = mongodb_service.paginate(FAMILIES, {}, page=2, limit=2, sort=[("priorityRank", 1)])

        assert isinstance(result, PaginationResult)
        assert [f["familyCode"] for f in result.items] == ["FAM-2", "FAM-3"]
        assert result.to_dict() == {"page": 2, "limit": 2, "total": 5, "pages": 3}

    def test_aggregate(self, mongodb_service):
        mongodb_service.create("donations", {"amount": 10.0, "isVerified": True})
        mongodb_service.create("donations", {"amount": 5.0, "isVerified": True})
        mongodb_service.create("donations", {"amount": 99.0, "isVerified": False})

        result = mongodb_service.aggregate("donations", [
            {"$match": {"isVerified": True}},
            {"$group": {"_id": None, "total": {"$sum": "$amount"}}}
        ])

        assert result[0]["total"] == 15.0

    def test_driver_errors_become_internal(self):
        client = MagicMock()
        client.__getitem__.return_value.__getitem__.return_value.find_one.side_effect = PyMongoError("boom")
        service = MongoDBService(database_name="yaqeen_test", client=client)

        with pytest.raises(InternalException):
            service.find_one(FAMILIES, {"familyCode": "FAM-001"})


class TestPaginationResult:
    """Test pagination arithmetic."""

    @pytest.mark.parametrize("total,limit,pages", [(0, 10, 0), (10, 10, 1), (11, 10, 2), (1, 20, 1)])
    def test_pages(self, total, limit, pages):
        assert PaginationResult([], total, 1, limit).pages == pages
