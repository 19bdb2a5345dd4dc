# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and error mapping.

Documents are stored with an ObjectId ``_id`` and returned with a string
``id`` instead. Driver failures are re-raised as application exceptions so
routes never see pymongo types.
"""

import os
import logging
from typing import List, Dict, Optional, Any, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError,
    PyMongoError
)
from bson import ObjectId
from bson.errors import InvalidId

from ..middleware.error_handler import DuplicateException, InternalException
from ..models.base import utc_now

logger = logging.getLogger(__name__)

Sort = List[Tuple[str, int]]

# Collection names
ACCOUNTS = "accounts"
DONORS = "donors"
ADMINS = "admins"
FAMILIES = "families"
SECURE_FAMILY_DATA = "secure_family_data"
NEEDS = "needs"
DONATIONS = "donations"


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Dict], total: int, page: int, limit: int):
        self.items = items
        self.total = total
        self.page = page
        self.limit = limit
        self.pages = (total + limit - 1) // limit if limit else 0

    def to_dict(self) -> Dict[str, int]:
        """Pagination block returned by list endpoints."""
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages
        }


def _to_public_id(document: Optional[Dict]) -> Optional[Dict]:
    """Replace the ObjectId ``_id`` with a string ``id``."""
    if document is not None and "_id" in document:
        document["id"] = str(document.pop("_id"))
    return document


class MongoDBService:
    """MongoDB service with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None,
                 client: Optional[MongoClient] = None, max_pool_size: int = None):
        """Initialize MongoDB service; an existing client may be injected."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/yaqeen_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'yaqeen_dev')
        self._client: Optional[MongoClient] = client
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = max_pool_size or int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise InternalException("Database unavailable") from e

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except (PyMongoError, InternalException) as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    @staticmethod
    def to_object_id(doc_id: Any) -> Optional[ObjectId]:
        """Convert a string id to ObjectId, or None when malformed."""
        if isinstance(doc_id, ObjectId):
            return doc_id
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            return None

    # CRUD Operations

    def create(self, collection: str, document: Dict) -> Dict:
        """Insert a document and return it with its string ``id``."""
        document = dict(document)
        doc_id = self.to_object_id(document.pop("id", None)) or ObjectId()
        document["_id"] = doc_id

        now = utc_now()
        document.setdefault("createdAt", now)
        document.setdefault("updatedAt", now)

        try:
            self.get_collection(collection).insert_one(document)
        except DuplicateKeyError as e:
            logger.warning(f"Duplicate key error in {collection}: {e}")
            raise DuplicateException("Document with this identifier already exists") from e
        except PyMongoError as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise InternalException() from e

        logger.info(f"Created document in {collection}: {doc_id}")
        return _to_public_id(document)

    def find(self, collection: str, filters: Dict = None, sort: Sort = None,
             skip: int = 0, limit: int = 0, projection: Dict = None) -> List[Dict]:
        """Find documents matching the filters."""
        try:
            cursor = self.get_collection(collection).find(filters or {}, projection)
            if sort:
                cursor = cursor.sort(sort)
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            documents = [_to_public_id(doc) for doc in cursor]
        except PyMongoError as e:
            logger.error(f"Failed to find documents in {collection}: {e}")
            raise InternalException() from e

        logger.debug(f"Found {len(documents)} documents in {collection}")
        return documents

    def find_one(self, collection: str, filters: Dict, sort: Sort = None) -> Optional[Dict]:
        """Find a single document matching the filters."""
        try:
            document = self.get_collection(collection).find_one(filters, sort=sort)
        except PyMongoError as e:
            logger.error(f"Failed to find document in {collection}: {e}")
            raise InternalException() from e
        return _to_public_id(document)

    def find_by_id(self, collection: str, doc_id: str) -> Optional[Dict]:
        """Find a document by id; malformed ids find nothing."""
        object_id = self.to_object_id(doc_id)
        if object_id is None:
            logger.debug(f"Invalid document ID {doc_id!r} for {collection}")
            return None
        return self.find_one(collection, {"_id": object_id})

    def update_one(self, collection: str, filters: Dict, updates: Dict, touch: bool = True) -> bool:
        """Apply ``$set`` to the first matching document; True if one matched."""
        updates = dict(updates)
        if touch:
            updates["updatedAt"] = utc_now()

        try:
            result = self.get_collection(collection).update_one(filters, {"$set": updates})
        except DuplicateKeyError as e:
            logger.warning(f"Duplicate key error updating {collection}: {e}")
            raise DuplicateException("Document with this identifier already exists") from e
        except PyMongoError as e:
            logger.error(f"Failed to update document in {collection}: {e}")
            raise InternalException() from e

        if result.matched_count == 0:
            logger.debug(f"No document matched update in {collection}")
        return result.matched_count > 0

    def update_by_id(self, collection: str, doc_id: str, updates: Dict, touch: bool = True) -> bool:
        """Update a document by id."""
        object_id = self.to_object_id(doc_id)
        if object_id is None:
            return False
        return self.update_one(collection, {"_id": object_id}, updates, touch=touch)

    def delete_one(self, collection: str, filters: Dict) -> bool:
        """Hard delete the first matching document."""
        try:
            result = self.get_collection(collection).delete_one(filters)
        except PyMongoError as e:
            logger.error(f"Failed to delete document in {collection}: {e}")
            raise InternalException() from e

        if result.deleted_count > 0:
            logger.warning(f"Hard deleted document in {collection}: {filters}")
            return True
        return False

    def delete_by_id(self, collection: str, doc_id: str) -> bool:
        """Hard delete a document by id."""
        object_id = self.to_object_id(doc_id)
        if object_id is None:
            return False
        return self.delete_one(collection, {"_id": object_id})

    def count(self, collection: str, filters: Dict = None) -> int:
        """Count documents matching the filters."""
        try:
            count = self.get_collection(collection).count_documents(filters or {})
        except PyMongoError as e:
            logger.error(f"Failed to count documents in {collection}: {e}")
            raise InternalException() from e

        logger.debug(f"Counted {count} documents in {collection}")
        return count

    def aggregate(self, collection: str, pipeline: List[Dict]) -> List[Dict]:
        """Run an aggregation pipeline."""
        try:
            results = list(self.get_collection(collection).aggregate(pipeline))
        except PyMongoError as e:
            logger.error(f"Failed to run aggregation in {collection}: {e}")
            raise InternalException() from e

        logger.debug(f"Aggregation returned {len(results)} results from {collection}")
        return results

    def paginate(self, collection: str, filters: Dict = None, page: int = 1, limit: int = 20,
                 sort: Sort = None) -> PaginationResult:
        """Paginate documents with sorting and filtering."""
        total = self.count(collection, filters)
        items = self.find(
            collection,
            filters,
            sort=sort or [("createdAt", DESCENDING)],
            skip=(page - 1) * limit,
            limit=limit
        )
        logger.debug(f"Paginated {len(items)} documents from {collection} (page {page})")
        return PaginationResult(items, total, page, limit)

    # Index Management

    def create_indexes(self) -> None:
        """Create uniqueness and performance indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            accounts = self.get_collection(ACCOUNTS)
            accounts.create_index("email", unique=True)

            admins = self.get_collection(ADMINS)
            admins.create_index("email", unique=True)

            donors = self.get_collection(DONORS)
            donors.create_index("accountId", unique=True)
            donors.create_index([("country", ASCENDING), ("joinedAt", DESCENDING)])

            families = self.get_collection(FAMILIES)
            families.create_index("familyCode", unique=True)
            families.create_index([("isActive", ASCENDING), ("priorityRank", DESCENDING), ("createdAt", DESCENDING)])
            families.create_index("region")

            secure = self.get_collection(SECURE_FAMILY_DATA)
            secure.create_index("familyCode", unique=True)

            needs = self.get_collection(NEEDS)
            needs.create_index([("familyCode", ASCENDING), ("isFulfilled", ASCENDING)])

            donations = self.get_collection(DONATIONS)
            donations.create_index([("familyCode", ASCENDING), ("donationDate", DESCENDING)])
            donations.create_index([("donorId", ASCENDING), ("donationDate", DESCENDING)])
            donations.create_index([("isVerified", ASCENDING), ("donationDate", DESCENDING)])

            logger.info("MongoDB indexes created successfully")

        except PyMongoError as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise InternalException("Failed to create indexes") from e
