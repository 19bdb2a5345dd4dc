# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and document mapping.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, matching what MongoDB returns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DocumentModel(BaseModel):
    """Model stored as a MongoDB document with camelCase keys."""

    model_config = ConfigDict(
        # Documents use camelCase, Python code uses snake_case
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True,
        arbitrary_types_allowed=True
    )

    @classmethod
    def from_document(cls, document: Optional[Dict[str, Any]]):
        """Build the model from a stored document, or None if absent."""
        if document is None:
            return None
        return cls.model_validate(document)

    def to_document(self, exclude: Optional[set] = None) -> Dict[str, Any]:
        """Serialize to a camelCase document suitable for storage or JSON."""
        return self.model_dump(by_alias=True, exclude=exclude)


class BaseEntity(DocumentModel):
    """Base entity with common fields for all domain objects."""

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=utc_now, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update timestamp")

    def update_timestamp(self) -> None:
        """Update the modification timestamp."""
        self.updated_at = utc_now()
