"""Shared base model and helpers for persisted decision-engine records."""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, Optional, Type, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ModelValidationError


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound="BaseRecordModel")


def utc_now() -> datetime:
    """Return current UTC timestamp."""
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Generate a prefixed unique identifier."""
    return "{0}_{1}".format(prefix, uuid4().hex[:16])


class BaseRecordModel(BaseModel):
    """Base schema for records kept in the persistent store."""

    id: Optional[str] = Field(default=None, description="Store document ID.")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    version: int = Field(default=1, ge=1)

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=False,
    )

    def to_document(self) -> Dict[str, Any]:
        """Serialize model into a store-ready dictionary.

        Raises:
            ModelValidationError: If serialization fails.
        """
        try:
            return self.model_dump(exclude_none=True)
        except Exception as exc:
            logger.exception("Failed to serialize %s with id=%s", self.__class__.__name__, self.id)
            raise ModelValidationError(str(exc))

    @classmethod
    def from_document(cls: Type[RecordT], data: Dict[str, Any], doc_id: Optional[str] = None) -> RecordT:
        """Create a model instance from a stored payload.

        Args:
            data: Stored document payload.
            doc_id: Optional store document id.

        Raises:
            ModelValidationError: If payload parsing fails.
        """
        try:
            payload = dict(data)
            if doc_id is not None and "id" not in payload:
                payload["id"] = doc_id
            return cls.model_validate(payload)
        except Exception as exc:
            logger.exception("Failed to parse stored payload for %s doc_id=%s", cls.__name__, doc_id)
            raise ModelValidationError(str(exc))

    def next_version(self: RecordT, **changes: Any) -> RecordT:
        """Return a copy with bumped version and refreshed `updated_at`."""
        changes["version"] = self.version + 1
        changes["updated_at"] = utc_now()
        return self.model_copy(update=changes)
