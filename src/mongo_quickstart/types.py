"""
Type definitions for mongo-quickstart.

Provides result types that mirror PyMongo's result objects, the podcast and
episode document models, and the exception hierarchy raised by the store
session and the workflow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError


@dataclass
class InsertOneResult:
    """
    Result of an insert_one operation.

    Attributes:
        inserted_id: The _id of the inserted document.
        acknowledged: Whether the write was acknowledged.
    """

    inserted_id: Any
    acknowledged: bool = True


@dataclass
class InsertManyResult:
    """
    Result of an insert_many operation.

    Attributes:
        inserted_ids: List of _ids of the inserted documents.
        acknowledged: Whether the write was acknowledged.
    """

    inserted_ids: list[Any] = field(default_factory=list)
    acknowledged: bool = True


@dataclass
class UpdateResult:
    """
    Result of an update_one, update_many or replace_one operation.

    Attributes:
        matched_count: Number of documents matched.
        modified_count: Number of documents modified.
        upserted_id: The _id of the upserted document (if any).
        acknowledged: Whether the write was acknowledged.
    """

    matched_count: int = 0
    modified_count: int = 0
    upserted_id: Any = None
    acknowledged: bool = True


@dataclass
class DeleteResult:
    """
    Result of a delete_one or delete_many operation.

    Attributes:
        deleted_count: Number of documents deleted.
        acknowledged: Whether the write was acknowledged.
    """

    deleted_count: int = 0
    acknowledged: bool = True


# Type aliases for clarity
Document = Mapping[str, Any]
MutableDocument = dict[str, Any]
Filter = Mapping[str, Any]
Update = Mapping[str, Any]
Projection = Mapping[str, Any] | Sequence[str] | None
Sort = list[tuple[str, int]] | None


class StoreError(Exception):
    """Base exception for document store operations."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConnectionError(StoreError):
    """Error raised when connecting to or pinging the store fails."""

    pass


class QueryError(StoreError):
    """Error raised when a query fails."""

    pass


class DecodeError(StoreError):
    """Error raised when a stored document does not have the expected shape."""

    pass


class WriteError(StoreError):
    """Error raised when a write operation fails."""

    pass


class DuplicateKeyError(WriteError):
    """Error raised when inserting a document with a duplicate key."""

    pass


class DeadlineExceeded(StoreError):
    """Error raised when the shared time budget of a run is used up."""

    pass


class StepError(Exception):
    """
    Error raised by the workflow when one of its steps fails.

    Attributes:
        step: Name of the failing step.
        cause: The store error that stopped the step.
    """

    def __init__(self, step: str, cause: BaseException) -> None:
        super().__init__(f"{step} failed: {cause}")
        self.step = step
        self.cause = cause


class _StoredDocument(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    id: Optional[ObjectId] = Field(default=None, alias="_id")

    def to_document(self) -> MutableDocument:
        """Encode for storage; unset fields (including ``_id``) are left out."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_document(cls, doc: Document):
        """
        Decode a stored document.

        Raises:
            DecodeError: If a field is missing or has the wrong type.
        """
        try:
            return cls.model_validate(doc)
        except ValidationError as e:
            raise DecodeError(
                f"{cls.__name__} document {doc.get('_id')!r} is invalid: {e}"
            ) from e


class Podcast(_StoredDocument):
    """
    A podcast document.

    Attributes:
        title: Show title.
        author: Show author.
        tags: Optional list of tags; left out of the stored document when None.
        id: The store-assigned _id, None until inserted.
    """

    title: StrictStr
    author: StrictStr
    tags: Optional[List[StrictStr]] = None


class Episode(_StoredDocument):
    """
    An episode document.

    Attributes:
        podcast: _id of the parent podcast.
        title: Episode title.
        descriptions: Free-form description.
        duration: Duration in minutes.
        id: The store-assigned _id, None until inserted.
    """

    podcast: ObjectId
    title: StrictStr
    descriptions: StrictStr
    duration: StrictInt
