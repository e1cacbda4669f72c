"""
Collection - MongoDB collection operations.

Provides a PyMongo-shaped Collection interface with async CRUD operations
that run under the client's deadline and raise ``mongo_quickstart.types``
errors.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pymongo import errors as driver_errors

from .cursor import Cursor
from .types import (
    DeleteResult,
    DuplicateKeyError,
    InsertManyResult,
    InsertOneResult,
    QueryError,
    UpdateResult,
    WriteError,
)

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection

    from .database import Database
    from .deadline import Deadline
    from .types import Filter, Projection, Sort, Update

T = TypeVar("T", bound=dict[str, Any])

__all__ = ["Collection"]

logger = logging.getLogger(__name__)


def _write_error(e: driver_errors.PyMongoError) -> WriteError:
    if isinstance(e, driver_errors.DuplicateKeyError):
        return DuplicateKeyError(str(e), e.code)
    return WriteError(str(e), getattr(e, "code", None))


class Collection(Generic[T]):
    """
    MongoDB collection with async CRUD operations.

    Example:
        podcasts = db["podcasts"]

        # Insert
        result = await podcasts.insert_one({"title": "The Polyglot Dev Pod"})
        print(result.inserted_id)

        # Find
        podcast = await podcasts.find_one({"_id": result.inserted_id})
        async with podcasts.find({"author": "Nic Raboy"}) as cursor:
            async for podcast in cursor:
                print(podcast)

        # Update
        await podcasts.update_one({"_id": result.inserted_id}, {"$set": {"author": "Nicky Raboy"}})

        # Delete
        await podcasts.delete_one({"_id": result.inserted_id})
    """

    __slots__ = ("_driver", "_database", "_name", "_full_name")

    def __init__(
        self,
        driver: AsyncCollection,
        database: Database,
        name: str,
    ) -> None:
        """
        Initialize a collection.

        Args:
            driver: The driver collection handle.
            database: Parent database instance.
            name: Collection name.
        """
        self._driver = driver
        self._database = database
        self._name = name
        self._full_name = f"{database.name}.{name}"

    @property
    def name(self) -> str:
        """Get the collection name."""
        return self._name

    @property
    def full_name(self) -> str:
        """Get the full collection name (database.collection)."""
        return self._full_name

    @property
    def database(self) -> Database:
        """Get the parent database."""
        return self._database

    @property
    def _deadline(self) -> Deadline:
        return self._database.client.deadline

    async def insert_one(self, document: T) -> InsertOneResult:
        """
        Insert a single document.

        The store assigns the _id when the document has none; the caller's
        mapping is left untouched.

        Raises:
            DuplicateKeyError: If a document with the same _id exists.
            WriteError: If the insert fails.
        """
        logger.debug("insert_one into %s", self._full_name)
        try:
            result = await self._deadline.run(
                self._driver.insert_one(dict(document)), "insert_one"
            )
        except driver_errors.PyMongoError as e:
            raise _write_error(e) from e
        return InsertOneResult(
            inserted_id=result.inserted_id,
            acknowledged=result.acknowledged,
        )

    async def insert_many(
        self,
        documents: list[T],
        ordered: bool = True,
    ) -> InsertManyResult:
        """
        Insert multiple documents in one batch.

        Args:
            documents: List of documents to insert.
            ordered: If True, stop on first error. If False, continue.

        Raises:
            WriteError: If the insert fails.
        """
        if not documents:
            raise WriteError("insert_many requires at least one document")

        logger.debug("insert_many %d into %s", len(documents), self._full_name)
        try:
            result = await self._deadline.run(
                self._driver.insert_many([dict(doc) for doc in documents], ordered=ordered),
                "insert_many",
            )
        except driver_errors.PyMongoError as e:
            raise _write_error(e) from e
        return InsertManyResult(
            inserted_ids=list(result.inserted_ids),
            acknowledged=result.acknowledged,
        )

    async def find_one(
        self,
        filter: Filter | None = None,
        projection: Projection = None,
    ) -> T | None:
        """
        Find a single document.

        Returns:
            The matching document, or None if not found.

        Raises:
            QueryError: If the query fails.
        """
        logger.debug("find_one in %s: %s", self._full_name, filter)
        try:
            result = await self._deadline.run(
                self._driver.find_one(dict(filter or {}), projection), "find_one"
            )
        except driver_errors.PyMongoError as e:
            raise QueryError(str(e), getattr(e, "code", None)) from e
        return result  # type: ignore

    def find(
        self,
        filter: Filter | None = None,
        projection: Projection = None,
        sort: Sort = None,
    ) -> Cursor[T]:
        """
        Find documents matching the filter.

        Nothing is sent to the store until the cursor is iterated.

        Example:
            async with episodes.find({"duration": {"$gt": 20}}, sort=[("duration", -1)]) as cursor:
                async for episode in cursor:
                    print(episode)
        """
        cursor = Cursor[T](
            self._driver,
            self._deadline,
            self._full_name,
            filter,
            projection,
        )
        if sort:
            cursor.sort(sort)
        return cursor

    async def _update(self, operation: str, filter: Filter, update: Any, upsert: bool) -> UpdateResult:
        logger.debug("%s in %s: %s", operation, self._full_name, filter)
        method = getattr(self._driver, operation)
        try:
            result = await self._deadline.run(
                method(dict(filter), update, upsert=upsert), operation
            )
        except driver_errors.PyMongoError as e:
            raise _write_error(e) from e
        return UpdateResult(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=result.upserted_id,
            acknowledged=result.acknowledged,
        )

    async def update_one(
        self,
        filter: Filter,
        update: Update,
        upsert: bool = False,
    ) -> UpdateResult:
        """
        Update a single document.

        Args:
            filter: Query filter to match the document.
            update: Update operations ($set, $unset, $inc, etc.).
            upsert: If True, insert if no document matches.

        Raises:
            WriteError: If the update fails.
        """
        return await self._update("update_one", filter, dict(update), upsert)

    async def update_many(
        self,
        filter: Filter,
        update: Update,
        upsert: bool = False,
    ) -> UpdateResult:
        """
        Update every document matching the filter.

        Raises:
            WriteError: If the update fails.
        """
        return await self._update("update_many", filter, dict(update), upsert)

    async def replace_one(
        self,
        filter: Filter,
        replacement: T,
        upsert: bool = False,
    ) -> UpdateResult:
        """
        Replace a single document.

        Fields of the old document that are not in the replacement are gone
        afterwards; only the _id is kept.

        Raises:
            WriteError: If the replacement holds update operators or the
                replace fails.
        """
        if any(key.startswith("$") for key in replacement):
            raise WriteError("replacement document must not contain update operators")
        return await self._update("replace_one", filter, dict(replacement), upsert)

    async def _delete(self, operation: str, filter: Filter) -> DeleteResult:
        logger.debug("%s in %s: %s", operation, self._full_name, filter)
        method = getattr(self._driver, operation)
        try:
            result = await self._deadline.run(method(dict(filter)), operation)
        except driver_errors.PyMongoError as e:
            raise _write_error(e) from e
        return DeleteResult(
            deleted_count=result.deleted_count,
            acknowledged=result.acknowledged,
        )

    async def delete_one(self, filter: Filter) -> DeleteResult:
        """
        Delete a single document.

        Raises:
            WriteError: If the delete fails.
        """
        return await self._delete("delete_one", filter)

    async def delete_many(self, filter: Filter) -> DeleteResult:
        """
        Delete every document matching the filter.

        Raises:
            WriteError: If the delete fails.
        """
        return await self._delete("delete_many", filter)

    async def count_documents(self, filter: Filter | None = None) -> int:
        """Count documents matching the filter."""
        try:
            return await self._deadline.run(
                self._driver.count_documents(dict(filter or {})), "count_documents"
            )
        except driver_errors.PyMongoError as e:
            raise QueryError(str(e), getattr(e, "code", None)) from e

    async def drop(self) -> None:
        """Drop the collection."""
        logger.debug("drop %s", self._full_name)
        try:
            await self._deadline.run(self._driver.drop(), "drop")
        except driver_errors.PyMongoError as e:
            raise _write_error(e) from e

    def __repr__(self) -> str:
        return f"Collection({self._full_name!r})"
