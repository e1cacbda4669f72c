"""
Cursor - Async cursor for iterating over query results.

Wraps a driver cursor so that every batch fetch runs under the session
deadline and the server-side cursor is released deterministically.
"""

from __future__ import annotations

from types import TracebackType
from typing import TYPE_CHECKING, Any, AsyncIterator, Generic, TypeVar

from pymongo.errors import PyMongoError

from .types import QueryError

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection

    from .deadline import Deadline
    from .types import Filter, Projection, Sort

T = TypeVar("T", bound=dict[str, Any])

__all__ = ["Cursor"]


class Cursor(Generic[T]):
    """
    Async cursor for iterating over query results.

    The query is sent on first use. Sorting can be chained before that.
    Use the cursor as an async context manager to make sure it is closed
    even when iteration stops early.

    Example:
        async with collection.find({"duration": 25}) as cursor:
            async for doc in cursor:
                print(doc)

        # With chaining
        docs = await collection.find({}).sort("duration", -1).to_list()
    """

    __slots__ = (
        "_collection",
        "_deadline",
        "_namespace",
        "_filter",
        "_projection",
        "_sort",
        "_cursor",
        "_exhausted",
    )

    def __init__(
        self,
        collection: AsyncCollection,
        deadline: Deadline,
        namespace: str,
        filter: Filter | None = None,
        projection: Projection = None,
    ) -> None:
        """
        Initialize a cursor.

        Args:
            collection: The driver collection to query.
            deadline: Deadline bounding every fetch.
            namespace: "database.collection", used in error messages.
            filter: Query filter.
            projection: Fields to include/exclude.
        """
        self._collection = collection
        self._deadline = deadline
        self._namespace = namespace
        self._filter: dict[str, Any] = dict(filter or {})
        self._projection: Projection = projection
        self._sort: Sort = None
        self._cursor: Any = None
        self._exhausted = False

    def sort(self, key_or_list: str | list[tuple[str, int]], direction: int = 1) -> Cursor[T]:
        """
        Sort the results.

        Args:
            key_or_list: Field name or list of (field, direction) tuples.
            direction: Sort direction (1 for ascending, -1 for descending).
                       Only used if key_or_list is a string.

        Returns:
            Self for chaining.

        Raises:
            QueryError: If the query has already been sent.
        """
        if self._cursor is not None:
            raise QueryError("cannot sort a cursor that has already been used")
        if isinstance(key_or_list, str):
            self._sort = [(key_or_list, direction)]
        else:
            self._sort = list(key_or_list)
        return self

    def _open(self) -> Any:
        if self._cursor is None:
            kwargs: dict[str, Any] = {}
            if self._sort:
                kwargs["sort"] = self._sort
            self._cursor = self._collection.find(self._filter, self._projection, **kwargs)
        return self._cursor

    async def to_list(self, length: int | None = None) -> list[T]:
        """
        Read the remaining results into a list.

        Every matching document is held in memory at once, which is unsafe
        for large result sets; iterate instead.

        Args:
            length: Maximum number of documents to return.
                    If None, returns all documents.

        Raises:
            QueryError: If the query fails.
        """
        cursor = self._open()
        try:
            docs = await self._deadline.run(cursor.to_list(length), "find")
        except PyMongoError as e:
            raise QueryError(f"find on {self._namespace} failed: {e}") from e
        if length is None:
            self._exhausted = True
        return docs

    def __aiter__(self) -> AsyncIterator[T]:
        """Return async iterator."""
        return self

    async def __anext__(self) -> T:
        """
        Get the next document.

        Raises:
            StopAsyncIteration: When all documents have been iterated.
            QueryError: If fetching the next batch fails.
        """
        if self._exhausted:
            raise StopAsyncIteration
        cursor = self._open()
        try:
            return await self._deadline.run(cursor.next(), "find")
        except StopAsyncIteration:
            self._exhausted = True
            raise
        except PyMongoError as e:
            raise QueryError(f"find on {self._namespace} failed: {e}") from e

    async def next(self) -> T:
        """Get the next document."""
        return await self.__anext__()

    @property
    def alive(self) -> bool:
        """Check if the cursor can still yield documents."""
        return not self._exhausted

    async def close(self) -> None:
        """Release the server-side cursor."""
        self._exhausted = True
        if self._cursor is not None:
            cursor, self._cursor = self._cursor, None
            await cursor.close()

    async def __aenter__(self) -> Cursor[T]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
