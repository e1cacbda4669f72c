"""
Database - MongoDB database operations.

Provides a PyMongo-shaped Database interface whose async operations run
under the owning client's deadline.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from pymongo.errors import PyMongoError

from .collection import Collection
from .types import QueryError, StoreError

if TYPE_CHECKING:
    from pymongo.asynchronous.database import AsyncDatabase

    from .client import StoreClient

T = TypeVar("T", bound=dict[str, Any])

__all__ = ["Database"]

logger = logging.getLogger(__name__)


class Database:
    """
    MongoDB database with async operations.

    Collections can be accessed using either attribute access or subscript
    notation.

    Example:
        db = client["quickstart"]

        # Access collections
        podcasts = db.podcasts
        episodes = db["episodes"]

        # Drop database
        await db.drop_database()
    """

    __slots__ = ("_driver", "_client", "_name", "_collections")

    def __init__(
        self,
        driver: AsyncDatabase,
        client: StoreClient,
        name: str,
    ) -> None:
        """
        Initialize a database.

        Args:
            driver: The driver database handle.
            client: Parent StoreClient instance.
            name: Database name.
        """
        self._driver = driver
        self._client = client
        self._name = name
        self._collections: dict[str, Collection[Any]] = {}

    @property
    def name(self) -> str:
        """Get the database name."""
        return self._name

    @property
    def client(self) -> StoreClient:
        """Get the parent client."""
        return self._client

    def __getitem__(self, name: str) -> Collection[Any]:
        """
        Get a collection by name using subscript notation.

        Example:
            podcasts = db["podcasts"]
        """
        if name not in self._collections:
            self._collections[name] = Collection(self._driver[name], self, name)
        return self._collections[name]

    def __getattr__(self, name: str) -> Collection[Any]:
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

        return self[name]

    def get_collection(
        self,
        name: str,
        document_class: type[T] | None = None,
    ) -> Collection[T]:
        """
        Get a typed collection.

        Args:
            name: Collection name.
            document_class: Optional document type for type hints.

        Returns:
            Typed Collection instance.
        """
        return self[name]  # type: ignore

    async def list_collection_names(self) -> list[str]:
        """List all collection names in the database."""
        try:
            result = await self._client.deadline.run(
                self._driver.list_collection_names(), "list_collection_names"
            )
        except PyMongoError as e:
            raise QueryError(str(e)) from e
        return list(result)

    async def drop_collection(self, name: str) -> None:
        """
        Drop a collection.

        Args:
            name: Name of the collection to drop.
        """
        await self[name].drop()
        self._collections.pop(name, None)

    async def drop_database(self) -> None:
        """Drop the database."""
        await self._client.drop_database(self._name)
        self._collections.clear()

    async def command(
        self,
        command: str | dict[str, Any],
        value: Any = 1,
        read_preference: Any = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Run a database command.

        Args:
            command: Command name or command document.
            value: Command value (default 1).
            read_preference: Server the command is sent to (default: the
                database's read preference).
            **kwargs: Additional command options.

        Returns:
            Command result.
        """
        if isinstance(command, str):
            cmd = {command: value, **kwargs}
        else:
            cmd = command

        logger.debug("command %s on %s", next(iter(cmd), None), self._name)
        try:
            result = await self._client.deadline.run(
                self._driver.command(cmd, read_preference=read_preference), "command"
            )
        except PyMongoError as e:
            raise StoreError(str(e), getattr(e, "code", None)) from e
        return dict(result)

    def __repr__(self) -> str:
        return f"Database({self._name!r})"
