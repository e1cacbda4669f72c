"""
StoreClient - deadline-bound session on a MongoDB server.

Provides a PyMongo-shaped client interface over ``pymongo.AsyncMongoClient``
where every call shares one deadline and driver errors are translated into
the ``mongo_quickstart.types`` hierarchy.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Callable

from pymongo import AsyncMongoClient, ReadPreference
from pymongo.errors import PyMongoError

from .config import DEFAULT_URI
from .database import Database
from .deadline import Deadline
from .types import ConnectionError, DeadlineExceeded, QueryError, StoreError, WriteError

__all__ = ["StoreClient"]

logger = logging.getLogger(__name__)


class StoreClient:
    """
    Client session on a document store.

    Databases can be accessed using either attribute access or subscript
    notation once the client is connected.

    Example:
        deadline = Deadline(10.0)
        async with StoreClient("mongodb://localhost:27017", deadline=deadline) as client:
            await client.ping()
            names = await client.list_database_names()
            db = client["quickstart"]
    """

    __slots__ = ("_uri", "_factory", "_driver", "_deadline", "_databases", "_options")

    def __init__(
        self,
        uri: str | None = None,
        *,
        deadline: Deadline | None = None,
        client_factory: Callable[..., Any] | None = None,
        **options: Any,
    ) -> None:
        """
        Initialize the client.

        Args:
            uri: Connection URI. Defaults to the local server on the default port.
            deadline: Deadline used by ``async with``; ``connect`` may pass its own.
            client_factory: Callable building the driver client from a URI
                (default: pymongo.AsyncMongoClient).
            **options: Additional driver options.
                - server_selection_timeout: Seconds to wait for a server
                  (default: the remaining deadline).
        """
        self._uri = uri or DEFAULT_URI
        self._factory = client_factory
        self._driver: Any = None
        self._deadline = deadline
        self._databases: dict[str, Database] = {}
        self._options = options

    @property
    def uri(self) -> str:
        """Get the connection URI."""
        return self._uri

    @property
    def is_connected(self) -> bool:
        """Check if the client is connected."""
        return self._driver is not None

    @property
    def deadline(self) -> Deadline:
        """Get the deadline shared by every call of this session."""
        if self._deadline is None:
            raise StoreError("Client has no deadline. Call connect() first.")
        return self._deadline

    def _driver_options(self) -> dict[str, Any]:
        options = dict(self._options)
        selection = options.pop("server_selection_timeout", None)
        if selection is None and self._deadline is not None:
            selection = self._deadline.remaining()
        if selection is not None:
            options["serverSelectionTimeoutMS"] = max(1, int(selection * 1000))
        return options

    async def connect(self, deadline: Deadline | None = None) -> StoreClient:
        """
        Connect to the store under a deadline.

        Args:
            deadline: Budget shared by the connection and every later call.

        Returns:
            Self for chaining.

        Raises:
            ConnectionError: If the connection fails.
            DeadlineExceeded: If the deadline runs out while connecting.
        """
        if self._driver is not None:
            return self
        if deadline is not None:
            self._deadline = deadline
        if self._deadline is None:
            self._deadline = Deadline()

        logger.info("Connecting to %s", self._uri)
        try:
            factory = self._factory or AsyncMongoClient
            driver = factory(self._uri, **self._driver_options())
        except (PyMongoError, ValueError) as e:
            raise ConnectionError(f"Failed to connect to {self._uri}: {e}") from e

        try:
            await self._deadline.run(driver.aconnect(), "connect")
        except DeadlineExceeded:
            await driver.close()
            raise
        except PyMongoError as e:
            await driver.close()
            raise ConnectionError(f"Failed to connect to {self._uri}: {e}") from e

        self._driver = driver
        return self

    async def close(self) -> None:
        """Close the connection."""
        if self._driver is not None:
            logger.info("Disconnecting from %s", self._uri)
            driver, self._driver = self._driver, None
            self._databases.clear()
            await driver.close()

    def _ensure_connected(self) -> None:
        """Ensure the client is connected."""
        if self._driver is None:
            raise StoreError("Client is not connected. Call connect() first.")

    def __getitem__(self, name: str) -> Database:
        """
        Get a database by name using subscript notation.

        Example:
            db = client["quickstart"]
        """
        self._ensure_connected()

        if name not in self._databases:
            self._databases[name] = Database(self._driver[name], self, name)
        return self._databases[name]

    def __getattr__(self, name: str) -> Database:
        """
        Get a database by name using attribute access.

        Example:
            db = client.quickstart
        """
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

        return self[name]

    def get_database(self, name: str) -> Database:
        """Get a database by name."""
        return self[name]

    async def ping(self) -> dict[str, Any]:
        """
        Check that the primary is reachable.

        Raises:
            ConnectionError: If the ping fails.
        """
        self._ensure_connected()

        try:
            return await self["admin"].command("ping", read_preference=ReadPreference.PRIMARY)
        except DeadlineExceeded:
            raise
        except StoreError as e:
            raise ConnectionError(f"Ping failed: {e}", e.code) from e

    async def list_database_names(self) -> list[str]:
        """List all database names."""
        self._ensure_connected()

        try:
            result = await self.deadline.run(
                self._driver.list_database_names(), "list_database_names"
            )
        except PyMongoError as e:
            raise QueryError(str(e)) from e
        return list(result)

    async def drop_database(self, name: str) -> None:
        """
        Drop a database.

        Args:
            name: Name of the database to drop.
        """
        self._ensure_connected()

        logger.debug("drop_database %s", name)
        try:
            await self.deadline.run(self._driver.drop_database(name), "drop_database")
        except PyMongoError as e:
            raise WriteError(str(e)) from e
        self._databases.pop(name, None)

    async def __aenter__(self) -> StoreClient:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        status = "connected" if self.is_connected else "disconnected"
        return f"StoreClient({self._uri!r}, {status})"
