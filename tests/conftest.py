"""
Pytest fixtures for mongo-quickstart tests.

Provides an in-memory fake of the async pymongo driver so the client and the
workflow can be tested without a MongoDB server. The fake records every call
and can be told to fail or stall a given operation.
"""

from __future__ import annotations

import asyncio
import copy
from types import SimpleNamespace
from typing import Any

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, OperationFailure

SYSTEM_DATABASES = ["admin", "config", "local"]


class FakeServer:
    """Shared state behind every fake client: data, call log, injected faults."""

    def __init__(self) -> None:
        self.data: dict[str, dict[str, list[dict[str, Any]]]] = {}
        self.calls: list[str] = []
        self.failures: dict[str, BaseException] = {}
        self.delays: dict[str, float] = {}
        self.clients: list[FakeAsyncClient] = []

    def fail(self, operation: str, error: BaseException | None = None) -> None:
        """Make the next calls to ``operation`` raise ``error``."""
        self.failures[operation] = error or OperationFailure(f"{operation} failed")

    async def enter(self, operation: str) -> None:
        self.calls.append(operation)
        delay = self.delays.get(operation)
        if delay:
            await asyncio.sleep(delay)
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def collection_data(self, database: str, collection: str) -> list[dict[str, Any]]:
        return self.data.setdefault(database, {}).setdefault(collection, [])


def _matches(doc: dict[str, Any], filter: dict[str, Any]) -> bool:
    """Check if document matches filter."""
    for key, value in filter.items():
        if key == "$and":
            if not all(_matches(doc, f) for f in value):
                return False
            continue
        if key == "$or":
            if not any(_matches(doc, f) for f in value):
                return False
            continue

        doc_value = doc.get(key)

        if isinstance(value, dict) and value and all(k.startswith("$") for k in value):
            for op, op_value in value.items():
                if op == "$eq" and doc_value != op_value:
                    return False
                if op == "$ne" and doc_value == op_value:
                    return False
                if op == "$gt" and (doc_value is None or doc_value <= op_value):
                    return False
                if op == "$gte" and (doc_value is None or doc_value < op_value):
                    return False
                if op == "$lt" and (doc_value is None or doc_value >= op_value):
                    return False
                if op == "$lte" and (doc_value is None or doc_value > op_value):
                    return False
                if op == "$in" and doc_value not in op_value:
                    return False
                if op == "$exists" and (key in doc) != bool(op_value):
                    return False
        elif key not in doc or doc_value != value:
            return False

    return True


def _apply_update(doc: dict[str, Any], update: dict[str, Any]) -> bool:
    """Apply update operators to document."""
    modified = False
    for op, fields in update.items():
        if op == "$set":
            for key, value in fields.items():
                if doc.get(key) != value or key not in doc:
                    doc[key] = value
                    modified = True
        elif op == "$unset":
            for key in fields:
                if key in doc:
                    del doc[key]
                    modified = True
        elif op == "$inc":
            for key, value in fields.items():
                doc[key] = doc.get(key, 0) + value
                modified = True
        else:
            raise OperationFailure(f"Unknown modifier: {op}")
    return modified


def _project(doc: dict[str, Any], projection: Any) -> dict[str, Any]:
    if not projection:
        return doc
    if not isinstance(projection, dict):
        projection = {field: 1 for field in projection}
    result = {k: v for k, v in doc.items() if projection.get(k)}
    if "_id" in doc and projection.get("_id", 1):
        result["_id"] = doc["_id"]
    return result


class FakeCursor:
    """Async cursor over a snapshot of matching documents."""

    def __init__(self, server: FakeServer, docs: list[dict[str, Any]]) -> None:
        self._server = server
        self._docs = docs
        self._position = 0
        self.closed = False

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        await self._server.enter("cursor.to_list")
        end = len(self._docs) if length is None else self._position + length
        docs = self._docs[self._position:end]
        self._position += len(docs)
        return docs

    async def next(self) -> dict[str, Any]:
        await self._server.enter("cursor.next")
        if self.closed or self._position >= len(self._docs):
            raise StopAsyncIteration
        doc = self._docs[self._position]
        self._position += 1
        return doc

    async def close(self) -> None:
        self._server.calls.append("cursor.close")
        self.closed = True


class FakeCollection:
    """Subset of AsyncCollection used by mongo_quickstart.Collection."""

    def __init__(self, server: FakeServer, database: str, name: str) -> None:
        self._server = server
        self._database = database
        self.name = name
        self.cursors: list[FakeCursor] = []

    @property
    def _data(self) -> list[dict[str, Any]]:
        return self._server.collection_data(self._database, self.name)

    def _insert(self, document: dict[str, Any]) -> Any:
        document.setdefault("_id", ObjectId())
        if any(doc["_id"] == document["_id"] for doc in self._data):
            raise DuplicateKeyError("E11000 duplicate key error", 11000)
        self._data.append(copy.deepcopy(document))
        return document["_id"]

    async def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        await self._server.enter("insert_one")
        return SimpleNamespace(inserted_id=self._insert(document), acknowledged=True)

    async def insert_many(
        self, documents: list[dict[str, Any]], ordered: bool = True
    ) -> SimpleNamespace:
        await self._server.enter("insert_many")
        ids = [self._insert(doc) for doc in documents]
        return SimpleNamespace(inserted_ids=ids, acknowledged=True)

    async def find_one(
        self, filter: dict[str, Any] | None = None, projection: Any = None
    ) -> dict[str, Any] | None:
        await self._server.enter("find_one")
        for doc in self._server.data.get(self._database, {}).get(self.name, []):
            if _matches(doc, filter or {}):
                return _project(copy.deepcopy(doc), projection)
        return None

    def find(
        self,
        filter: dict[str, Any] | None = None,
        projection: Any = None,
        sort: list[tuple[str, int]] | None = None,
    ) -> FakeCursor:
        self._server.calls.append("find")
        existing = self._server.data.get(self._database, {}).get(self.name, [])
        docs = [_project(copy.deepcopy(d), projection) for d in existing if _matches(d, filter or {})]
        for key, direction in reversed(sort or []):
            docs.sort(key=lambda d: d.get(key), reverse=direction == -1)
        cursor = FakeCursor(self._server, docs)
        self.cursors.append(cursor)
        return cursor

    async def _update(self, operation, filter, update, upsert, many, replace):
        await self._server.enter(operation)
        matched = modified = 0
        for i, doc in enumerate(self._data):
            if not _matches(doc, filter):
                continue
            matched += 1
            if replace:
                new = dict(copy.deepcopy(update))
                new["_id"] = doc["_id"]
                if new != doc:
                    self._data[i] = new
                    modified += 1
            elif _apply_update(doc, update):
                modified += 1
            if not many:
                break
        upserted_id = None
        if matched == 0 and upsert:
            new = dict(filter) if not replace else {}
            if replace:
                new.update(copy.deepcopy(update))
            else:
                _apply_update(new, update)
            upserted_id = self._insert(new)
        return SimpleNamespace(
            matched_count=matched,
            modified_count=modified,
            upserted_id=upserted_id,
            acknowledged=True,
        )

    async def update_one(self, filter, update, upsert=False):
        return await self._update("update_one", filter, update, upsert, False, False)

    async def update_many(self, filter, update, upsert=False):
        return await self._update("update_many", filter, update, upsert, True, False)

    async def replace_one(self, filter, replacement, upsert=False):
        return await self._update("replace_one", filter, replacement, upsert, False, True)

    async def _delete(self, operation: str, filter: dict[str, Any], many: bool) -> SimpleNamespace:
        await self._server.enter(operation)
        kept, deleted = [], 0
        for doc in self._data:
            if _matches(doc, filter) and (many or deleted == 0):
                deleted += 1
            else:
                kept.append(doc)
        self._server.data[self._database][self.name] = kept
        return SimpleNamespace(deleted_count=deleted, acknowledged=True)

    async def delete_one(self, filter):
        return await self._delete("delete_one", filter, False)

    async def delete_many(self, filter):
        return await self._delete("delete_many", filter, True)

    async def count_documents(self, filter: dict[str, Any]) -> int:
        await self._server.enter("count_documents")
        existing = self._server.data.get(self._database, {}).get(self.name, [])
        return sum(1 for doc in existing if _matches(doc, filter))

    async def drop(self) -> None:
        await self._server.enter("drop")
        collections = self._server.data.get(self._database, {})
        collections.pop(self.name, None)
        if not collections:
            self._server.data.pop(self._database, None)


class FakeDatabase:
    """Subset of AsyncDatabase used by mongo_quickstart.Database."""

    def __init__(self, server: FakeServer, name: str) -> None:
        self._server = server
        self.name = name
        self._collections: dict[str, FakeCollection] = {}
        self.read_preferences: list[Any] = []

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(self._server, self.name, name)
        return self._collections[name]

    async def list_collection_names(self) -> list[str]:
        await self._server.enter("list_collection_names")
        return list(self._server.data.get(self.name, {}))

    async def command(self, command: Any, value: Any = 1, read_preference: Any = None, **kwargs):
        name = command if isinstance(command, str) else next(iter(command))
        self.read_preferences.append(read_preference)
        await self._server.enter(name)
        return {"ok": 1.0}


class FakeAsyncClient:
    """Stand-in for pymongo.AsyncMongoClient."""

    def __init__(self, server: FakeServer, uri: str, **options: Any) -> None:
        self._server = server
        self.uri = uri
        self.options = options
        self.closed = False
        self._databases: dict[str, FakeDatabase] = {}
        server.clients.append(self)

    def __getitem__(self, name: str) -> FakeDatabase:
        if name not in self._databases:
            self._databases[name] = FakeDatabase(self._server, name)
        return self._databases[name]

    @property
    def admin(self) -> FakeDatabase:
        return self["admin"]

    async def aconnect(self) -> None:
        await self._server.enter("aconnect")

    async def list_database_names(self) -> list[str]:
        await self._server.enter("list_database_names")
        return SYSTEM_DATABASES + sorted(self._server.data)

    async def drop_database(self, name: str) -> None:
        await self._server.enter("drop_database")
        self._server.data.pop(name, None)

    async def close(self) -> None:
        self._server.calls.append("close")
        self.closed = True


@pytest.fixture
def server() -> FakeServer:
    """Create an empty fake server."""
    return FakeServer()


@pytest.fixture
def fake_driver(server: FakeServer, monkeypatch: pytest.MonkeyPatch):
    """Make StoreClient build FakeAsyncClient instances instead of real ones."""

    def factory(uri: str, **options: Any) -> FakeAsyncClient:
        return FakeAsyncClient(server, uri, **options)

    monkeypatch.setattr("mongo_quickstart.client.AsyncMongoClient", factory)
    return factory


@pytest.fixture
async def client(fake_driver):
    """Create a connected StoreClient."""
    from mongo_quickstart import Deadline, StoreClient

    client = StoreClient("mongodb://test:27017")
    await client.connect(Deadline(5.0))
    yield client
    await client.close()


@pytest.fixture
async def database(client):
    """Create a database."""
    return client["testdb"]


@pytest.fixture
async def collection(database):
    """Create a collection."""
    return database["testcollection"]


@pytest.fixture
def config():
    """Workflow configuration pointing at the fake server."""
    from mongo_quickstart import WorkflowConfig

    return WorkflowConfig(uri="mongodb://test:27017", database="quickstart_test", timeout=5.0)
