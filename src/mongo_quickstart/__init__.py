"""
mongo-quickstart - the MongoDB quick-start tour as an async Python program.

Connects to a local MongoDB server, then walks through:
- Inserting podcast and episode documents
- Reading them back (all at once, one at a time, filtered, sorted)
- Updating one, many, and replacing a document
- Deleting documents and dropping the collections and the database

Every store call shares one deadline; the first failure stops the run.

Example usage:
    import asyncio
    from mongo_quickstart import Deadline, StoreClient, run_workflow

    # The whole tour
    report = asyncio.run(run_workflow())

    # Or the client on its own
    async def main():
        async with StoreClient("mongodb://localhost:27017", deadline=Deadline(10)) as client:
            await client.ping()
            podcasts = client["quickstart"]["podcasts"]
            result = await podcasts.insert_one({"title": "The Polyglot Dev Pod"})
            print(await podcasts.find_one({"_id": result.inserted_id}))

    asyncio.run(main())
"""

from __future__ import annotations

__version__ = "0.1.0"

from .client import StoreClient
from .collection import Collection
from .config import WorkflowConfig
from .cursor import Cursor
from .database import Database
from .deadline import Deadline
from .types import (
    ConnectionError,
    DeadlineExceeded,
    DecodeError,
    DeleteResult,
    DuplicateKeyError,
    Episode,
    InsertManyResult,
    InsertOneResult,
    Podcast,
    QueryError,
    StepError,
    StoreError,
    UpdateResult,
    WriteError,
)
from .workflow import Session, WorkflowReport, run_workflow

__all__ = [
    # Main classes
    "StoreClient",
    "Database",
    "Collection",
    "Cursor",
    "Deadline",
    "WorkflowConfig",
    # Workflow
    "Session",
    "WorkflowReport",
    "run_workflow",
    # Documents
    "Podcast",
    "Episode",
    # Result types
    "InsertOneResult",
    "InsertManyResult",
    "UpdateResult",
    "DeleteResult",
    # Exceptions
    "StoreError",
    "ConnectionError",
    "QueryError",
    "DecodeError",
    "WriteError",
    "DuplicateKeyError",
    "DeadlineExceeded",
    "StepError",
    # Version
    "__version__",
]
