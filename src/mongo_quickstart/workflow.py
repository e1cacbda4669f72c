"""
Quick-start workflow: connect, create, read, update and delete documents.

Each step is a coroutine that receives the session it works on and the
report it fills in. ``run_workflow`` runs them in order and stops at the
first failure, re-raising it as a ``StepError`` naming the step.

Example:
    import asyncio
    from mongo_quickstart import run_workflow

    report = asyncio.run(run_workflow())
    print(report.podcast_id)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from bson import ObjectId

from .client import StoreClient
from .collection import Collection
from .config import WorkflowConfig
from .database import Database
from .deadline import Deadline
from .types import Episode, Podcast, QueryError, StepError, StoreError

__all__ = [
    "Session",
    "WorkflowReport",
    "connect",
    "list_databases",
    "insert_documents",
    "read_documents",
    "update_documents",
    "delete_documents",
    "run_workflow",
]

logger = logging.getLogger(__name__)

SHOW_TITLE = "The Polyglot Dev Pod"
INITIAL_AUTHOR = "Nic Raboy"
SINGLE_UPDATE_AUTHOR = "Nicky Raboy"
BULK_UPDATE_AUTHOR = "Nicolas Raboy"
REPLACEMENT = Podcast(title="The Nic Raboy Show", author="Nico Raboy")
TAGS = ["development", "programming", "coding"]


@dataclass
class Session:
    """The database and collections one run works on."""

    database: Database
    podcasts: Collection[Any]
    episodes: Collection[Any]

    @classmethod
    def open(cls, client: StoreClient, config: WorkflowConfig) -> Session:
        database = client[config.database]
        return cls(
            database=database,
            podcasts=database[config.podcasts],
            episodes=database[config.episodes],
        )


@dataclass
class WorkflowReport:
    """What each step of a run observed."""

    databases: list[str] = field(default_factory=list)
    podcast_id: ObjectId | None = None
    episode_ids: list[ObjectId] = field(default_factory=list)
    all_episodes: list[Episode] = field(default_factory=list)
    iterated_episodes: list[Episode] = field(default_factory=list)
    single_podcast: Podcast | None = None
    filtered_episodes: list[Episode] = field(default_factory=list)
    sorted_episodes: list[Episode] = field(default_factory=list)
    author_before: str | None = None
    author_after: str | None = None
    updated_one: int = 0
    updated_many: int = 0
    replaced: int = 0
    replacement: Podcast | None = None
    deleted_podcasts: int = 0
    deleted_episodes: int = 0
    dropped: list[str] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)


async def connect(config: WorkflowConfig, deadline: Deadline) -> StoreClient:
    """
    Open a client and ping the primary.

    The returned client is connected; the caller owns closing it. When the
    ping fails the client is closed before raising.
    """
    client = StoreClient(config.uri)
    await client.connect(deadline)
    try:
        logger.info("Ping the database")
        await client.ping()
    except StoreError:
        await client.close()
        raise
    return client


async def list_databases(client: StoreClient, report: WorkflowReport) -> None:
    logger.info("List the databases")
    report.databases = await client.list_database_names()
    logger.info("Available databases: %s", report.databases)


async def insert_documents(session: Session, report: WorkflowReport) -> ObjectId:
    """
    Insert two podcasts and two episodes of the second podcast.

    Returns:
        The _id assigned to the second podcast.
    """
    await session.podcasts.insert_one(
        Podcast(title=SHOW_TITLE, author=INITIAL_AUTHOR).to_document()
    )

    result = await session.podcasts.insert_one(
        Podcast(title=SHOW_TITLE, author=INITIAL_AUTHOR, tags=list(TAGS)).to_document()
    )
    podcast_id = result.inserted_id
    report.podcast_id = podcast_id

    episodes = [
        Episode(podcast=podcast_id, title="GraphQL...", descriptions="Foo bar", duration=25),
        Episode(podcast=podcast_id, title="Prog Web...", descriptions="Alpha beta", duration=32),
    ]
    inserted = await session.episodes.insert_many([e.to_document() for e in episodes])
    report.episode_ids = inserted.inserted_ids
    logger.info("Inserted %d docs into episode collection!", len(inserted.inserted_ids))
    return podcast_id


async def read_documents(session: Session, report: WorkflowReport) -> None:
    # Whole result set in memory; fine for two episodes, not for large collections
    async with session.episodes.find() as cursor:
        docs = await cursor.to_list()
    report.all_episodes = [Episode.from_document(doc) for doc in docs]
    logger.info("Episodes read: %s", report.all_episodes)

    async with session.episodes.find() as cursor:
        i = 0
        async for doc in cursor:
            i += 1
            episode = Episode.from_document(doc)
            report.iterated_episodes.append(episode)
            logger.info("Doc #%d: %s", i, episode)

    doc = await session.podcasts.find_one({})
    if doc is None:
        raise QueryError(f"no document in {session.podcasts.full_name}")
    report.single_podcast = Podcast.from_document(doc)
    logger.info("Read single podcast: %s", report.single_podcast)

    async with session.episodes.find({"duration": 25}) as cursor:
        report.filtered_episodes = [Episode.from_document(d) for d in await cursor.to_list()]
    logger.info("Filtered episodes: %s", report.filtered_episodes)

    async with session.episodes.find(
        {"duration": {"$gt": 20}}, sort=[("duration", -1)]
    ) as cursor:
        report.sorted_episodes = [Episode.from_document(d) for d in await cursor.to_list()]
    for i, episode in enumerate(report.sorted_episodes, start=1):
        logger.info("Sorted Doc #%d: %s", i, episode)


async def _read_podcast(session: Session, query: dict[str, Any]) -> Podcast:
    doc = await session.podcasts.find_one(query)
    if doc is None:
        raise QueryError(f"no podcast matching {query} in {session.podcasts.full_name}")
    return Podcast.from_document(doc)


async def update_documents(session: Session, podcast_id: ObjectId, report: WorkflowReport) -> None:
    """Update one podcast by id, then all by title, then replace one by author."""
    report.author_before = (await _read_podcast(session, {"_id": podcast_id})).author
    logger.info("Author Before Update: %s", report.author_before)
    result = await session.podcasts.update_one(
        {"_id": podcast_id},
        {"$set": {"author": SINGLE_UPDATE_AUTHOR}},
    )
    report.updated_one = result.modified_count
    logger.info("Modified %d documents!", result.modified_count)
    report.author_after = (await _read_podcast(session, {"_id": podcast_id})).author
    logger.info("Author After Update: %s", report.author_after)

    result = await session.podcasts.update_many(
        {"title": SHOW_TITLE},
        {"$set": {"author": BULK_UPDATE_AUTHOR}},
    )
    report.updated_many = result.modified_count
    logger.info("Updated %d Documents!", result.modified_count)

    result = await session.podcasts.replace_one(
        {"author": BULK_UPDATE_AUTHOR},
        REPLACEMENT.to_document(),
    )
    report.replaced = result.modified_count
    logger.info("Replaced %d Documents!", result.modified_count)
    report.replacement = await _read_podcast(
        session, {"title": REPLACEMENT.title, "author": REPLACEMENT.author}
    )
    logger.info("Replacement document: %s", report.replacement)


async def delete_documents(session: Session, podcast_id: ObjectId, report: WorkflowReport) -> None:
    """Delete documents, then drop both collections and the database."""
    result = await session.podcasts.delete_one({"_id": podcast_id})
    report.deleted_podcasts = result.deleted_count
    logger.info("Number of deleted docs: %d", result.deleted_count)

    result = await session.episodes.delete_many({"duration": 25})
    report.deleted_episodes = result.deleted_count
    logger.info("Number of deleted docs: %d", result.deleted_count)

    for collection in (session.podcasts, session.episodes):
        await collection.drop()
        report.dropped.append(collection.full_name)
        logger.info("Dropped %s collection", collection.name)

    await session.database.drop_database()
    report.dropped.append(session.database.name)
    logger.info("Dropped %s database", session.database.name)


async def _step(name: str, report: WorkflowReport, awaitable: Any) -> Any:
    try:
        result = await awaitable
    except StoreError as e:
        logger.error("Step %r failed: %s", name, e)
        raise StepError(name, e) from e
    report.completed.append(name)
    return result


async def run_workflow(config: WorkflowConfig | None = None) -> WorkflowReport:
    """
    Run the whole quick-start against the configured store.

    Returns:
        The report of everything the run observed.

    Raises:
        StepError: On the first failing step; nothing after it runs.
    """
    config = config or WorkflowConfig()
    report = WorkflowReport()
    logger.info("Create a deadline of %ss", config.timeout)
    deadline = Deadline(config.timeout)

    client = await _step("connect", report, connect(config, deadline))
    async with client:
        await _step("list_databases", report, list_databases(client, report))
        session = Session.open(client, config)
        podcast_id = await _step("insert", report, insert_documents(session, report))
        await _step("read", report, read_documents(session, report))
        await _step("update", report, update_documents(session, podcast_id, report))
        await _step("delete", report, delete_documents(session, podcast_id, report))
    return report
