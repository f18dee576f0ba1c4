"""Async adapter over a pymongo database.

Every driver call runs in a worker thread so request handlers never block the
event loop. The adapter accepts any pymongo-compatible ``Database`` object,
which lets tests pass an in-memory database instead of a live server.
"""

import asyncio
import logging
from typing import Any

from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument

logger = logging.getLogger(__name__)


def sort_direction(order: str | None, default_desc: bool) -> int:
    if order is None:
        return DESCENDING if default_desc else ASCENDING
    return DESCENDING if order.lower() == "desc" else ASCENDING


class CollectionStore:
    def __init__(self, database, client: MongoClient | None = None):
        self._db = database
        self._client = client

    async def find(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        sort: tuple[str, int] | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> tuple[list[dict], int]:
        """Return one page of documents plus the total count for the same filter."""
        filter = filter or {}

        def _page() -> list[dict]:
            cursor = self._db[collection].find(filter)
            if sort:
                cursor = cursor.sort([sort])
            return list(cursor.skip(skip).limit(limit))

        items = await asyncio.to_thread(_page)
        total = await self.count(collection, filter)
        return items, total

    async def find_one(self, collection: str, filter: dict[str, Any]) -> dict | None:
        return await asyncio.to_thread(self._db[collection].find_one, filter)

    async def count(self, collection: str, filter: dict[str, Any] | None = None) -> int:
        return await asyncio.to_thread(self._db[collection].count_documents, filter or {})

    async def insert_one(self, collection: str, doc: dict[str, Any]) -> Any:
        result = await asyncio.to_thread(self._db[collection].insert_one, doc)
        return result.inserted_id

    async def find_one_and_update(self, collection: str, filter: dict[str, Any], patch: dict[str, Any]) -> dict | None:
        """Apply ``patch`` with ``$set`` and return the document after the update."""
        return await asyncio.to_thread(
            self._db[collection].find_one_and_update,
            filter,
            {"$set": patch},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_one(self, collection: str, filter: dict[str, Any]) -> int:
        result = await asyncio.to_thread(self._db[collection].delete_one, filter)
        return result.deleted_count

    async def aggregate(self, collection: str, pipeline: list[dict]) -> list[dict]:
        return await asyncio.to_thread(lambda: list(self._db[collection].aggregate(pipeline)))

    async def ping(self) -> None:
        await asyncio.to_thread(self._db.command, "ping")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()


def connect_store(uri: str, db_name: str, timeout_ms: int = 5000) -> CollectionStore:
    """Connect and ping. Raises on failure; callers treat that as fatal."""
    client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
    try:
        client[db_name].command("ping")
    except Exception:
        client.close()
        raise
    logger.info("Connected to MongoDB database %s", db_name)
    return CollectionStore(client[db_name], client=client)
