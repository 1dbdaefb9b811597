"""Document store access (MongoDB via Motor).

Case, event, activity and user documents are keyed by a string id stored in
``_id``. Services talk to the ``DocumentStore`` protocol so that the store can
be swapped in tests; ``MotorDocumentStore`` is the production implementation.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from caseops.core.config import settings

logger = logging.getLogger(__name__)


class DocumentStoreError(Exception):
    """A read or write against the document store failed."""

    pass


class DocumentNotFoundError(DocumentStoreError):
    """Update targeted a document that does not exist."""

    pass


class DocumentStore(Protocol):
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None: ...

    async def add(self, collection: str, data: dict[str, Any]) -> str: ...

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> bool: ...

    async def list(
        self,
        collection: str,
        *,
        where: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]: ...


def new_document_id() -> str:
    """Auto-generated document key for ``add``."""
    return uuid.uuid4().hex


def _from_mongo(doc: dict[str, Any]) -> dict[str, Any]:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return data


def _to_mongo(doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
    body = {k: v for k, v in data.items() if k not in ("id", "_id")}
    body["_id"] = doc_id
    return body


class MotorDocumentStore:
    """DocumentStore backed by an ``AsyncIOMotorDatabase``."""

    def __init__(self, database: Any):
        self._db = database

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:
            doc = await self._db[collection].find_one({"_id": doc_id})
        except PyMongoError as e:
            raise DocumentStoreError(f"Failed to read {collection}/{doc_id}") from e
        return _from_mongo(doc) if doc else None

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        try:
            await self._db[collection].replace_one(
                {"_id": doc_id}, _to_mongo(doc_id, data), upsert=True
            )
        except PyMongoError as e:
            raise DocumentStoreError(f"Failed to write {collection}/{doc_id}") from e

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        try:
            await self._db[collection].insert_one(_to_mongo(doc_id, data))
        except PyMongoError as e:
            raise DocumentStoreError(f"Failed to insert into {collection}") from e
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        body = {k: v for k, v in fields.items() if k not in ("id", "_id")}
        try:
            result = await self._db[collection].update_one({"_id": doc_id}, {"$set": body})
        except PyMongoError as e:
            raise DocumentStoreError(f"Failed to update {collection}/{doc_id}") from e
        if result.matched_count == 0:
            raise DocumentNotFoundError(f"{collection}/{doc_id} does not exist")

    async def delete(self, collection: str, doc_id: str) -> bool:
        try:
            result = await self._db[collection].delete_one({"_id": doc_id})
        except PyMongoError as e:
            raise DocumentStoreError(f"Failed to delete {collection}/{doc_id}") from e
        return result.deleted_count > 0

    async def list(
        self,
        collection: str,
        *,
        where: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        cursor = self._db[collection].find(where or {})
        if order_by:
            cursor = cursor.sort(order_by, DESCENDING if descending else ASCENDING)
        try:
            return [_from_mongo(doc) async for doc in cursor]
        except PyMongoError as e:
            raise DocumentStoreError(f"Failed to list {collection}") from e


# --- Connection lifecycle ---
_motor_client: Any | None = None
_document_store: MotorDocumentStore | None = None


async def connect_document_store() -> MotorDocumentStore:
    """Connect Motor and verify the server is reachable."""
    global _motor_client, _document_store
    if _document_store is not None:
        return _document_store

    from motor.motor_asyncio import AsyncIOMotorClient

    client = AsyncIOMotorClient(
        settings.MONGODB_URI,
        serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
        tz_aware=True,
    )
    try:
        await client.admin.command("ping")
    except PyMongoError:
        logger.exception("Could not connect to document store")
        client.close()
        raise

    _motor_client = client
    _document_store = MotorDocumentStore(client[settings.MONGODB_DB])
    logger.info("Connected to document store db=%s", settings.MONGODB_DB)
    return _document_store


def get_document_store() -> MotorDocumentStore:
    if _document_store is None:
        raise RuntimeError("Document store is not connected. Check application lifespan.")
    return _document_store


def close_document_store() -> None:
    global _motor_client, _document_store
    if _motor_client is not None:
        _motor_client.close()
        logger.info("Document store connection closed")
    _motor_client = None
    _document_store = None
