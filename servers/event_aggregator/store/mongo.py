"""
MongoDB-backed event store.

Collection layout (one document per canonical event):
- Indexed: date, ticket_url
- Unique: (title_key, date_key)
- Unique when non-empty: event_id
"""

from typing import Any, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, AsyncMongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..config import DEFAULT_MONGODB_DATABASE, mask_uri
from ..errors import ConfigurationError, PersistenceConflict
from ..models import CanonicalEvent
from .base import Filter, merge_fields

log = structlog.get_logger(__name__)

COLLECTION_NAME = "events"
SERVER_SELECTION_TIMEOUT_MS = 5000


class MongoEventStore:
    """EventStore over an AsyncMongoClient owned by this object."""

    def __init__(
        self,
        uri: str,
        database: str = DEFAULT_MONGODB_DATABASE,
        collection: str = COLLECTION_NAME,
    ):
        self.uri = uri
        self.database_name = database
        self.collection_name = collection
        self.client: Optional[AsyncMongoClient] = None
        self.collection = None

    async def open(self) -> None:
        """Connect, ping and ensure indexes.

        Raises:
            ConfigurationError: If the server is unreachable or rejects setup
        """
        log.info("store_connecting", uri=mask_uri(self.uri), database=self.database_name)
        client = AsyncMongoClient(
            self.uri,
            tz_aware=True,
            serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS,
        )
        try:
            await client.admin.command("ping")
            collection = client[self.database_name][self.collection_name]
            await self._ensure_indexes(collection)
        except PyMongoError as e:
            await client.close()
            raise ConfigurationError(f"MongoDB unreachable at {mask_uri(self.uri)}: {e}") from e

        self.client = client
        self.collection = collection

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            log.info("store_closed", database=self.database_name)
        self.client = None
        self.collection = None

    async def find_one(self, filter: Filter) -> Optional[CanonicalEvent]:
        document = await self._events().find_one(filter)
        return _from_document(document) if document else None

    async def count(self, filter: Optional[Filter] = None) -> int:
        return await self._events().count_documents(filter or {})

    async def create(self, event: CanonicalEvent) -> CanonicalEvent:
        document = _to_document(event)
        try:
            result = await self._events().insert_one(document)
        except DuplicateKeyError as e:
            raise PersistenceConflict(f"Duplicate key on insert: {e.details}", event_title=event.title) from e
        return event.model_copy(update={"id": str(result.inserted_id)})

    async def update(self, event_id: str, fields: dict[str, Any]) -> CanonicalEvent:
        object_id = _object_id(event_id)
        existing = await self._events().find_one({"_id": object_id})
        if existing is None:
            raise PersistenceConflict(f"No event with id {event_id}")

        merged = merge_fields(_from_document(existing), fields)
        try:
            document = await self._events().find_one_and_update(
                {"_id": object_id},
                {"$set": _to_document(merged)},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as e:
            raise PersistenceConflict(f"Duplicate key on update: {e.details}", event_title=merged.title) from e
        if document is None:
            raise PersistenceConflict(f"Event {event_id} disappeared during update")
        return _from_document(document)

    def _events(self):
        if self.collection is None:
            raise ConfigurationError("MongoEventStore used before open()")
        return self.collection

    @staticmethod
    async def _ensure_indexes(collection) -> None:
        await collection.create_index([("date", ASCENDING)], name="date")
        await collection.create_index(
            [("title_key", ASCENDING), ("date_key", ASCENDING)],
            unique=True,
            name="title_date_unique",
        )
        await collection.create_index(
            [("event_id", ASCENDING)],
            unique=True,
            partialFilterExpression={"event_id": {"$gt": ""}},
            name="event_id_unique",
        )
        await collection.create_index([("ticket_url", ASCENDING)], name="ticket_url")


def _to_document(event: CanonicalEvent) -> dict[str, Any]:
    return event.model_dump(exclude={"id"})


def _from_document(document: dict[str, Any]) -> CanonicalEvent:
    data = dict(document)
    data["id"] = str(data.pop("_id"))
    return CanonicalEvent.model_validate(data)


def _object_id(event_id: str) -> ObjectId:
    try:
        return ObjectId(event_id)
    except (InvalidId, TypeError) as e:
        raise PersistenceConflict(f"Invalid event id: {event_id}") from e
