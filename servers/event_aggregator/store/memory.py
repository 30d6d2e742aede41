"""Process-local event store with the same uniqueness rules as MongoDB."""

import uuid
from typing import Any, Optional

from ..errors import PersistenceConflict
from ..models import CanonicalEvent
from .base import Filter, matches, merge_fields


class InMemoryEventStore:
    """Dict-backed EventStore for tests and the --memory flag.

    Enforces:
    - (title_key, date_key) unique
    - event_id unique when non-empty
    """

    def __init__(self):
        self.documents: dict[str, dict[str, Any]] = {}
        self.is_open = False

    async def open(self) -> None:
        self.is_open = True

    async def close(self) -> None:
        self.is_open = False

    async def find_one(self, filter: Filter) -> Optional[CanonicalEvent]:
        for document in self.documents.values():
            if matches(document, filter):
                return CanonicalEvent.model_validate(document)
        return None

    async def count(self, filter: Optional[Filter] = None) -> int:
        return sum(1 for document in self.documents.values() if matches(document, filter))

    async def create(self, event: CanonicalEvent) -> CanonicalEvent:
        stored = event.model_copy(update={"id": uuid.uuid4().hex})
        self._check_unique(stored)
        self.documents[stored.id] = stored.model_dump()
        return stored

    async def update(self, event_id: str, fields: dict[str, Any]) -> CanonicalEvent:
        document = self.documents.get(event_id)
        if document is None:
            raise PersistenceConflict(f"No event with id {event_id}")

        updated = merge_fields(CanonicalEvent.model_validate(document), fields)
        self._check_unique(updated)
        self.documents[event_id] = updated.model_dump()
        return updated

    def _check_unique(self, event: CanonicalEvent) -> None:
        for other_id, other in self.documents.items():
            if other_id == event.id:
                continue
            if other["title_key"] == event.title_key and other["date_key"] == event.date_key:
                raise PersistenceConflict(
                    f"Duplicate title/date: {event.title_key} on {event.date_key}",
                    event_title=event.title,
                )
            if event.event_id and other["event_id"] == event.event_id:
                raise PersistenceConflict(
                    f"Duplicate event_id: {event.event_id}",
                    event_title=event.title,
                )
