"""Persistent store for canonical events."""

from .base import EventStore, matches, merge_fields, open_store
from .memory import InMemoryEventStore
from .mongo import MongoEventStore

__all__ = [
    "EventStore",
    "InMemoryEventStore",
    "MongoEventStore",
    "matches",
    "merge_fields",
    "open_store",
]
