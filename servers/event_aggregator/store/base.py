"""
Store interface shared by the in-memory and MongoDB implementations.

Filters are Mongo-style documents limited to:
- equality: {"field": value}
- regex: {"field": {"$regex": pattern, "$options": "i"}}
- ranges: {"field": {"$gt" | "$gte" | "$lt" | "$lte": value}}
"""

import asyncio
import re
from typing import Any, Awaitable, Callable, Optional, Protocol

import structlog

from ..errors import ConfigurationError
from ..models import CanonicalEvent
from ..resilience import retry_with_backoff

log = structlog.get_logger(__name__)

Filter = dict[str, Any]

RANGE_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$gt": lambda value, bound: value > bound,
    "$gte": lambda value, bound: value >= bound,
    "$lt": lambda value, bound: value < bound,
    "$lte": lambda value, bound: value <= bound,
}


class EventStore(Protocol):
    """Find, count, create and update canonical events."""

    async def open(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def find_one(self, filter: Filter) -> Optional[CanonicalEvent]:
        ...

    async def count(self, filter: Optional[Filter] = None) -> int:
        ...

    async def create(self, event: CanonicalEvent) -> CanonicalEvent:
        ...

    async def update(self, event_id: str, fields: dict[str, Any]) -> CanonicalEvent:
        ...


def matches(document: dict[str, Any], filter: Optional[Filter]) -> bool:
    """Evaluate a filter against a plain document."""
    for field, condition in (filter or {}).items():
        value = document.get(field)
        if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
            if not _matches_operators(value, condition):
                return False
        elif value != condition:
            return False
    return True


def _matches_operators(value: Any, condition: dict[str, Any]) -> bool:
    for operator, operand in condition.items():
        if operator == "$options":
            continue
        if operator == "$regex":
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(operand, value, flags):
                return False
        elif operator in RANGE_OPERATORS:
            if value is None or not RANGE_OPERATORS[operator](value, operand):
                return False
        else:
            raise ValueError(f"Unsupported filter operator: {operator}")
    return True


def merge_fields(existing: CanonicalEvent, fields: dict[str, Any]) -> CanonicalEvent:
    """Apply field updates and re-validate, recomputing the match keys."""
    data = existing.model_dump(exclude={"title_key", "date_key"})
    data.update(fields)
    return CanonicalEvent.model_validate(data)


async def open_store(
    store: EventStore,
    attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> EventStore:
    """
    Open a store, retrying connection failures with backoff.

    Raises:
        ConfigurationError: If the store is still unreachable after all attempts
    """

    @retry_with_backoff(
        max_attempts=attempts,
        base_delay=base_delay,
        retryable_exceptions=(ConfigurationError,),
        sleep=sleep,
    )
    async def _open() -> None:
        await store.open()

    await _open()
    log.info("store_opened", store=type(store).__name__)
    return store
