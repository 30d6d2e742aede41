"""
Insert-or-merge of scraped events into the store.

Matching priority (first hit wins):
1. Same non-empty event_id
2. Same ticket URL, else same origin + path ignoring query and case
3. Same lowercased title on the same UTC calendar day

A match is overwritten with the new sighting (an empty incoming image
keeps the stored one); no match is inserted.
"""

import re
from typing import Any, Optional

import structlog

from .errors import PersistenceConflict
from .models import CanonicalEvent, RawEvent, SyncSummary, calendar_day, normalize_title, utc_now
from .normalize import strip_query
from .store import EventStore

log = structlog.get_logger(__name__)


def ticket_prefix_pattern(ticket_url: str) -> str:
    """Regex matching the same page with any (or no) query string."""
    return "^" + re.escape(strip_query(ticket_url)) + r"/?(?:\?|$)"


def merged_update(existing: CanonicalEvent, event: RawEvent) -> dict[str, Any]:
    """Fields to write when `event` is a new sighting of `existing`."""
    fields = event.to_record_fields()
    if not fields["image_url"]:
        fields["image_url"] = existing.image_url
    fields["last_updated"] = utc_now()
    return fields


class ReconciliationEngine:
    """Matches RawEvents against the store and writes them.

    Events are processed one at a time; a failure on one event is counted
    and logged, and the batch continues.
    """

    def __init__(self, store: EventStore):
        self.store = store

    async def find_match(self, event: RawEvent) -> Optional[CanonicalEvent]:
        if event.event_id:
            match = await self.store.find_one({"event_id": event.event_id})
            if match:
                return match

        if event.has_ticket_url:
            match = await self.store.find_one({"ticket_url": event.ticket_url})
            if match:
                return match
            match = await self.store.find_one(
                {"ticket_url": {"$regex": ticket_prefix_pattern(event.ticket_url), "$options": "i"}}
            )
            if match:
                return match

        return await self.store.find_one(
            {"title_key": normalize_title(event.title), "date_key": calendar_day(event.date)}
        )

    async def reconcile_one(self, event: RawEvent) -> str:
        """Write one event. Returns "inserted" or "updated"."""
        existing = await self.find_match(event)
        if existing is None:
            await self.store.create(CanonicalEvent.from_raw(event))
            return "inserted"

        await self.store.update(existing.id, merged_update(existing, event))
        return "updated"

    async def reconcile(self, events: list[RawEvent]) -> SyncSummary:
        """Reconcile a batch and tally the outcome."""
        summary = SyncSummary(total=len(events))

        for event in events:
            try:
                outcome = await self.reconcile_one(event)
            except PersistenceConflict as e:
                summary.errors += 1
                log.warning("event_conflict", title=event.title, source=event.source, reason=e.reason)
                continue
            except Exception as e:
                summary.errors += 1
                log.error("event_save_failed", title=event.title, source=event.source, error=str(e), exc_info=True)
                continue

            if outcome == "inserted":
                summary.inserted += 1
            else:
                summary.updated += 1

        log.info(
            "reconcile_complete",
            inserted=summary.inserted,
            updated=summary.updated,
            errors=summary.errors,
            total=summary.total,
        )
        return summary
