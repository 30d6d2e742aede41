"""
Pydantic models for event data structures.

These models define the core data types used throughout the service:
- RawEvent: One sighting of an event on a source, before reconciliation
- CanonicalEvent: The persisted, deduplicated event record
- SyncSummary: Tally returned by every pipeline run
- FetchStats: Per-adapter outcome of one orchestrated scrape
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from .config import DEFAULT_LOCATION, PLACEHOLDER_TITLE, UNKNOWN_TICKET_URL


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_title(title: str) -> str:
    """Case-insensitive identity of a title."""
    return " ".join(title.split()).lower()


def calendar_day(when: datetime) -> str:
    """UTC calendar day of an instant, as YYYY-MM-DD."""
    return as_utc(when).strftime("%Y-%m-%d")


def is_placeholder_title(title: Optional[str]) -> bool:
    if not title:
        return True
    cleaned = title.strip()
    return len(cleaned) < 3 or cleaned.lower() == PLACEHOLDER_TITLE.lower()


class EventFields(BaseModel):
    """Fields shared by raw sightings and stored events."""

    # Core event info
    title: str
    date: datetime
    location: str = DEFAULT_LOCATION
    description: str = ""

    # Links
    image_url: str = ""
    ticket_url: str = UNKNOWN_TICKET_URL

    # Source tracking
    source: str = "Unknown"
    event_id: str = ""  # Source's own identifier, when it exposes one

    # Listing metadata (Eventbrite cards carry these)
    price: str = ""
    paid_status: str = ""
    urgency_signal: str = ""
    is_promoted: bool = False
    has_promo_code: bool = False
    has_bogo_label: bool = False

    @field_validator("title")
    @classmethod
    def _title_not_placeholder(cls, value: str) -> str:
        value = " ".join(value.split())
        if is_placeholder_title(value):
            raise ValueError(f"placeholder title rejected: {value!r}")
        return value

    @field_validator("date")
    @classmethod
    def _date_is_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("ticket_url")
    @classmethod
    def _ticket_url_absolute(cls, value: str) -> str:
        value = (value or "").strip()
        if not value or value == "#":
            return UNKNOWN_TICKET_URL
        if value != UNKNOWN_TICKET_URL and not value.startswith(("http://", "https://")):
            raise ValueError(f"ticket_url must be absolute: {value!r}")
        return value

    @field_validator("location")
    @classmethod
    def _location_default(cls, value: str) -> str:
        value = " ".join((value or "").split())
        return value if len(value) >= 2 else DEFAULT_LOCATION

    @field_validator("event_id", "image_url", "description", "price")
    @classmethod
    def _strip(cls, value: str) -> str:
        return (value or "").strip()

    @property
    def has_ticket_url(self) -> bool:
        return self.ticket_url != UNKNOWN_TICKET_URL


class RawEvent(EventFields):
    """Represents a single sighting of an event on one source."""

    date_text: str = ""  # The fragment the date was parsed from
    captured_at: datetime = Field(default_factory=utc_now)

    @computed_field
    @property
    def dedup_key(self) -> str:
        """Cross-source identity: lowercased title + UTC calendar day."""
        return f"{normalize_title(self.title)}|{calendar_day(self.date)}"

    def to_record_fields(self) -> dict:
        """Fields written to the store for this sighting."""
        return self.model_dump(
            exclude={"date_text", "captured_at", "dedup_key"},
        )


class CanonicalEvent(EventFields):
    """Represents one persisted event, converged from many sightings."""

    id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    last_updated: datetime = Field(default_factory=utc_now)

    @computed_field
    @property
    def title_key(self) -> str:
        return normalize_title(self.title)

    @computed_field
    @property
    def date_key(self) -> str:
        return calendar_day(self.date)

    @classmethod
    def from_raw(cls, raw: RawEvent) -> "CanonicalEvent":
        now = utc_now()
        return cls(**raw.to_record_fields(), created_at=now, last_updated=now)


class SyncSummary(BaseModel):
    """Result of one scrape -> reconcile run."""

    inserted: int = 0
    updated: int = 0
    errors: int = 0
    total: int = 0


class FetchStats(BaseModel):
    """Statistics from one adapter's scrape."""

    source: str
    count: int
    status: str  # success, error
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None


class ScrapeResult(BaseModel):
    """Merged output of all adapters."""

    events: list[RawEvent]
    stats: list[FetchStats]
    total_before_dedup: int
    failed_sources: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def duplicates_removed(self) -> int:
        return self.total_before_dedup - len(self.events)


class DuplicateMatch(BaseModel):
    """Records a dropped duplicate for the audit trail."""

    key: str
    kept_source: str
    dropped_source: str
    reason: str


class DedupeResult(BaseModel):
    """Result of cross-source deduplication with audit trail."""

    events: list[RawEvent]
    original_count: int
    duplicates_removed: int
    audit_trail: list[DuplicateMatch] = Field(default_factory=list)

    @computed_field
    @property
    def dedup_rate(self) -> float:
        """Percentage of events that were duplicates."""
        if self.original_count == 0:
            return 0.0
        return self.duplicates_removed / self.original_count * 100
