"""Tests for event data models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from servers.event_aggregator.config import DEFAULT_LOCATION, UNKNOWN_TICKET_URL
from servers.event_aggregator.models import (
    CanonicalEvent,
    DedupeResult,
    RawEvent,
    ScrapeResult,
    calendar_day,
    is_placeholder_title,
    normalize_title,
)

APRIL_3 = datetime(2026, 4, 3, 9, 0, tzinfo=timezone.utc)


class TestRawEvent:
    """Tests for RawEvent model."""

    def test_minimal_event(self):
        """Only title and date are required."""
        event = RawEvent(title="Harbour Jazz Night", date=APRIL_3)
        assert event.location == DEFAULT_LOCATION
        assert event.ticket_url == UNKNOWN_TICKET_URL
        assert event.has_ticket_url is False
        assert event.is_promoted is False

    def test_title_whitespace_collapsed(self):
        event = RawEvent(title="  Harbour   Jazz\nNight ", date=APRIL_3)
        assert event.title == "Harbour Jazz Night"

    @pytest.mark.parametrize("title", ["", "  ", "ab", "Untitled Event", "untitled event"])
    def test_placeholder_titles_rejected(self, title):
        with pytest.raises(ValidationError):
            RawEvent(title=title, date=APRIL_3)

    def test_naive_date_treated_as_utc(self):
        event = RawEvent(title="Harbour Jazz Night", date=datetime(2026, 4, 3, 9, 0))
        assert event.date == APRIL_3
        assert event.date.tzinfo is not None

    def test_aware_date_converted_to_utc(self):
        sydney = timezone(timedelta(hours=10))
        event = RawEvent(title="Harbour Jazz Night", date=datetime(2026, 4, 3, 19, 0, tzinfo=sydney))
        assert event.date == APRIL_3

    @pytest.mark.parametrize("url", ["", "#", "  "])
    def test_missing_ticket_url_becomes_unknown(self, url):
        event = RawEvent(title="Harbour Jazz Night", date=APRIL_3, ticket_url=url)
        assert event.ticket_url == UNKNOWN_TICKET_URL

    def test_relative_ticket_url_rejected(self):
        with pytest.raises(ValidationError):
            RawEvent(title="Harbour Jazz Night", date=APRIL_3, ticket_url="/e/harbour-jazz")

    def test_short_location_defaults(self):
        event = RawEvent(title="Harbour Jazz Night", date=APRIL_3, location="X")
        assert event.location == DEFAULT_LOCATION

    def test_dedup_key(self):
        event = RawEvent(title="Harbour JAZZ Night", date=APRIL_3)
        assert event.dedup_key == "harbour jazz night|2026-04-03"

    def test_record_fields_exclude_transient_data(self):
        event = RawEvent(title="Harbour Jazz Night", date=APRIL_3, date_text="Fri, 3 Apr, 7:00 pm")
        fields = event.to_record_fields()
        assert "date_text" not in fields
        assert "captured_at" not in fields
        assert "dedup_key" not in fields
        assert fields["title"] == "Harbour Jazz Night"


class TestCanonicalEvent:
    """Tests for CanonicalEvent model."""

    def test_from_raw_copies_fields(self):
        raw = RawEvent(
            title="Harbour Jazz Night",
            date=APRIL_3,
            ticket_url="https://www.eventbrite.com.au/e/harbour-jazz-night-12345",
            event_id="12345",
            price="From $35.00",
        )
        canonical = CanonicalEvent.from_raw(raw)

        assert canonical.id is None
        assert canonical.event_id == "12345"
        assert canonical.price == "From $35.00"
        assert canonical.created_at == canonical.last_updated

    def test_match_keys(self):
        canonical = CanonicalEvent(title="Harbour JAZZ Night", date=datetime(2026, 4, 3, 23, 30, tzinfo=timezone.utc))
        assert canonical.title_key == "harbour jazz night"
        assert canonical.date_key == "2026-04-03"

    def test_dump_includes_match_keys(self):
        dumped = CanonicalEvent(title="Harbour Jazz Night", date=APRIL_3).model_dump()
        assert dumped["title_key"] == "harbour jazz night"
        assert dumped["date_key"] == "2026-04-03"

    def test_validates_from_stored_document(self):
        """Stored documents carry the computed keys; they must not break loading."""
        document = CanonicalEvent(title="Harbour Jazz Night", date=APRIL_3).model_dump()
        loaded = CanonicalEvent.model_validate(document)
        assert loaded.title == "Harbour Jazz Night"


class TestHelpers:
    """Tests for key helpers."""

    def test_normalize_title(self):
        assert normalize_title("  Harbour\tJAZZ  Night ") == "harbour jazz night"

    def test_calendar_day_uses_utc(self):
        sydney = timezone(timedelta(hours=10))
        # 8am Sydney on the 4th is still the 3rd in UTC
        assert calendar_day(datetime(2026, 4, 4, 8, 0, tzinfo=sydney)) == "2026-04-03"

    def test_is_placeholder_title(self):
        assert is_placeholder_title(None) is True
        assert is_placeholder_title("Untitled Event") is True
        assert is_placeholder_title("Gig") is False


class TestResults:
    """Tests for run result models."""

    def test_scrape_result_duplicates_removed(self):
        result = ScrapeResult(events=[], stats=[], total_before_dedup=3)
        assert result.duplicates_removed == 3

    def test_dedupe_rate(self):
        result = DedupeResult(events=[], original_count=4, duplicates_removed=1)
        assert result.dedup_rate == 25.0

    def test_dedupe_rate_empty(self):
        result = DedupeResult(events=[], original_count=0, duplicates_removed=0)
        assert result.dedup_rate == 0.0
