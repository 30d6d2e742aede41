"""Tests for event deduplication logic."""

from datetime import datetime, timezone

from servers.event_aggregator.dedup import (
    dedupe_across_sources,
    dedupe_within_run,
    format_audit_summary,
    within_run_key,
)


class TestWithinRunKey:
    """Tests for the per-run identity key."""

    def test_prefers_event_id(self, make_event):
        assert within_run_key(make_event(event_id="123")) == "id:123"

    def test_falls_back_to_ticket_url(self, make_event):
        event = make_event(ticket_url="https://www.eventbrite.com.au/e/gig-1")
        assert within_run_key(event) == "url:https://www.eventbrite.com.au/e/gig-1"

    def test_falls_back_to_title_and_date(self, make_event):
        event = make_event(ticket_url="")
        assert within_run_key(event).startswith("title:Harbour Jazz Night|2026-04-03T09:00")


class TestDedupeWithinRun:
    """Tests for dedup inside one adapter run."""

    def test_drops_repeated_event_id(self, make_event):
        events = [
            make_event("Harbour Jazz Night", event_id="1", ticket_url="https://x.test/e/a"),
            make_event("Harbour Jazz Night (Category page)", event_id="1", ticket_url="https://x.test/e/b"),
        ]
        result = dedupe_within_run(events)
        assert len(result) == 1
        assert result[0].ticket_url == "https://x.test/e/a"

    def test_drops_repeated_ticket_url(self, make_event):
        events = [
            make_event("Harbour Jazz Night", ticket_url="https://x.test/e/a"),
            make_event("Different Title", ticket_url="https://x.test/e/a"),
        ]
        assert len(dedupe_within_run(events)) == 1

    def test_new_id_with_claimed_url_is_dropped(self, make_event):
        events = [
            make_event("Harbour Jazz Night", ticket_url="https://x.test/e/a"),
            make_event("Harbour Jazz Night", event_id="9", ticket_url="https://x.test/e/a"),
        ]
        assert len(dedupe_within_run(events)) == 1

    def test_linkless_events_keyed_by_title_and_instant(self, make_event):
        events = [
            make_event("Harbour Jazz Night", ticket_url=""),
            make_event("Harbour Jazz Night", ticket_url=""),
            make_event("Harbour Jazz Night", ticket_url="", date=datetime(2026, 4, 3, 11, 0, tzinfo=timezone.utc)),
        ]
        assert len(dedupe_within_run(events)) == 2

    def test_keeps_distinct_events_in_order(self, sample_events):
        assert dedupe_within_run(sample_events) == sample_events

    def test_empty_list(self):
        assert dedupe_within_run([]) == []


class TestDedupeAcrossSources:
    """Tests for cross-adapter dedup by title + calendar day."""

    def test_same_title_same_day_collapses(self, make_event):
        events = [
            make_event("Harbour Jazz Night", source="Eventbrite"),
            make_event(
                "HARBOUR JAZZ NIGHT",
                source="TimeOut",
                date=datetime(2026, 4, 3, 20, 0, tzinfo=timezone.utc),
                ticket_url="https://www.timeout.com/sydney/harbour-jazz",
            ),
        ]
        result = dedupe_across_sources(events)

        assert len(result.events) == 1
        assert result.events[0].source == "Eventbrite"
        assert result.duplicates_removed == 1
        assert result.audit_trail[0].kept_source == "Eventbrite"
        assert result.audit_trail[0].dropped_source == "TimeOut"

    def test_same_title_different_day_kept(self, make_event):
        events = [
            make_event("Harbour Jazz Night"),
            make_event("Harbour Jazz Night", date=datetime(2026, 4, 4, 9, 0, tzinfo=timezone.utc)),
        ]
        assert len(dedupe_across_sources(events).events) == 2

    def test_at_most_one_survivor_per_key(self, make_event):
        events = [
            make_event("Harbour Jazz Night", source=f"Source{i}", date=datetime(2026, 4, 3, i, 0, tzinfo=timezone.utc))
            for i in range(6)
        ]
        result = dedupe_across_sources(events)
        keys = [e.dedup_key for e in result.events]
        assert len(keys) == len(set(keys)) == 1
        assert result.events[0].source == "Source0"

    def test_no_duplicates(self, sample_events):
        result = dedupe_across_sources(sample_events)
        assert result.events == sample_events
        assert result.audit_trail == []
        assert result.original_count == 3


class TestHelpers:
    """Tests for audit reporting."""

    def test_format_audit_summary(self, make_event):
        events = [make_event("Harbour Jazz Night", source="A"), make_event("harbour jazz night", source="B")]
        summary = format_audit_summary(dedupe_across_sources(events))
        assert "Duplicates removed: 1" in summary
        assert "already have it from A" in summary

    def test_format_audit_summary_no_duplicates(self, sample_events):
        assert format_audit_summary(dedupe_across_sources(sample_events)) == "No duplicates found."
