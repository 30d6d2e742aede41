"""Tests for listing date normalization."""

from datetime import datetime, timedelta, timezone

import pytest

from servers.event_aggregator.normalize.dates import (
    normalize_date,
    parse_date_only,
    parse_date_text,
    parse_listing_datetime,
    parse_timestamp,
    resolve_year,
    to_24_hour,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestParseTimestamp:
    """Tests for complete timestamps."""

    def test_offset_timestamp(self):
        assert parse_timestamp("2027-01-08T19:00:00+10:00") == utc(2027, 1, 8, 9, 0)

    def test_utc_timestamp(self):
        assert parse_timestamp("2026-05-01T08:30:00Z") == utc(2026, 5, 1, 8, 30)

    def test_naive_timestamp_is_utc(self):
        assert parse_timestamp("2026-05-01T18:00:00") == utc(2026, 5, 1, 18, 0)

    def test_bare_date(self):
        assert parse_timestamp("2026-05-01") == utc(2026, 5, 1)

    def test_rfc_2822_keeps_time_and_offset(self):
        assert parse_timestamp("Sun, 24 Jan 2027 19:00:00 +1100") == utc(2027, 1, 24, 8, 0)

    def test_month_first_full_date(self):
        assert parse_timestamp("January 24, 2027 7:00 PM") == utc(2027, 1, 24, 19, 0)

    @pytest.mark.parametrize(
        "text",
        [
            "Fri, 23 Jan",
            "tomorrow",
            "2026-13-45T00:00",
            "Sat, 4 Apr, 7:00 pm",
            "2 May 2026",
        ],
    )
    def test_incomplete_returns_none(self, text):
        assert parse_timestamp(text) is None


class TestListingDatetime:
    """Tests for yearless "<weekday>, <day> <month>, <time>" fragments."""

    def test_evening_event(self, fixed_now):
        # 7pm Sydney (+10) is 9am UTC
        assert parse_listing_datetime("Sat, 4 Apr, 7:00 pm", fixed_now) == utc(2026, 4, 4, 9, 0)

    def test_earlier_month_rolls_to_next_year(self, fixed_now):
        assert parse_listing_datetime("Fri, 23 Jan, 10:00 pm", fixed_now) == utc(2027, 1, 23, 12, 0)

    def test_current_month_stays_this_year(self, fixed_now):
        assert parse_listing_datetime("Tue, 10 Mar, 9:30 am", fixed_now) == utc(2026, 3, 9, 23, 30)

    def test_month_first_variant(self, fixed_now):
        assert parse_listing_datetime("Sat, Apr 4, 7:00 pm", fixed_now) == utc(2026, 4, 4, 9, 0)

    def test_twenty_four_hour_clock(self, fixed_now):
        assert parse_listing_datetime("Sat, 4 Apr, 19:00", fixed_now) == utc(2026, 4, 4, 9, 0)

    def test_noon_and_midnight(self, fixed_now):
        assert parse_listing_datetime("Mon, 6 Apr, 12:00 pm", fixed_now) == utc(2026, 4, 6, 2, 0)
        assert parse_listing_datetime("Mon, 6 Apr, 12:00 am", fixed_now) == utc(2026, 4, 5, 14, 0)

    def test_full_names(self, fixed_now):
        assert parse_listing_datetime("Saturday, 4 April, 7:00 PM", fixed_now) == utc(2026, 4, 4, 9, 0)

    def test_surrounding_text(self, fixed_now):
        text = "Starts Sat, 4 Apr, 7:00 pm + 3 more"
        assert parse_listing_datetime(text, fixed_now) == utc(2026, 4, 4, 9, 0)

    def test_impossible_day_returns_none(self, fixed_now):
        assert parse_listing_datetime("Mon, 30 Feb, 10:00 pm", fixed_now) is None

    def test_no_weekday_returns_none(self, fixed_now):
        assert parse_listing_datetime("4 Apr 7:00 pm", fixed_now) is None


class TestResolveYear:
    """Tests for next-occurrence year resolution."""

    def test_later_month_same_year(self, fixed_now):
        assert resolve_year(12, fixed_now) == 2026

    def test_earlier_month_next_year(self, fixed_now):
        assert resolve_year(2, fixed_now) == 2027

    def test_uses_sydney_month(self):
        # 28 Feb 15:00 UTC is already 1 March in Sydney
        now = utc(2026, 2, 28, 15, 0)
        assert resolve_year(2, now) == 2027


class TestTo24Hour:
    """Tests for am/pm conversion."""

    @pytest.mark.parametrize(
        "hour,ampm,expected",
        [(7, "pm", 19), (12, "pm", 12), (12, "am", 0), (9, "AM", 9), (19, None, 19)],
    )
    def test_conversion(self, hour, ampm, expected):
        assert to_24_hour(hour, ampm) == expected


class TestDateOnly:
    """Tests for numeric/date-only patterns (midnight UTC)."""

    def test_day_month_year(self):
        assert parse_date_only("Sat 2 May 2026") == utc(2026, 5, 2)

    def test_iso_date_inside_text(self):
        assert parse_date_only("on 2026-05-02 at the park") == utc(2026, 5, 2)

    def test_slash_dmy(self):
        assert parse_date_only("01/05/2026") == utc(2026, 5, 1)

    def test_impossible_date_returns_none(self):
        assert parse_date_only("31/02/2026") is None


class TestNormalizeDate:
    """Tests for the never-failing entry point."""

    def test_attempts_in_order(self, fixed_now):
        assert parse_date_text("2027-01-08T19:00:00+10:00", fixed_now) == utc(2027, 1, 8, 9, 0)
        assert parse_date_text("Sat, 4 Apr, 7:00 pm", fixed_now) == utc(2026, 4, 4, 9, 0)
        assert parse_date_text("2 May 2026", fixed_now) == utc(2026, 5, 2)

    def test_full_timestamps_are_not_the_fallback(self, fixed_now):
        assert normalize_date("Sun, 24 Jan 2027 19:00:00 +1100", fixed_now) == utc(2027, 1, 24, 8, 0)
        assert normalize_date("January 24, 2027 7:00 PM", fixed_now) == utc(2027, 1, 24, 19, 0)

    def test_collapses_whitespace(self, fixed_now):
        assert normalize_date("Sat,\n  4 Apr,   7:00 pm", fixed_now) == utc(2026, 4, 4, 9, 0)

    @pytest.mark.parametrize("text", [None, "", "   ", "TBA", "Every weekend", "Mon, 30 Feb, 10:00 pm"])
    def test_unparseable_returns_reference_now(self, text, fixed_now):
        assert normalize_date(text, fixed_now) == fixed_now

    def test_unparseable_returns_call_time(self):
        before = datetime.now(timezone.utc)
        result = normalize_date("date to be announced")
        after = datetime.now(timezone.utc)

        assert before - timedelta(seconds=1) <= result <= after + timedelta(seconds=1)
        assert result.tzinfo is not None
