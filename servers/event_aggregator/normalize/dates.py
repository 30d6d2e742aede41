"""
Free-text listing dates -> UTC instants.

Attempts, in order:
1. A complete timestamp: ISO-8601 ("2027-01-23T22:00:00+10:00", "2027-01-23"),
   or any text dateutil reads that carries both a year and a clock time
   ("Sun, 24 Jan 2027 19:00:00 +1100", "January 24, 2027 7:00 PM")
2. A listing pattern "<weekday>, <day> <month>[,] <hour>:<minute> [am|pm]"
   (also "<weekday>, <month> <day>, ...") with no year. The year is the next
   occurrence of that month, the time is Sydney local at a fixed +10:00.
3. Numeric/date-only patterns: YYYY-MM-DD, DD/MM/YYYY, "<day> <month> <year>"
   (taken as midnight UTC)

When nothing matches, normalize_date() returns the call-time instant instead
of failing. That keeps every RawEvent dated, at the cost of making garbage
input look like an event happening now.
"""

import re
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog
from dateutil import parser as date_parser

from ..config import SOURCE_UTC_OFFSET

log = structlog.get_logger(__name__)

WEEKDAYS = "Mon|Tue|Wed|Thu|Fri|Sat|Sun"
MONTHS = "Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec"
MONTH_NUMBERS = {name.lower(): i for i, name in enumerate(MONTHS.split("|"), start=1)}

ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
HAS_YEAR = re.compile(r"\b(?:19|20)\d{2}\b")
HAS_CLOCK = re.compile(r"\b\d{1,2}:\d{2}\b")

# Yearless listing date + clock time
LISTING_PATTERNS = [
    # "Fri, 23 Jan, 10:00 pm"
    re.compile(
        rf"\b(?:{WEEKDAYS})[a-z]*\.?,?\s*(?P<day>\d{{1,2}})\s+(?P<month>{MONTHS})[a-z]*\.?\s*,?\s*"
        r"(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*(?P<ampm>am|pm)?",
        re.IGNORECASE,
    ),
    # "Fri, Jan 23, 10:00 pm"
    re.compile(
        rf"\b(?:{WEEKDAYS})[a-z]*\.?,?\s*(?P<month>{MONTHS})[a-z]*\.?\s+(?P<day>\d{{1,2}})\s*,?\s*"
        r"(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*(?P<ampm>am|pm)?",
        re.IGNORECASE,
    ),
]


def _ymd(match: re.Match) -> datetime:
    return datetime(int(match["y"]), int(match["m"]), int(match["d"]), tzinfo=timezone.utc)


def _dmy_named(match: re.Match) -> datetime:
    month = MONTH_NUMBERS[match["month"][:3].lower()]
    return datetime(int(match["y"]), month, int(match["d"]), tzinfo=timezone.utc)


# (name, pattern, builder) - builders may raise ValueError on impossible dates
DATE_ONLY_PATTERNS: list[tuple[str, re.Pattern, Callable[[re.Match], datetime]]] = [
    (
        "day_month_year",
        re.compile(rf"\b(?P<d>\d{{1,2}})\s+(?P<month>{MONTHS})[a-z]*\.?\s+(?P<y>\d{{4}})\b", re.IGNORECASE),
        _dmy_named,
    ),
    (
        "iso_date",
        re.compile(r"\b(?P<y>\d{4})-(?P<m>\d{2})-(?P<d>\d{2})\b"),
        _ymd,
    ),
    (
        "slash_dmy",
        re.compile(r"\b(?P<d>\d{1,2})/(?P<m>\d{1,2})/(?P<y>\d{4})\b"),
        _ymd,
    ),
]


def parse_timestamp(text: str) -> Optional[datetime]:
    """Parse a complete timestamp. Naive values are taken as UTC.

    Text without a year or without a clock time is left to the listing and
    date-only patterns, so dateutil never fills in missing fields from today.
    """
    if ISO_PREFIX.match(text):
        parse = date_parser.isoparse
    elif HAS_YEAR.search(text) and HAS_CLOCK.search(text):
        parse = date_parser.parse
    else:
        return None
    try:
        parsed = parse(text)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def resolve_year(month: int, now: datetime) -> int:
    """Year of the next occurrence of `month`, counting the current month."""
    local_now = now.astimezone(SOURCE_UTC_OFFSET)
    return local_now.year + 1 if month < local_now.month else local_now.year


def to_24_hour(hour: int, ampm: Optional[str]) -> int:
    ampm = (ampm or "").lower()
    if ampm == "pm" and hour < 12:
        return hour + 12
    if ampm == "am" and hour == 12:
        return 0
    return hour


def parse_listing_datetime(text: str, now: datetime) -> Optional[datetime]:
    """Parse a yearless "<weekday>, <day> <month>, <hh>:<mm> [am|pm]" fragment."""
    for pattern in LISTING_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        month = MONTH_NUMBERS[match["month"][:3].lower()]
        hour = to_24_hour(int(match["hour"]), match["ampm"])
        try:
            local = datetime(
                resolve_year(month, now),
                month,
                int(match["day"]),
                hour,
                int(match["minute"]),
                tzinfo=SOURCE_UTC_OFFSET,
            )
        except ValueError:
            continue
        return local.astimezone(timezone.utc)
    return None


def parse_date_only(text: str) -> Optional[datetime]:
    for _name, pattern, build in DATE_ONLY_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        try:
            return build(match)
        except ValueError:
            continue
    return None


def parse_date_text(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a listing date fragment, or return None if nothing matches.

    Args:
        text: Raw date text from a card (may be empty)
        now: Reference instant for year resolution (defaults to now)

    Returns:
        Aware UTC datetime, or None
    """
    if not text or not text.strip():
        return None
    cleaned = " ".join(text.split())
    now = now or datetime.now(timezone.utc)

    return (
        parse_timestamp(cleaned)
        or parse_listing_datetime(cleaned, now)
        or parse_date_only(cleaned)
    )


def normalize_date(text: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Parse a listing date fragment, falling back to the current instant.

    Never raises. The fallback is the instant of the call (or `now` when
    given), so unparseable dates surface as events happening right now.
    """
    parsed = parse_date_text(text, now)
    if parsed is not None:
        return parsed

    fallback = now or datetime.now(timezone.utc)
    log.warning(
        "date_unparseable",
        text=(text or "")[:80],
        fallback=fallback.isoformat(),
    )
    return fallback
