"""
TimeOut Sydney adapter (static HTML).

Cost: Free (uses httpx + BeautifulSoup)
Use Case: TimeOut's Sydney events page, which ships its listings in the
initial HTML so no script execution is needed.

A failed or empty fetch yields an empty list (logged as a warning).
"""

from datetime import datetime
from typing import Optional

import structlog
from bs4 import BeautifulSoup, Tag

from ..config import TIMEOUT_BASE_URL, TIMEOUT_LISTING_URL
from ..dedup import dedupe_within_run
from ..errors import ParseError
from ..models import RawEvent
from ..normalize import clean_image_url, normalize_date, normalize_ticket_url
from .base import build_description, build_raw_event, fetch_page, is_valid_listing
from .extract import (
    attr_of,
    collect_unique,
    first_non_empty,
    image_in,
    parse_html,
    select_all,
    text_of,
)

log = structlog.get_logger(__name__)

SOURCE_NAME = "TimeOut"

# All matches are unioned, in this order
EVENT_CONTAINER_SELECTORS = [
    "article.event",
    "article.listing",
    '[data-testid="event-card"]',
    'article[class*="event"]',
    'article[class*="listing"]',
    'div[class*="event"]',
    'div[class*="listing"]',
    '[class*="event-card"]',
    '[class*="event-item"]',
]
FALLBACK_CONTAINER_SELECTOR = "article"

TITLE_STRATEGIES = [
    text_of('h2, h3, .title, .heading, [data-testid="event-title"]'),
    text_of("a"),
]

DATE_STRATEGIES = [
    attr_of('time, .date, [data-testid="event-date"]', "datetime"),
    text_of('time, .date, [data-testid="event-date"]'),
]

LOCATION_STRATEGIES = [
    text_of('.location, .venue, .address, [data-testid="event-location"]'),
]

DESCRIPTION_STRATEGIES = [
    text_of(".description, .summary, .excerpt, p"),
]

PRICE_STRATEGIES = [
    text_of('.price, [class*="price"], .cost, .admission'),
]

IMAGE_STRATEGIES = [
    image_in("img"),
]

TICKET_STRATEGIES = [
    attr_of("a[href]", "href"),
]


def find_event_containers(soup: BeautifulSoup) -> list[Tag]:
    """Union of every structural selector's matches, else every <article>."""
    containers = collect_unique(select_all(soup, EVENT_CONTAINER_SELECTORS))
    if containers:
        return containers
    return collect_unique(select_all(soup, [FALLBACK_CONTAINER_SELECTOR]))


def parse_item(item: Tag, base_url: str = TIMEOUT_BASE_URL, now: Optional[datetime] = None) -> RawEvent:
    """
    Turn one TimeOut listing item into a RawEvent.

    Raises:
        ParseError: If the item has no usable title or link
    """
    date_text = first_non_empty(DATE_STRATEGIES, item)
    price = first_non_empty(PRICE_STRATEGIES, item)

    return build_raw_event(
        SOURCE_NAME,
        title=first_non_empty(TITLE_STRATEGIES, item),
        date_text=date_text,
        date=normalize_date(date_text, now),
        location=first_non_empty(LOCATION_STRATEGIES, item),
        description=build_description(first_non_empty(DESCRIPTION_STRATEGIES, item), price),
        image_url=clean_image_url(first_non_empty(IMAGE_STRATEGIES, item), base_url),
        ticket_url=normalize_ticket_url(first_non_empty(TICKET_STRATEGIES, item), base_url),
        price=price,
    )


class TimeOutAdapter:
    """Static-HTML adapter for TimeOut Sydney."""

    name = SOURCE_NAME

    def __init__(self, listing_url: str = TIMEOUT_LISTING_URL, base_url: str = TIMEOUT_BASE_URL):
        self.listing_url = listing_url
        self.base_url = base_url

    async def scrape(self) -> list[RawEvent]:
        try:
            html = await fetch_page(self.listing_url)
            if not html:
                log.warning("no_content", adapter=self.name, url=self.listing_url)
                return []
            events = self.parse_listing(html)
        except Exception as e:
            log.error("adapter_scrape_failed", adapter=self.name, error=str(e), exc_info=True)
            return []

        log.info("adapter_scrape_complete", adapter=self.name, count=len(events))
        return events

    def parse_listing(self, html: str) -> list[RawEvent]:
        """Parse listing markup into valid, run-unique RawEvents."""
        items = find_event_containers(parse_html(html))
        log.info("items_found", adapter=self.name, count=len(items))

        events = []
        for item in items:
            try:
                event = parse_item(item, self.base_url)
            except ParseError as e:
                log.debug("item_skipped", adapter=self.name, reason=e.reason)
                continue
            if is_valid_listing(event, (self.listing_url,)):
                events.append(event)
            else:
                log.debug("item_skipped", adapter=self.name, reason="no ticket link", title=event.title)

        return dedupe_within_run(events)
