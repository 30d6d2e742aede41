"""
Eventbrite adapter (browser-rendered).

Cost: Free (headless Chromium via Playwright)
Use Case: Eventbrite's Sydney discovery pages, which only render cards
after client-side scripts run and load more as the page is scrolled.

One browser session per scrape() call:
1. Load the main listing page, scroll until no more cards appear
2. Read category links out of the rendered main page
3. Load and scroll each category page, pausing between categories
4. Parse cards, drop invalid ones, dedupe within the run
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlsplit

import structlog
from bs4 import Tag
from playwright.async_api import async_playwright

from ..config import (
    EVENTBRITE_ALT_LISTING_URL,
    EVENTBRITE_BASE_URL,
    EVENTBRITE_IMAGE_PROXY_HOST,
    EVENTBRITE_LISTING_URL,
    INITIAL_LOAD_DELAY,
    INTER_CATEGORY_DELAY,
    MAX_SCROLL_ATTEMPTS,
    NAVIGATION_TIMEOUT,
    SCROLL_SETTLE_DELAY,
    STABLE_SCROLL_CYCLES,
    USER_AGENT,
)
from ..dedup import dedupe_within_run
from ..errors import ParseError
from ..models import RawEvent
from ..normalize import (
    clean_image_url,
    normalize_date,
    normalize_ticket_url,
    resolve_url,
    same_page,
)
from .base import build_description, build_raw_event, is_valid_listing
from .extract import (
    attr_of,
    collect_unique,
    first_non_empty,
    image_in,
    looks_like_date,
    looks_like_datetime,
    looks_like_location,
    matching_paragraph,
    own_text,
    parse_html,
    select_all,
    text_of,
)
from .url_validator import is_safe_url

log = structlog.get_logger(__name__)

SOURCE_NAME = "Eventbrite"

EVENT_LINK = 'a.event-card-link[href*="/e/"], a[href*="/e/"]'
CARD_COUNT_SCRIPT = f"() => document.querySelectorAll('{EVENT_LINK}').length"
SCROLL_TO_BOTTOM_SCRIPT = "() => window.scrollTo(0, document.body.scrollHeight)"
NUDGE_SCRIPT = "() => window.scrollBy(0, 1000)"

# Most specific first. The first strategy that matches anything wins.
PRIMARY_LINK_SELECTOR = 'a.event-card-link[href*="/e/"], a[href*="/e/"][class*="event"]'
FALLBACK_CARD_SELECTORS = [
    '[data-testid="event-card"]',
    '[data-testid="discover-event-card"]',
    ".event-card",
    ".discover-event-card",
    ".eds-event-card",
    'article[class*="event"]',
    'div[class*="event-card"]',
    'div[class*="discover-event"]',
]
CARD_CONTAINER_MARKERS = ("Stack", "event-card", "Discover", "card")

CATEGORY_LINK_SELECTORS = [
    'a[href*="/d/australia--sydney/"][href*="--events/"]',
    '[data-testid="category-filter"] a',
]

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]

Sleep = Callable[[float], Awaitable[Any]]


class BrowserSession:
    """Headless Chromium page, closed on every exit path."""

    def __init__(self, headless: bool = True):
        self.headless = headless
        self.playwright = None
        self.browser = None
        self.page = None

    async def __aenter__(self):
        self.playwright = await async_playwright().start()
        try:
            self.browser = await self.playwright.chromium.launch(
                headless=self.headless,
                args=BROWSER_ARGS,
            )
            context = await self.browser.new_context(
                viewport={"width": 1920, "height": 1080},
                user_agent=USER_AGENT,
            )
            self.page = await context.new_page()
            self.page.set_default_timeout(NAVIGATION_TIMEOUT * 1000)
        except BaseException:
            await self.__aexit__(None, None, None)
            raise
        return self.page

    async def __aexit__(self, *args):
        if self.browser:
            await self.browser.close()
            log.debug("browser_closed")
        if self.playwright:
            await self.playwright.stop()


# ---------------------------------------------------------------------------
# Scroll-to-load
# ---------------------------------------------------------------------------


async def evaluate(page, script: str, timeout: float = NAVIGATION_TIMEOUT) -> Any:
    """Run a page script, raising asyncio.TimeoutError after `timeout` seconds."""
    return await asyncio.wait_for(page.evaluate(script), timeout=timeout)


async def count_cards(page, timeout: float = NAVIGATION_TIMEOUT) -> int:
    return int(await evaluate(page, CARD_COUNT_SCRIPT, timeout))


async def scroll_to_load(
    page,
    sleep: Sleep = asyncio.sleep,
    max_attempts: int = MAX_SCROLL_ATTEMPTS,
    settle_delay: float = SCROLL_SETTLE_DELAY,
    stable_cycles: int = STABLE_SCROLL_CYCLES,
    timeout: float = NAVIGATION_TIMEOUT,
) -> tuple[int, int]:
    """
    Scroll until the card count stops growing.

    Each cycle scrolls to the bottom, waits `settle_delay` and re-counts.
    Stops after `stable_cycles` consecutive cycles without growth, or after
    `max_attempts` cycles regardless. Every page script is bounded by
    `timeout`; a renderer that stops answering raises asyncio.TimeoutError.

    Returns:
        Tuple of (scroll attempts made, final card count)
    """
    previous = await count_cards(page, timeout)
    attempts = 0
    unchanged = 0

    while attempts < max_attempts:
        await evaluate(page, SCROLL_TO_BOTTOM_SCRIPT, timeout)
        await sleep(settle_delay)
        attempts += 1

        current = await count_cards(page, timeout)
        log.debug("scroll_measured", attempt=attempts, cards=current)

        if current > previous:
            previous = current
            unchanged = 0
            continue

        unchanged += 1
        if unchanged >= stable_cycles:
            break
        await evaluate(page, NUDGE_SCRIPT, timeout)

    if attempts >= max_attempts:
        log.info("scroll_ceiling_reached", attempts=attempts, cards=previous)
    return attempts, previous


# ---------------------------------------------------------------------------
# Card discovery and field extraction
# ---------------------------------------------------------------------------


def event_link(card: Tag) -> Optional[Tag]:
    """The card's primary event link (the card itself when it is one)."""
    if card.name == "a" and "/e/" in (card.get("href") or ""):
        return card
    return card.select_one(EVENT_LINK)


def _link_parent(card: Tag) -> Optional[Tag]:
    link = event_link(card)
    return link.parent if link is not None else None


def via_link(strategy):
    """Apply a strategy to the card's event link instead of the card."""

    def wrapped(card: Tag) -> Optional[str]:
        link = event_link(card)
        return strategy(link) if link is not None else None

    return wrapped


def _is_card_container(tag: Tag) -> bool:
    if tag.name == "article":
        return True
    if tag.name != "div":
        return False
    classes = " ".join(tag.get("class") or [])
    return any(marker in classes for marker in CARD_CONTAINER_MARKERS)


def _primary_cards(soup: Tag) -> list[Tag]:
    seen_ids: set[str] = set()
    cards = []
    for link in soup.select(PRIMARY_LINK_SELECTOR):
        link_id = link.get("data-event-id")
        if link_id:
            if link_id in seen_ids:
                continue
            seen_ids.add(link_id)
        container = link.find_parent(_is_card_container)
        cards.append(container if container is not None else link)
    return cards


def discover_cards(soup: Tag) -> list[Tag]:
    """Card elements, from the first discovery strategy that finds any."""
    primary = collect_unique([_primary_cards(soup)])
    if primary:
        return primary

    for group in select_all(soup, FALLBACK_CARD_SELECTORS):
        cards = collect_unique([[el for el in group if el.select_one('a[href*="/e/"]')]])
        if cards:
            return cards
    return []


TITLE_STRATEGIES = [
    via_link(text_of("h3")),
    via_link(own_text),
    via_link(attr_of(None, "aria-label")),
    text_of("h3, h2"),
    text_of('[class*="title"]'),
]

DATE_STRATEGIES = [
    matching_paragraph(_link_parent, looks_like_date),
    attr_of('time, [data-testid="event-date"]', "datetime", "data-datetime"),
    text_of('time, [data-testid="event-date"]'),
    matching_paragraph(lambda card: card, looks_like_datetime),
]

LOCATION_STRATEGIES = [
    via_link(attr_of(None, "data-event-location")),
    matching_paragraph(_link_parent, looks_like_location),
    text_of('[data-testid="event-location"]'),
    text_of('.event-location, .location, .venue, [class*="location"], [class*="venue"]'),
]

PRICE_STRATEGIES = [
    text_of('[class*="priceWrapper"] p'),
    text_of('[class*="priceWrapper"], [class*="price"]'),
]

IMAGE_STRATEGIES = [
    image_in('.event-card-image__aspect-container, [class*="image-container"], [class*="image__aspect"]'),
    via_link(image_in("img")),
    image_in("img.event-card-image"),
    image_in("img"),
]

TICKET_STRATEGIES = [
    via_link(attr_of(None, "href")),
    attr_of('a[href*="/e/"], a[href*="eventbrite.com"]', "href"),
]

URGENCY_STRATEGIES = [
    text_of(".EventCardUrgencySignal p"),
    text_of(".EventCardUrgencySignal"),
]


def _paragraph_outside_link_block(card: Tag) -> Optional[str]:
    parent = _link_parent(card)
    excluded = {id(p) for p in parent.find_all("p")} if parent is not None else set()
    for p in card.find_all("p"):
        if id(p) not in excluded:
            return p.get_text(" ", strip=True)
    return None


DESCRIPTION_STRATEGIES = [
    text_of('[data-testid="event-description"]'),
    text_of('[class*="description"]'),
    _paragraph_outside_link_block,
]


def parse_card(card: Tag, base_url: str = EVENTBRITE_BASE_URL) -> RawEvent:
    """
    Turn one Eventbrite card into a RawEvent.

    Raises:
        ParseError: If the card has no usable title or ticket link
    """
    link = event_link(card)

    def link_attr(name: str) -> str:
        return (link.get(name) or "").strip() if link is not None else ""

    date_text = first_non_empty(DATE_STRATEGIES, card)
    price = first_non_empty(PRICE_STRATEGIES, card)

    return build_raw_event(
        SOURCE_NAME,
        title=first_non_empty(TITLE_STRATEGIES, card),
        date_text=date_text,
        date=normalize_date(date_text),
        location=first_non_empty(LOCATION_STRATEGIES, card),
        description=build_description(first_non_empty(DESCRIPTION_STRATEGIES, card), price),
        image_url=clean_image_url(
            first_non_empty(IMAGE_STRATEGIES, card), base_url, EVENTBRITE_IMAGE_PROXY_HOST
        ),
        ticket_url=normalize_ticket_url(first_non_empty(TICKET_STRATEGIES, card), base_url),
        event_id=link_attr("data-event-id"),
        price=price,
        paid_status=link_attr("data-event-paid-status"),
        urgency_signal=first_non_empty(URGENCY_STRATEGIES, card),
        is_promoted=card.select_one('[class*="promotedLabel"], [class*="Promoted"]') is not None,
        has_promo_code=link_attr("data-event-has-promo-code") == "true",
        has_bogo_label=link_attr("data-event-has-bogo-label") == "true",
    )


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class EventbriteAdapter:
    """Browser-rendered adapter for Eventbrite Sydney."""

    name = SOURCE_NAME

    def __init__(
        self,
        listing_url: str = EVENTBRITE_LISTING_URL,
        base_url: str = EVENTBRITE_BASE_URL,
        session_factory: Callable[[], Any] = BrowserSession,
        sleep: Sleep = asyncio.sleep,
        max_scroll_attempts: int = MAX_SCROLL_ATTEMPTS,
        follow_categories: bool = True,
        wait_timeout: float = NAVIGATION_TIMEOUT,
    ):
        self.listing_url = listing_url
        self.base_url = base_url
        self.session_factory = session_factory
        self.sleep = sleep
        self.max_scroll_attempts = max_scroll_attempts
        self.follow_categories = follow_categories
        self.wait_timeout = wait_timeout
        self.listing_urls = (listing_url, EVENTBRITE_ALT_LISTING_URL)
        self.allowed_domains = {urlsplit(base_url).hostname or ""}

    async def scrape(self) -> list[RawEvent]:
        events: list[RawEvent] = []
        pages_scraped = 0

        try:
            async with self.session_factory() as page:
                main_events, html = await self.scrape_page(page, self.listing_url)
                events.extend(main_events)
                pages_scraped += 1

                categories = self.extract_category_links(html) if self.follow_categories else []
                log.info("categories_found", adapter=self.name, count=len(categories))

                for index, url in enumerate(categories, start=1):
                    await self.sleep(INTER_CATEGORY_DELAY)
                    try:
                        category_events, _ = await self.scrape_page(page, url)
                    except Exception as e:
                        log.warning(
                            "category_failed",
                            adapter=self.name,
                            url=url,
                            position=f"{index}/{len(categories)}",
                            error=str(e),
                        )
                        continue
                    events.extend(category_events)
                    pages_scraped += 1
        except Exception as e:
            log.error(
                "adapter_scrape_failed",
                adapter=self.name,
                error=str(e),
                collected=len(events),
                exc_info=True,
            )

        unique = dedupe_within_run(events)
        log.info(
            "adapter_scrape_complete",
            adapter=self.name,
            pages=pages_scraped,
            count=len(unique),
            before_dedup=len(events),
        )
        return unique

    async def scrape_page(self, page, url: str) -> tuple[list[RawEvent], str]:
        """Load one listing page, expand it by scrolling and parse its cards."""
        await page.goto(url, wait_until="networkidle", timeout=self.wait_timeout * 1000)
        await self.sleep(INITIAL_LOAD_DELAY)

        attempts, cards = await scroll_to_load(
            page, sleep=self.sleep, max_attempts=self.max_scroll_attempts, timeout=self.wait_timeout
        )
        log.info("page_scrolled", adapter=self.name, url=url, attempts=attempts, cards=cards)

        html = await asyncio.wait_for(page.content(), timeout=self.wait_timeout)
        return self.parse_listing(html, url), html

    def parse_listing(self, html: str, page_url: Optional[str] = None) -> list[RawEvent]:
        """Parse rendered listing markup into valid RawEvents."""
        soup = parse_html(html)
        cards = discover_cards(soup)
        listing_urls = self.listing_urls + ((page_url,) if page_url else ())

        events = []
        skipped = 0
        for card in cards:
            try:
                event = parse_card(card, self.base_url)
            except ParseError as e:
                skipped += 1
                log.debug("card_skipped", adapter=self.name, reason=e.reason)
                continue
            if is_valid_listing(event, listing_urls):
                events.append(event)
            else:
                skipped += 1

        log.info("cards_parsed", adapter=self.name, cards=len(cards), valid=len(events), skipped=skipped)
        return events

    def extract_category_links(self, html: str) -> list[str]:
        """Category listing URLs found in the rendered navigation."""
        soup = parse_html(html)
        urls: list[str] = []
        for link in collect_unique(select_all(soup, CATEGORY_LINK_SELECTORS)):
            href = (link.get("href") or "").strip()
            if "--events/" not in href:
                continue
            url = resolve_url(href, self.base_url)
            if url in urls or any(same_page(url, listing) for listing in self.listing_urls):
                continue
            if not is_safe_url(url, self.allowed_domains):
                log.debug("category_link_rejected", url=url)
                continue
            urls.append(url)
        return urls
