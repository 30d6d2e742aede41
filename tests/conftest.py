"""Shared pytest fixtures for event aggregator tests."""

from datetime import datetime, timezone
from typing import Callable

import pytest

from servers.event_aggregator.models import RawEvent
from servers.event_aggregator.store import InMemoryEventStore


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed reference instant (10 March 2026, 01:00 UTC = 11:00 Sydney)."""
    return datetime(2026, 3, 10, 1, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_event() -> Callable[..., RawEvent]:
    """Build RawEvents with sensible defaults."""

    def _make(
        title: str = "Harbour Jazz Night",
        date: datetime = datetime(2026, 4, 3, 9, 0, tzinfo=timezone.utc),
        source: str = "Eventbrite",
        **fields,
    ) -> RawEvent:
        fields.setdefault("ticket_url", f"https://www.eventbrite.com.au/e/{title.lower().replace(' ', '-')}")
        return RawEvent(title=title, date=date, source=source, **fields)

    return _make


@pytest.fixture
def sample_events(make_event) -> list[RawEvent]:
    """Three distinct events from one source."""
    return [
        make_event("Harbour Jazz Night"),
        make_event(
            "Bondi Sunrise Yoga",
            date=datetime(2026, 4, 4, 19, 30, tzinfo=timezone.utc),
            image_url="https://cdn.example.com/yoga.jpg",
        ),
        make_event(
            "Opera House Tour",
            date=datetime(2026, 4, 5, 2, 0, tzinfo=timezone.utc),
            event_id="98765",
        ),
    ]


@pytest.fixture
def memory_store() -> InMemoryEventStore:
    """A fresh in-memory store."""
    return InMemoryEventStore()


@pytest.fixture
def eventbrite_card_html() -> str:
    """One Eventbrite discovery card, shaped like the live markup."""
    return """
<div class="Stack_root__1ksk7">
  <section class="event-card-details">
    <div class="event-card-image__aspect-container">
      <img class="event-card-image"
           src="https://img.evbuc.com/https%3A%2F%2Fcdn.evbuc.com%2Fimages%2F123%2Foriginal.jpg?w=512&amp;auto=format" />
    </div>
    <div>
      <a class="event-card-link" href="/e/harbour-jazz-night-tickets-12345?aff=ebdssbdestsearch"
         data-event-id="12345" data-event-paid-status="paid"
         data-event-has-promo-code="true" data-event-has-bogo-label="false"
         aria-label="View Harbour Jazz Night">
        <h3>Harbour Jazz Night</h3>
      </a>
      <p>Fri, 3 Apr, 8:00 pm</p>
      <p>The Basement, Circular Quay</p>
      <div class="priceWrapper"><p>From $35.00</p></div>
    </div>
    <div class="EventCardUrgencySignal"><p>Almost full</p></div>
    <span class="promotedLabel">Promoted</span>
  </section>
</div>
"""


@pytest.fixture
def timeout_listing_html() -> str:
    """A TimeOut listing page with two events and one link-less tile."""
    return """
<html><body>
  <article class="listing event-tile">
    <h3>Sydney Festival Opening</h3>
    <time datetime="2027-01-08T19:00:00+10:00">8 Jan</time>
    <span class="venue">Hyde Park</span>
    <p class="summary">Free outdoor concert to open the festival.</p>
    <img src="/images/festival.jpg" />
    <a href="/sydney/things-to-do/sydney-festival-opening?ref=listing#top">More</a>
  </article>
  <article class="listing">
    <h3>Night Noodle Markets</h3>
    <div class="date">Tue, 13 Oct, 5:00 pm</div>
    <p>Hawker-style stalls in the Domain.</p>
    <a href="https://www.timeout.com/sydney/food/night-noodle-markets">Details</a>
  </article>
  <article class="listing">
    <h3>Newsletter Signup</h3>
  </article>
</body></html>
"""


class FakeAdapter:
    """Adapter returning canned events, or raising."""

    def __init__(self, name: str, events=None, error: Exception | None = None):
        self.name = name
        self.events = list(events or [])
        self.error = error
        self.calls = 0

    async def scrape(self) -> list[RawEvent]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.events)


@pytest.fixture
def make_adapter() -> Callable[..., FakeAdapter]:
    """Build fake adapters: make_adapter("Eventbrite", events) or error=..."""
    return FakeAdapter
