"""
Event source adapters.

Each adapter implements:
- name: str
- async scrape() -> list[RawEvent] (never raises)

The adapter set is fixed. Order matters: on a cross-source title + day
collision, the earlier adapter's record survives.
"""

from .base import SourceAdapter, fetch_page
from .eventbrite import EventbriteAdapter
from .timeout import TimeOutAdapter


def default_adapters() -> list[SourceAdapter]:
    """The production adapters, in priority order."""
    return [EventbriteAdapter(), TimeOutAdapter()]


__all__ = [
    "SourceAdapter",
    "fetch_page",
    "EventbriteAdapter",
    "TimeOutAdapter",
    "default_adapters",
]
