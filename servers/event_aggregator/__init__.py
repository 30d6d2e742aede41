"""
Sydney Events Aggregator

This service keeps a store of upcoming Sydney events in sync with:
- Eventbrite listings (browser-rendered, scroll-to-load + category pages)
- TimeOut Sydney listings (static HTML)

Each run scrapes every source concurrently, normalizes dates and URLs,
deduplicates overlapping listings and reconciles them against the store
(insert new events, update known ones). Runs are triggered on demand and
hourly by the scheduler.
"""

__version__ = "1.0.0"
