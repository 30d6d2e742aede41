"""
Shared pieces for source adapters.

Each adapter implements:
- name: str
- async scrape() -> list[RawEvent]

scrape() never raises: failures inside an adapter are logged and the
adapter returns whatever it collected so far (possibly nothing).
"""

import asyncio
from typing import Any, Optional, Protocol, runtime_checkable

import httpx
import structlog
from pydantic import ValidationError

from ..config import MAX_DESCRIPTION_LENGTH, PAGE_FETCH_TIMEOUT, REQUEST_HEADERS
from ..errors import ParseError, TransientFetchError
from ..models import RawEvent
from ..normalize import same_page, truncate

log = structlog.get_logger(__name__)


@runtime_checkable
class SourceAdapter(Protocol):
    """Produces raw event records from one external source."""

    name: str

    async def scrape(self) -> list[RawEvent]:
        ...


async def fetch_page(url: str, timeout: float = PAGE_FETCH_TIMEOUT) -> Optional[str]:
    """
    Fetch a page with a hard deadline.

    The whole request (connect + headers + body) must finish within
    `timeout` seconds, after which it is cancelled.

    Returns:
        Response body, or None on timeout, network error, non-2xx status
        or empty body (each logged as a warning)
    """
    try:
        return await asyncio.wait_for(_get_text(url, timeout), timeout=timeout)
    except asyncio.TimeoutError:
        log.warning("fetch_timeout", url=url, timeout=timeout)
    except TransientFetchError as e:
        log.warning("fetch_failed", url=url, reason=e.reason)
    return None


async def _get_text(url: str, timeout: float) -> str:
    try:
        async with httpx.AsyncClient(timeout=timeout, headers=REQUEST_HEADERS) as client:
            response = await client.get(url, follow_redirects=True)
    except httpx.TimeoutException as e:
        raise TransientFetchError(url, f"timeout: {e}") from e
    except httpx.RequestError as e:
        raise TransientFetchError(url, f"request error: {e}") from e

    if not response.is_success:
        raise TransientFetchError(url, f"HTTP {response.status_code}")

    text = response.text
    if not text:
        raise TransientFetchError(url, "empty body")

    log.debug("page_fetched", url=url, size=len(text))
    return text


def build_raw_event(source: str, **fields: Any) -> RawEvent:
    """Construct a RawEvent, turning validation failures into ParseError."""
    try:
        return RawEvent(source=source, **fields)
    except ValidationError as e:
        reasons = "; ".join(err["msg"] for err in e.errors())
        raise ParseError(source, reasons) from e


def is_valid_listing(event: RawEvent, listing_urls: tuple[str, ...]) -> bool:
    """A card is kept only if it links somewhere other than the listing page."""
    if not event.has_ticket_url:
        return False
    return not any(same_page(event.ticket_url, listing) for listing in listing_urls)


def build_description(description: str, price: str) -> str:
    """Append the price when it is not already mentioned, then truncate."""
    if price and price not in description:
        description = f"{description} | {price}" if description else price
    return truncate(description, MAX_DESCRIPTION_LENGTH)
