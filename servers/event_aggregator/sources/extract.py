"""
Ordered field-extraction strategies over parsed listing markup.

A field is described as a list of strategies. Each strategy takes a card
element and returns a string (possibly empty). The first non-empty result
wins; later strategies are never evaluated.
"""

import re
from typing import Callable, Iterable, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from ..normalize import clean_text

Strategy = Callable[[Tag], Optional[str]]

IMAGE_ATTRS = ("src", "data-src", "data-lazy-src", "data-original")

DATE_HINT = re.compile(
    r"(Mon|Tue|Wed|Thu|Fri|Sat|Sun|Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec|\d{1,2}:\d{2})",
    re.IGNORECASE,
)
CALENDAR_WORD = re.compile(
    r"(Mon|Tue|Wed|Thu|Fri|Sat|Sun|Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)",
    re.IGNORECASE,
)
CLOCK_HINT = re.compile(r"(\d{1,2}:\d{2}|\bpm\b|\bam\b)", re.IGNORECASE)
PRICE_HINT = re.compile(r"(\$|\bFrom\b|\bFree\b)", re.IGNORECASE)


def first_non_empty(strategies: Sequence[Strategy], node: Tag) -> str:
    """Evaluate strategies in order and return the first non-empty text."""
    for strategy in strategies:
        try:
            value = strategy(node)
        except (AttributeError, KeyError, TypeError, ValueError):
            continue
        value = clean_text(value)
        if value:
            return value
    return ""


def parse_html(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


# ---------------------------------------------------------------------------
# Strategy builders
# ---------------------------------------------------------------------------


def text_of(selector: str) -> Strategy:
    """Text of the first element matching `selector` inside the card."""

    def strategy(node: Tag) -> Optional[str]:
        found = node.select_one(selector)
        return found.get_text(" ", strip=True) if found else None

    strategy.__name__ = f"text_of({selector})"
    return strategy


def attr_of(selector: Optional[str], *attrs: str) -> Strategy:
    """First non-empty attribute among `attrs` on the matched element.

    With selector=None the card element itself is inspected.
    """

    def strategy(node: Tag) -> Optional[str]:
        target = node.select_one(selector) if selector else node
        if target is None:
            return None
        for attr in attrs:
            value = target.get(attr)
            if value:
                return value if isinstance(value, str) else " ".join(value)
        return None

    strategy.__name__ = f"attr_of({selector}, {attrs})"
    return strategy


def own_text(node: Tag) -> Optional[str]:
    return node.get_text(" ", strip=True)


def image_in(selector: str) -> Strategy:
    """Image source inside the first element matching `selector`."""

    def strategy(node: Tag) -> Optional[str]:
        container = node.select_one(selector)
        if container is None:
            return None
        img = container if container.name == "img" else container.select_one("img")
        return image_source(img)

    strategy.__name__ = f"image_in({selector})"
    return strategy


def image_source(img: Optional[Tag]) -> Optional[str]:
    if img is None:
        return None
    for attr in IMAGE_ATTRS:
        value = img.get(attr)
        if value:
            return value
    return None


def matching_paragraph(
    scope: Callable[[Tag], Optional[Tag]],
    accept: Callable[[str], bool],
) -> Strategy:
    """First <p> under scope(card) whose text passes `accept`."""

    def strategy(node: Tag) -> Optional[str]:
        container = scope(node)
        if container is None:
            return None
        for p in container.find_all("p"):
            text = clean_text(p.get_text(" ", strip=True))
            if text and accept(text):
                return text
        return None

    return strategy


# ---------------------------------------------------------------------------
# Text classifiers
# ---------------------------------------------------------------------------


def looks_like_date(text: str) -> bool:
    return bool(DATE_HINT.search(text))


def looks_like_datetime(text: str) -> bool:
    return bool(CALENDAR_WORD.search(text)) and bool(CLOCK_HINT.search(text))


def looks_like_location(text: str) -> bool:
    """Not a date, not a time, not a price."""
    if len(text) < 2:
        return False
    if CALENDAR_WORD.search(text) or PRICE_HINT.search(text):
        return False
    return not re.search(r"\d{1,2}:\d{2}", text)


# ---------------------------------------------------------------------------
# Card discovery
# ---------------------------------------------------------------------------


def collect_unique(groups: Iterable[Iterable[Tag]]) -> list[Tag]:
    """Flatten element groups, keeping document order within each group and
    never returning the same element twice."""
    seen: set[int] = set()
    unique: list[Tag] = []
    for group in groups:
        for element in group:
            if id(element) in seen:
                continue
            seen.add(id(element))
            unique.append(element)
    return unique


def select_all(soup: Tag, selectors: Sequence[str]) -> list[list[Tag]]:
    return [soup.select(selector) for selector in selectors]
