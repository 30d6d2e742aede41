"""Pure normalization helpers: dates, URLs, text."""

from .dates import normalize_date, parse_date_text
from .urls import (
    clean_image_url,
    clean_text,
    normalize_ticket_url,
    resolve_url,
    same_page,
    strip_query,
    truncate,
)

__all__ = [
    "normalize_date",
    "parse_date_text",
    "clean_image_url",
    "clean_text",
    "normalize_ticket_url",
    "resolve_url",
    "same_page",
    "strip_query",
    "truncate",
]
