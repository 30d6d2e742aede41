"""
URL and text normalization shared by every adapter.

All functions are pure: same input, same output, no network.
"""

import html
import re
from typing import Optional
from urllib.parse import unquote, urljoin, urlsplit

import structlog

log = structlog.get_logger(__name__)


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and trim."""
    if not text or not isinstance(text, str):
        return ""
    return re.sub(r"\s+", " ", text).strip()


def truncate(text: str, limit: int) -> str:
    return text[:limit] if len(text) > limit else text


def resolve_url(url: Optional[str], base_url: str) -> str:
    """Make a URL absolute against the site base.

    - protocol-relative ("//cdn/x.jpg") -> https
    - root-relative ("/x.jpg") -> site origin + path
    - relative ("x.jpg") -> resolved against base_url
    """
    url = (url or "").strip()
    if not url:
        return ""
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("//"):
        return "https:" + url
    return urljoin(base_url, url)


def normalize_ticket_url(href: Optional[str], base_url: str) -> str:
    """Reduce a listing link to origin + path + query (no fragment).

    Returns "" for empty or non-http links.
    """
    absolute = resolve_url(href, base_url)
    if not absolute:
        return ""
    parts = urlsplit(absolute)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return ""
    normalized = f"{parts.scheme}://{parts.netloc}{parts.path}"
    if parts.query:
        normalized += "?" + parts.query
    return normalized


def strip_query(url: str) -> str:
    """Origin + path without query or trailing slash, for prefix matching."""
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url.split("?")[0].rstrip("/")
    if not parts.scheme or not parts.netloc:
        return url.split("?")[0].rstrip("/")
    return f"{parts.scheme}://{parts.netloc}{parts.path}".rstrip("/")


def same_page(url: str, other: str) -> bool:
    """True if both URLs point at the same page, ignoring query and slash."""
    return strip_query(url).lower() == strip_query(other).lower()


def clean_image_url(raw: Optional[str], base_url: str, proxy_host: Optional[str] = None) -> str:
    """
    Turn a scraped image attribute into an absolute URL.

    Steps:
    1. Decode HTML entities (&amp; etc.)
    2. If it is a `proxy_host` URL embedding a percent-encoded origin URL,
       use the decoded origin URL plus the proxy's own query string;
       otherwise percent-decode if it looks encoded
    3. Resolve to an absolute URL
    """
    url = html.unescape((raw or "").strip())
    if not url:
        return ""

    if proxy_host and proxy_host in url and "%" in url:
        url = _unwrap_proxy_url(url, proxy_host)
    elif "%" in url:
        url = unquote(url)

    return resolve_url(url, base_url).strip()


def _unwrap_proxy_url(url: str, proxy_host: str) -> str:
    match = re.search(re.escape(proxy_host) + r"/(.+?)(?:\?|$)", url)
    if not match:
        return unquote(url)

    inner = unquote(match.group(1))
    if not inner.startswith("http"):
        log.debug("image_proxy_not_unwrapped", preview=url[:100])
        return url

    query = urlsplit(url).query
    return f"{inner}?{query}" if query else inner
