"""
URL validation for links discovered on scraped pages.

Category links are read out of third-party markup and then navigated to by
the browser, so they are checked before use:
- Only HTTP(S) (HTTPS by default)
- Never localhost, loopback or private/internal IP literals
- Optionally restricted to a domain whitelist (subdomains allowed)
"""

import ipaddress
from typing import Optional
from urllib.parse import urlsplit


class UnsafeUrlError(ValueError):
    """Raised when a discovered URL fails validation."""


BLOCKED_IP_RANGES = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("100.64.0.0/10"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("::1/128"),
]

BLOCKED_HOSTNAMES = {
    "localhost",
    "localhost.localdomain",
}


def validate_url(
    url: str,
    require_https: bool = True,
    allowed_domains: Optional[set[str]] = None,
) -> str:
    """
    Validate a URL before the scraper follows it.

    Args:
        url: The URL to validate
        require_https: If True, reject http:// URLs (default: True)
        allowed_domains: Optional whitelist. Subdomains of a listed domain
                        are accepted.

    Returns:
        The validated URL (stripped)

    Raises:
        UnsafeUrlError: If the URL fails validation
    """
    if not url or not isinstance(url, str):
        raise UnsafeUrlError("URL must be a non-empty string")

    url = url.strip()
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise UnsafeUrlError(f"Invalid URL format: {e}") from e

    scheme = parts.scheme.lower()
    if require_https and scheme != "https":
        raise UnsafeUrlError(f"Only HTTPS URLs are allowed (got {scheme or 'no scheme'})")
    if scheme not in ("http", "https"):
        raise UnsafeUrlError(f"Only HTTP(S) URLs are allowed (got {scheme or 'no scheme'})")

    hostname = (parts.hostname or "").lower()
    if not hostname:
        raise UnsafeUrlError("URL must include a hostname")

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
        raise UnsafeUrlError(f"Access to {hostname} is blocked (localhost)")

    ip_addr = _parse_ip_address(hostname)
    if ip_addr is not None and _is_blocked_ip(ip_addr):
        raise UnsafeUrlError(f"Access to {hostname} is blocked (private/internal IP)")

    if allowed_domains is not None and not _domain_matches_whitelist(hostname, allowed_domains):
        raise UnsafeUrlError(f"Domain {hostname} is not in the allowed domains list")

    return url


def is_safe_url(url: str, allowed_domains: Optional[set[str]] = None) -> bool:
    """Boolean form of validate_url for filtering link lists."""
    try:
        validate_url(url, allowed_domains=allowed_domains)
    except UnsafeUrlError:
        return False
    return True


def _domain_matches_whitelist(hostname: str, allowed_domains: set[str]) -> bool:
    for domain in allowed_domains:
        domain = domain.lower()
        if hostname == domain or hostname.endswith("." + domain):
            return True
    return False


def _parse_ip_address(hostname: str) -> Optional[ipaddress.IPv4Address | ipaddress.IPv6Address]:
    try:
        return ipaddress.ip_address(hostname.strip("[]"))
    except ValueError:
        return None


def _is_blocked_ip(ip_addr: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    for network in BLOCKED_IP_RANGES:
        if ip_addr.version == network.version and ip_addr in network:
            return True
    return False
