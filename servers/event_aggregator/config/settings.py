"""
Runtime configuration for the events aggregator.

Two layers:
- Fixed constants that bound scraping behaviour (scroll ceiling, delays,
  timeouts) and describe each source (base URL, listing endpoints)
- A small dict config loaded from the environment (store URI, logging,
  schedule), validated at startup
"""

import os
import re
from datetime import timedelta, timezone
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

import structlog
from croniter import croniter

from ..errors import ConfigurationError

log = structlog.get_logger(__name__)


# Browser scroll-to-load
MAX_SCROLL_ATTEMPTS = 50
SCROLL_SETTLE_DELAY = 2.0  # seconds between scroll and re-measure
STABLE_SCROLL_CYCLES = 2  # consecutive no-growth cycles before stopping
INITIAL_LOAD_DELAY = 3.0
NAVIGATION_TIMEOUT = 60.0
INTER_CATEGORY_DELAY = 2.0

# Static fetch
PAGE_FETCH_TIMEOUT = 30.0

# Listing times are Sydney local, anchored to AEST with no DST adjustment
SOURCE_UTC_OFFSET = timezone(timedelta(hours=10))

DEFAULT_LOCATION = "Sydney, Australia"
MAX_DESCRIPTION_LENGTH = 500
PLACEHOLDER_TITLE = "Untitled Event"
UNKNOWN_TICKET_URL = "unknown"

# Every hour, on the hour
SCHEDULE_CRON = "0 * * * *"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

# Eventbrite (browser-rendered)
EVENTBRITE_BASE_URL = "https://www.eventbrite.com.au"
EVENTBRITE_LISTING_URL = f"{EVENTBRITE_BASE_URL}/d/australia--sydney/all-events/"
EVENTBRITE_ALT_LISTING_URL = f"{EVENTBRITE_BASE_URL}/d/australia--sydney/events/"
EVENTBRITE_IMAGE_PROXY_HOST = "img.evbuc.com"

# TimeOut Sydney (static HTML)
TIMEOUT_BASE_URL = "https://www.timeout.com"
TIMEOUT_LISTING_URL = f"{TIMEOUT_BASE_URL}/sydney/events"

DEFAULT_MONGODB_URI = "mongodb://localhost:27017/sydney_events"
DEFAULT_MONGODB_DATABASE = "sydney_events"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS = ("json", "console")


def get_default_config() -> dict[str, Any]:
    """Return the config used when the environment sets nothing."""
    return {
        "store": {
            "uri": DEFAULT_MONGODB_URI,
            "database": DEFAULT_MONGODB_DATABASE,
        },
        "logging": {
            "level": "INFO",
            "format": "json",
        },
        "schedule": {
            "cron": SCHEDULE_CRON,
        },
    }


def load_config(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """
    Build config from environment variables on top of the defaults.

    Recognised variables: MONGODB_URI, MONGODB_DATABASE, LOG_LEVEL,
    LOG_FORMAT, SCHEDULE_CRON.

    Raises:
        ConfigurationError: If the resulting config does not validate
    """
    env = os.environ if environ is None else environ
    config = get_default_config()

    if env.get("MONGODB_URI"):
        config["store"]["uri"] = env["MONGODB_URI"].strip()
        config["store"]["database"] = _database_from_uri(config["store"]["uri"])
    if env.get("MONGODB_DATABASE"):
        config["store"]["database"] = env["MONGODB_DATABASE"].strip()
    if env.get("LOG_LEVEL"):
        config["logging"]["level"] = env["LOG_LEVEL"].strip().upper()
    if env.get("LOG_FORMAT"):
        config["logging"]["format"] = env["LOG_FORMAT"].strip().lower()
    if env.get("SCHEDULE_CRON"):
        config["schedule"]["cron"] = env["SCHEDULE_CRON"].strip()

    errors = validate_config(config)
    if errors:
        raise ConfigurationError("; ".join(errors))

    log.debug(
        "config_loaded",
        store=mask_uri(config["store"]["uri"]),
        database=config["store"]["database"],
        schedule=config["schedule"]["cron"],
    )
    return config


def validate_config(config: dict[str, Any]) -> list[str]:
    """
    Validate config and return list of errors.

    Returns:
        List of error messages (empty if valid)
    """
    errors: list[str] = []

    uri = config.get("store", {}).get("uri", "")
    if not uri:
        errors.append("Missing required field: store.uri")
    elif not uri.startswith(("mongodb://", "mongodb+srv://")):
        errors.append(f"Invalid store.uri scheme: {mask_uri(uri)}")

    if not config.get("store", {}).get("database"):
        errors.append("Missing required field: store.database")

    level = config.get("logging", {}).get("level", "INFO")
    if level not in LOG_LEVELS:
        errors.append(f"Invalid logging.level: {level} (expected one of {', '.join(LOG_LEVELS)})")

    fmt = config.get("logging", {}).get("format", "json")
    if fmt not in LOG_FORMATS:
        errors.append(f"Invalid logging.format: {fmt} (expected json or console)")

    cron = config.get("schedule", {}).get("cron", "")
    if not croniter.is_valid(cron):
        errors.append(f"Invalid schedule.cron expression: {cron!r}")

    return errors


def mask_uri(uri: str) -> str:
    """Hide credentials in a connection URI before it is logged."""
    return re.sub(r"//[^:/@]+:[^@]+@", "//***:***@", uri)


def _database_from_uri(uri: str) -> str:
    """Pick the database name out of the URI path, else the default."""
    path = urlparse(uri).path.lstrip("/")
    return path or DEFAULT_MONGODB_DATABASE
