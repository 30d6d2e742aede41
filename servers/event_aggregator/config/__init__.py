"""Configuration constants, env loading and logging setup."""

from .log import bind_run_context, clear_run_context, configure_logging
from .settings import (
    DEFAULT_LOCATION,
    DEFAULT_MONGODB_DATABASE,
    DEFAULT_MONGODB_URI,
    EVENTBRITE_ALT_LISTING_URL,
    EVENTBRITE_BASE_URL,
    EVENTBRITE_IMAGE_PROXY_HOST,
    EVENTBRITE_LISTING_URL,
    INITIAL_LOAD_DELAY,
    INTER_CATEGORY_DELAY,
    MAX_DESCRIPTION_LENGTH,
    MAX_SCROLL_ATTEMPTS,
    NAVIGATION_TIMEOUT,
    PAGE_FETCH_TIMEOUT,
    PLACEHOLDER_TITLE,
    REQUEST_HEADERS,
    SCHEDULE_CRON,
    SCROLL_SETTLE_DELAY,
    SOURCE_UTC_OFFSET,
    STABLE_SCROLL_CYCLES,
    TIMEOUT_BASE_URL,
    TIMEOUT_LISTING_URL,
    UNKNOWN_TICKET_URL,
    USER_AGENT,
    get_default_config,
    load_config,
    mask_uri,
    validate_config,
)

__all__ = [
    "DEFAULT_LOCATION",
    "DEFAULT_MONGODB_DATABASE",
    "DEFAULT_MONGODB_URI",
    "EVENTBRITE_ALT_LISTING_URL",
    "EVENTBRITE_BASE_URL",
    "EVENTBRITE_IMAGE_PROXY_HOST",
    "EVENTBRITE_LISTING_URL",
    "INITIAL_LOAD_DELAY",
    "INTER_CATEGORY_DELAY",
    "MAX_DESCRIPTION_LENGTH",
    "MAX_SCROLL_ATTEMPTS",
    "NAVIGATION_TIMEOUT",
    "PAGE_FETCH_TIMEOUT",
    "PLACEHOLDER_TITLE",
    "REQUEST_HEADERS",
    "SCHEDULE_CRON",
    "SCROLL_SETTLE_DELAY",
    "SOURCE_UTC_OFFSET",
    "STABLE_SCROLL_CYCLES",
    "TIMEOUT_BASE_URL",
    "TIMEOUT_LISTING_URL",
    "UNKNOWN_TICKET_URL",
    "USER_AGENT",
    "bind_run_context",
    "clear_run_context",
    "configure_logging",
    "get_default_config",
    "load_config",
    "mask_uri",
    "validate_config",
]
