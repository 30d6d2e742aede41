"""Error taxonomy for the scrape -> reconcile pipeline.

Only ConfigurationError escapes a pipeline run. Everything else is absorbed
at the level it happens (one fetch, one card, one adapter, one event),
logged and tallied.
"""


class EventAggregatorError(Exception):
    """Base class for all pipeline errors."""


class TransientFetchError(EventAggregatorError):
    """A page fetch failed (network error, timeout, non-success status)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Fetching {url} failed: {reason}")
        self.url = url
        self.reason = reason


class ParseError(EventAggregatorError):
    """A single listing card could not be turned into an event."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class AdapterFailure(EventAggregatorError):
    """A whole adapter run blew up. Isolated by the orchestrator."""

    def __init__(self, adapter: str, cause: BaseException):
        super().__init__(f"Adapter '{adapter}' failed: {cause}")
        self.adapter = adapter
        self.cause = cause


class PersistenceConflict(EventAggregatorError):
    """Writing one event violated a store constraint."""

    def __init__(self, reason: str, event_title: str | None = None):
        super().__init__(reason)
        self.reason = reason
        self.event_title = event_title


class ConfigurationError(EventAggregatorError):
    """The pipeline cannot start (bad config, store unreachable)."""
