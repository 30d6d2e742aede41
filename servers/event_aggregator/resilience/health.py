"""Health tracking for source adapters."""

from typing import Any, Optional

import structlog

from ..models import utc_now

log = structlog.get_logger(__name__)


class SourceHealth:
    """Track each adapter's last outcome across runs.

    Updated by the orchestrator after every scrape and reported by the
    service's status tool.
    """

    def __init__(self):
        self.status: dict[str, dict[str, Any]] = {}

    def record_success(self, source: str, event_count: int, duration_ms: Optional[int] = None) -> None:
        """Record a completed scrape.

        Args:
            source: Adapter name
            event_count: Events the adapter returned
            duration_ms: How long the scrape took
        """
        self.status[source] = {
            "healthy": True,
            "last_check": utc_now().isoformat(),
            "event_count": event_count,
            "duration_ms": duration_ms,
            "consecutive_failures": 0,
            "last_error": None,
        }
        log.debug("source_healthy", source=source, event_count=event_count)

    def record_failure(self, source: str, error: str, duration_ms: Optional[int] = None) -> None:
        """Record a scrape that raised.

        Args:
            source: Adapter name
            error: Error message describing the failure
            duration_ms: How long the scrape ran before failing
        """
        previous = self.status.get(source, {})
        consecutive = previous.get("consecutive_failures", 0) + 1

        self.status[source] = {
            "healthy": False,
            "last_check": utc_now().isoformat(),
            "event_count": 0,
            "duration_ms": duration_ms,
            "consecutive_failures": consecutive,
            "last_error": error,
        }
        log.warning("source_unhealthy", source=source, consecutive_failures=consecutive, error=error)

    def is_healthy(self, source: str) -> bool:
        """True if the source's last run succeeded, or it has never run."""
        return self.status.get(source, {}).get("healthy", True)

    def get_source_status(self, source: str) -> dict[str, Any] | None:
        return self.status.get(source)

    def get_status(self) -> dict[str, Any]:
        """Full report: counts plus every tracked source."""
        healthy = sum(1 for s in self.status.values() if s["healthy"])
        return {
            "timestamp": utc_now().isoformat(),
            "summary": {
                "healthy": healthy,
                "unhealthy": len(self.status) - healthy,
                "total": len(self.status),
            },
            "sources": dict(self.status),
        }
