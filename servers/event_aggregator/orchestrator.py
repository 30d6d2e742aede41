"""
Concurrent scrape across all adapters.

Every adapter runs at the same time. An adapter that raises is isolated:
its failure is logged and recorded, the others' output is kept. Outputs
are concatenated in adapter order and deduplicated by title + day.
"""

import asyncio
import time
from typing import Optional

import structlog

from .dedup import dedupe_across_sources, format_audit_summary
from .errors import AdapterFailure
from .models import FetchStats, RawEvent, ScrapeResult
from .resilience import SourceHealth
from .sources import SourceAdapter

log = structlog.get_logger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class ScrapeOrchestrator:
    """Runs a fixed set of adapters and merges their output."""

    def __init__(self, adapters: list[SourceAdapter], health: Optional[SourceHealth] = None):
        self.adapters = adapters
        self.health = health or SourceHealth()

    def get_adapter(self, name: str) -> Optional[SourceAdapter]:
        """Look up an adapter by (case-insensitive) name."""
        for adapter in self.adapters:
            if adapter.name.lower() == name.lower():
                return adapter
        return None

    async def run(self) -> ScrapeResult:
        """Scrape every adapter concurrently and dedupe the merged output."""
        results = await asyncio.gather(
            *(self._run_adapter(adapter) for adapter in self.adapters),
            return_exceptions=True,
        )

        merged: list[RawEvent] = []
        stats: list[FetchStats] = []
        failed: list[str] = []

        for adapter, result in zip(self.adapters, results):
            if isinstance(result, BaseException):
                failure = result if isinstance(result, AdapterFailure) else AdapterFailure(adapter.name, result)
                log.error("adapter_failed", adapter=adapter.name, reason=str(failure.cause))
                failed.append(adapter.name)
                stats.append(FetchStats(
                    source=adapter.name,
                    count=0,
                    status="error",
                    error_message=str(failure.cause),
                ))
                continue

            events, stat = result
            merged.extend(events)
            stats.append(stat)

        deduped = dedupe_across_sources(merged)
        log.info(
            "scrape_merged",
            adapters=len(self.adapters),
            failed=len(failed),
            before_dedup=len(merged),
            count=len(deduped.events),
            duplicates=deduped.duplicates_removed,
        )
        if deduped.audit_trail:
            log.debug("dedup_audit", summary=format_audit_summary(deduped))

        return ScrapeResult(
            events=deduped.events,
            stats=stats,
            total_before_dedup=len(merged),
            failed_sources=failed,
        )

    async def _run_adapter(self, adapter: SourceAdapter) -> tuple[list[RawEvent], FetchStats]:
        """Run one adapter, recording its health either way.

        Raises:
            AdapterFailure: Wrapping whatever the adapter raised
        """
        if not self.health.is_healthy(adapter.name):
            previous = self.health.get_source_status(adapter.name)
            log.info(
                "adapter_retrying",
                adapter=adapter.name,
                consecutive_failures=previous["consecutive_failures"],
                last_error=previous["last_error"],
            )

        start = time.monotonic()
        try:
            events = await adapter.scrape()
        except Exception as e:
            self.health.record_failure(adapter.name, str(e), duration_ms=_elapsed_ms(start))
            raise AdapterFailure(adapter.name, e) from e

        duration_ms = _elapsed_ms(start)
        self.health.record_success(adapter.name, len(events), duration_ms=duration_ms)
        log.info("adapter_complete", adapter=adapter.name, count=len(events), duration_ms=duration_ms)
        return events, FetchStats(
            source=adapter.name,
            count=len(events),
            status="success",
            duration_ms=duration_ms,
        )

    async def run_one(self, name: str) -> tuple[list[RawEvent], FetchStats]:
        """Scrape a single adapter by name (no cross-source dedup).

        Raises:
            KeyError: If no adapter has that name
            AdapterFailure: If the adapter raised
        """
        adapter = self.get_adapter(name)
        if adapter is None:
            raise KeyError(name)
        return await self._run_adapter(adapter)
