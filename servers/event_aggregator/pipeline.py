"""
The single orchestration entry point: scrape -> dedupe -> reconcile.

Both the scheduler and the on-demand trigger call sync_events(), so a run
behaves the same whoever starts it.
"""

import uuid
from typing import Any

import structlog

from .config import bind_run_context, clear_run_context
from .errors import ConfigurationError
from .models import SyncSummary
from .orchestrator import ScrapeOrchestrator
from .reconcile import ReconciliationEngine
from .store import EventStore

log = structlog.get_logger(__name__)


async def check_store(store: EventStore) -> None:
    """Fail fast when the store cannot answer a trivial query.

    Raises:
        ConfigurationError: If the store is unreachable
    """
    try:
        await store.count()
    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(f"Store unreachable: {e}") from e


async def sync_events(
    store: EventStore,
    orchestrator: ScrapeOrchestrator,
    trigger: str = "on_demand",
) -> SyncSummary:
    """
    Run one full scrape and reconcile it into the store.

    Args:
        store: Opened event store
        orchestrator: Adapters to scrape
        trigger: "scheduled" or "on_demand", attached to every log line

    Returns:
        SyncSummary with inserted/updated/errors/total

    Raises:
        ConfigurationError: If the store is unreachable at the start of the run
    """
    run_id = uuid.uuid4().hex[:12]
    bind_run_context(run_id, trigger)
    try:
        log.info("sync_started")
        await check_store(store)

        result = await orchestrator.run()
        if not result.events:
            log.warning("sync_empty_scrape", failed_sources=result.failed_sources)
            return SyncSummary()

        summary = await ReconciliationEngine(store).reconcile(result.events)
        log.info("sync_complete", **summary.model_dump())
        return summary
    finally:
        clear_run_context()


async def run_sync_safely(
    store: EventStore,
    orchestrator: ScrapeOrchestrator,
    trigger: str = "on_demand",
) -> dict[str, Any]:
    """
    Run sync_events() and always return a structured response.

    Returns:
        {"success": bool, "message": str, "data": {inserted, updated, errors, total}}
    """
    try:
        summary = await sync_events(store, orchestrator, trigger)
    except ConfigurationError as e:
        log.error("sync_failed", trigger=trigger, error=str(e))
        return {
            "success": False,
            "message": f"Sync failed: {e}",
            "data": SyncSummary().model_dump(),
        }
    except Exception as e:
        log.error("sync_crashed", trigger=trigger, error=str(e), exc_info=True)
        return {
            "success": False,
            "message": f"Sync failed unexpectedly: {e}",
            "data": SyncSummary().model_dump(),
        }

    return {
        "success": True,
        "message": "Events scraped and saved successfully",
        "data": summary.model_dump(),
    }
