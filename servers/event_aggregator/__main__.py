"""
Service entry point for the Sydney Events Aggregator.

This server provides tools for:
- Scraping every source and saving the results (on demand)
- Scraping a single source for diagnostics
- Counting stored events
- Reporting source health and scheduler state

Run with: python -m servers.event_aggregator [--once | --serve | --source NAME] [--memory]
"""

import argparse
import asyncio
import json
import signal
import sys
from typing import Optional

import structlog

from .config import SCHEDULE_CRON, configure_logging, load_config
from .errors import AdapterFailure, ConfigurationError
from .models import utc_now
from .orchestrator import ScrapeOrchestrator
from .pipeline import run_sync_safely
from .resilience import SourceHealth
from .scheduler import Scheduler
from .sources import SourceAdapter, default_adapters
from .store import EventStore, InMemoryEventStore, MongoEventStore, open_store

log = structlog.get_logger(__name__)


class EventAggregatorServer:
    """Tool-dispatch server around one store and one set of adapters."""

    def __init__(
        self,
        store: EventStore,
        adapters: Optional[list[SourceAdapter]] = None,
        cron: str = SCHEDULE_CRON,
    ):
        self.store = store
        self.health = SourceHealth()
        self.orchestrator = ScrapeOrchestrator(
            adapters if adapters is not None else default_adapters(), self.health
        )
        self.scheduler = Scheduler(self.scheduled_sync, cron=cron)
        self.tools = {
            "scrape_events": self.scrape_events,
            "scrape_source": self.scrape_source,
            "count_events": self.count_events,
            "get_status": self.get_status,
        }

    async def scrape_events(self) -> dict:
        """
        Scrape all sources and save the results.

        Never raises: failures come back as {"success": False, ...}.
        """
        return await run_sync_safely(self.store, self.orchestrator, trigger="on_demand")

    async def scheduled_sync(self) -> dict:
        result = await run_sync_safely(self.store, self.orchestrator, trigger="scheduled")
        if not result["success"]:
            log.error("scheduled_sync_failed", message=result["message"])
        return result

    async def scrape_source(self, name: str, limit: int = 5) -> dict:
        """Scrape one source without saving. Returns a sample of events."""
        try:
            events, stats = await self.orchestrator.run_one(name)
        except KeyError:
            available = [adapter.name for adapter in self.orchestrator.adapters]
            return {"success": False, "message": f"Unknown source '{name}'. Available: {available}"}
        except AdapterFailure as e:
            return {"success": False, "message": str(e)}

        return {
            "success": True,
            "message": f"{stats.source} returned {stats.count} events",
            "data": {
                "count": len(events),
                "stats": stats.model_dump(),
                "events": [e.model_dump(mode="json") for e in events[:limit]],
            },
        }

    async def count_events(self) -> dict:
        """Total, upcoming and past event counts."""
        now = utc_now()
        total = await self.store.count()
        upcoming = await self.store.count({"date": {"$gte": now}})
        return {
            "total": total,
            "upcoming": upcoming,
            "past": total - upcoming,
        }

    async def get_status(self, source: Optional[str] = None) -> dict:
        """Source health plus scheduler state, or one source's health when named."""
        if source is not None:
            status = self.health.get_source_status(source)
            if status is None:
                return {"success": False, "message": f"No scrape recorded for '{source}'"}
            return {"success": True, "source": source, **status}

        return {
            "health": self.health.get_status(),
            "scheduler": {
                "running": self.scheduler.is_running,
                "cron": self.scheduler.cron,
                "fired": self.scheduler.fire_count,
                "active_runs": self.scheduler.active_jobs,
                "next_fire": self.scheduler.next_fire_time().isoformat(),
            },
        }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m servers.event_aggregator",
        description="Scrape Sydney event listings and reconcile them into a store.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Run one scrape and print the summary.")
    mode.add_argument("--serve", action="store_true", help="Run the hourly schedule until interrupted.")
    mode.add_argument("--source", metavar="NAME", help="Scrape a single source without saving.")
    parser.add_argument("--limit", type=int, default=5, help="Events to print with --source.")
    parser.add_argument("--memory", action="store_true", help="Use an in-memory store instead of MongoDB.")
    return parser


async def serve(server: EventAggregatorServer) -> None:
    """Run the scheduler until SIGINT or SIGTERM."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    server.scheduler.start()
    try:
        await stop.wait()
        log.info("shutdown_requested")
    finally:
        await server.scheduler.stop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


async def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point. Returns a process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    configure_logging(config["logging"]["level"], config["logging"]["format"])

    store: EventStore = (
        InMemoryEventStore()
        if args.memory
        else MongoEventStore(config["store"]["uri"], config["store"]["database"])
    )
    server = EventAggregatorServer(store, cron=config["schedule"]["cron"])

    if args.source:
        result = await server.scrape_source(args.source, limit=args.limit)
        print(json.dumps(result, indent=2, default=str))
        return 0 if result["success"] else 1

    try:
        await open_store(store)
    except ConfigurationError as e:
        log.error("store_open_failed", error=str(e))
        print(json.dumps({"success": False, "message": str(e)}, indent=2))
        return 1

    try:
        if args.once:
            result = await server.scrape_events()
            print(json.dumps(result, indent=2))
            return 0 if result["success"] else 1
        if args.serve:
            await serve(server)
            return 0

        print("Sydney Events Aggregator")
        print("Available tools:", list(server.tools.keys()))
        print("\nUse --once for a single run or --serve for the hourly schedule.")
        return 0
    finally:
        await store.close()


def run() -> None:
    """Console-script wrapper around main()."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
