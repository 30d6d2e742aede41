"""
Cron-driven recurring trigger.

Fires the job at every cron boundary (hourly on the hour by default).
Each fire runs as its own task: a slow run does not delay the next fire,
and overlapping runs are not prevented.
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import structlog
from croniter import croniter

from .config import SCHEDULE_CRON
from .models import as_utc, utc_now

log = structlog.get_logger(__name__)

Job = Callable[[], Awaitable[Any]]


class Scheduler:
    """Run `job` on a cron schedule until stopped."""

    def __init__(
        self,
        job: Job,
        cron: str = SCHEDULE_CRON,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if not croniter.is_valid(cron):
            raise ValueError(f"Invalid cron expression: {cron!r}")
        self.job = job
        self.cron = cron
        self.clock = clock
        self.sleep = sleep
        self.fire_count = 0
        self.last_fired: Optional[datetime] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._jobs: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def active_jobs(self) -> int:
        return len(self._jobs)

    def next_fire_time(self, after: Optional[datetime] = None) -> datetime:
        """First cron boundary strictly after `after` (default: now)."""
        base = as_utc(after) if after else self.clock()
        return croniter(self.cron, base).get_next(datetime)

    def start(self) -> None:
        """Start the schedule loop on the running event loop."""
        if self.is_running:
            return
        self._loop_task = asyncio.create_task(self._run_loop())
        log.info("scheduler_started", cron=self.cron, next_fire=self.next_fire_time().isoformat())

    async def stop(self) -> None:
        """Stop firing and cancel runs still in flight."""
        tasks = list(self._jobs)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        log.info("scheduler_stopped", fired=self.fire_count)

    def fire(self) -> asyncio.Task:
        """Spawn one run of the job now."""
        self.fire_count += 1
        self.last_fired = self.clock()
        task = asyncio.create_task(self._run_job())
        self._jobs.add(task)
        task.add_done_callback(self._jobs.discard)
        return task

    async def _run_loop(self) -> None:
        previous: Optional[datetime] = None
        while True:
            now = self.clock()
            fire_at = self.next_fire_time(max(now, previous) if previous else now)
            delay = max(0.0, (fire_at - now).total_seconds())
            log.debug("scheduler_waiting", fire_at=fire_at.isoformat(), delay=round(delay, 1))
            await self.sleep(delay)
            previous = fire_at
            self.fire()

    async def _run_job(self) -> None:
        try:
            await self.job()
        except Exception as e:
            log.error("scheduled_job_failed", error=str(e), exc_info=True)
