"""JobScheduler — cron-driven timers with error boundaries and miss detection."""

from __future__ import annotations

import asyncio
import datetime
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from zoneinfo import ZoneInfo

import structlog
from croniter import croniter

from fleetwatch.core.logging import job_context
from fleetwatch.scheduler.health import HealthMonitor

logger = structlog.get_logger(__name__)

JobFunc = Callable[[], Awaitable[Any]]
Clock = Callable[[], datetime.datetime]


@dataclass(frozen=True)
class ScheduledJob:
    """A named timer: a 5-field cron *cadence* and the coroutine it fires."""

    name: str
    cadence: str
    func: JobFunc

    def __post_init__(self) -> None:
        if not croniter.is_valid(self.cadence):
            raise ValueError(f"Invalid cron expression for {self.name!r}: {self.cadence!r}")


class JobScheduler:
    """Owns one background task per scheduled job.

    Each task sleeps until the job's next fire time, runs it inside an
    error boundary and re-arms.  A run never overlaps itself: fire times
    that pass while the job is still running, or that the loop reaches
    more than ``miss_grace_secs`` late, are reported to the health monitor
    as missed triggers.

    Usage::

        scheduler = JobScheduler(
            [ScheduledJob("system_alerts", "*/15 * * * *", checker.run_all_checks)],
            health=health,
        )
        scheduler.start()
        # ...
        await scheduler.stop()
    """

    def __init__(
        self,
        jobs: list[ScheduledJob] | None = None,
        health: HealthMonitor | None = None,
        timezone: str = "UTC",
        miss_grace_secs: float = 30.0,
        clock: Clock | None = None,
    ) -> None:
        self._jobs: dict[str, ScheduledJob] = {}
        self._health = health
        self._tz = ZoneInfo(timezone)
        self._clock = clock
        self._miss_grace = miss_grace_secs
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._stop_event: asyncio.Event | None = None
        self._running = False
        for job in jobs or []:
            self.add_job(job)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def job_names(self) -> list[str]:
        return list(self._jobs)

    def add_job(self, job: ScheduledJob) -> None:
        if job.name in self._jobs:
            raise ValueError(f"Duplicate job name: {job.name}")
        self._jobs[job.name] = job
        if self._running:
            self._spawn(job)

    def next_fire_time(self, name: str, after: datetime.datetime | None = None) -> datetime.datetime:
        job = self._get(name)
        base = after or self._now()
        return croniter(job.cadence, base).get_next(datetime.datetime)

    # ── Lifecycle ───────────────────────────────────────────────

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._stop_event = asyncio.Event()
        for job in self._jobs.values():
            self._spawn(job)
        logger.info("scheduler_started", jobs=self.job_names)

    def stop_all(self) -> None:
        """Disable all future firings now; in-flight runs are left to finish."""
        if not self._running:
            return
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        logger.info("scheduler_stopped", jobs=self.job_names)

    async def stop(self) -> None:
        """Disable all timers and wait for in-flight runs to complete."""
        self.stop_all()
        tasks = list(self._tasks.values())
        self._tasks.clear()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def run_now(self, name: str) -> Any:
        """Fire *name* once, outside its cadence."""
        job = self._get(name)
        return await self._execute(job)

    # ── Internal loop ───────────────────────────────────────────

    def _now(self) -> datetime.datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.datetime.now(self._tz)

    def _get(self, name: str) -> ScheduledJob:
        try:
            return self._jobs[name]
        except KeyError:
            raise ValueError(f"Unknown job: {name}") from None

    def _spawn(self, job: ScheduledJob) -> None:
        self._tasks[job.name] = asyncio.create_task(
            self._loop(job), name=f"scheduler:{job.name}"
        )

    async def _loop(self, job: ScheduledJob) -> None:
        schedule = croniter(job.cadence, self._now())
        fire_at: datetime.datetime = schedule.get_next(datetime.datetime)

        while self._running:
            delay = (fire_at - self._now()).total_seconds()
            if delay > 0 and await self._wait_for_stop(delay):
                return
            if not self._running:
                return

            lateness = (self._now() - fire_at).total_seconds()
            if lateness > self._miss_grace:
                logger.warning(
                    "scheduled_job_late",
                    job=job.name,
                    scheduled_for=fire_at.isoformat(),
                    lateness_secs=round(lateness, 1),
                )
                self._record_miss()

            await self._execute(job)

            fire_at = schedule.get_next(datetime.datetime)
            now = self._now()
            skipped = 0
            while fire_at <= now:
                skipped += 1
                fire_at = schedule.get_next(datetime.datetime)
            if skipped:
                logger.warning("scheduled_job_overran", job=job.name, missed_triggers=skipped)
                for _ in range(skipped):
                    self._record_miss()

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Sleep up to *timeout* seconds; True if stop was requested meanwhile."""
        assert self._stop_event is not None
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    async def _execute(self, job: ScheduledJob) -> Any:
        with job_context(job.name):
            start = time.monotonic()
            logger.info("scheduled_job_started")
            try:
                result = await job.func()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("scheduled_job_failed")
                return None
            logger.info(
                "scheduled_job_complete",
                duration_ms=round((time.monotonic() - start) * 1000, 1),
            )
            return result

    def _record_miss(self) -> None:
        if self._health is not None:
            self._health.record_miss()
