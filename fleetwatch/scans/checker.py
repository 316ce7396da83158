"""SystemAlertChecker — runs every scan job concurrently with per-job isolation."""

from __future__ import annotations

import asyncio
import time

import structlog

from fleetwatch.core.types import ScanReport
from fleetwatch.scans.base import ScanJob
from fleetwatch.scheduler.health import HealthMonitor

logger = structlog.get_logger(__name__)


class SystemAlertChecker:
    """Full-scan entry point used by the scheduler and the debug endpoint.

    Usage::

        checker = SystemAlertChecker([gps_scan, doc_scan], health)
        reports = await checker.check_system_alerts()
    """

    def __init__(self, jobs: list[ScanJob], health: HealthMonitor | None = None) -> None:
        self._jobs = list(jobs)
        self._health = health

    @property
    def jobs(self) -> list[ScanJob]:
        return list(self._jobs)

    async def run_all_checks(self) -> list[ScanReport]:
        """Run all jobs; a failing job is logged and does not cancel the others.

        Returns the reports of the jobs that completed.
        """
        start = time.monotonic()
        results = await asyncio.gather(
            *(job.run() for job in self._jobs),
            return_exceptions=True,
        )

        reports: list[ScanReport] = []
        for job, result in zip(self._jobs, results, strict=True):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error(
                    "scan_job_failed",
                    job=job.name,
                    error=repr(result),
                    exc_info=result,
                )
            else:
                reports.append(result)

        if self._health is not None:
            self._health.record_execution(start)

        logger.info(
            "system_alert_check_complete",
            duration_ms=round((time.monotonic() - start) * 1000, 1),
            jobs=len(self._jobs),
            failed_jobs=len(self._jobs) - len(reports),
            alerts_raised=sum(r.alerts_raised for r in reports),
        )
        return reports

    check_system_alerts = run_all_checks
