"""Tests for SystemAlertChecker — job isolation and health recording."""

from __future__ import annotations

from fleetwatch.core.types import ScanReport
from fleetwatch.scans.base import ScanJob
from fleetwatch.scans.checker import SystemAlertChecker
from fleetwatch.scheduler.health import HealthMonitor


class StaticScan(ScanJob):
    def __init__(self, name: str, raised: int = 0, fail: bool = False) -> None:
        super().__init__()
        self.name = name
        self._raised = raised
        self._fail = fail
        self.runs = 0

    async def run(self) -> ScanReport:
        self.runs += 1
        if self._fail:
            raise RuntimeError(f"{self.name} broke")
        return ScanReport(job=self.name, scanned=1, alerts_raised=self._raised)


class TestRunAllChecks:
    async def test_collects_reports(self) -> None:
        checker = SystemAlertChecker([StaticScan("a", 1), StaticScan("b", 2)])
        reports = await checker.run_all_checks()
        assert [r.job for r in reports] == ["a", "b"]
        assert sum(r.alerts_raised for r in reports) == 3

    async def test_failing_job_isolated(self) -> None:
        ok = StaticScan("ok", 1)
        bad = StaticScan("bad", fail=True)
        checker = SystemAlertChecker([bad, ok])
        reports = await checker.run_all_checks()
        assert [r.job for r in reports] == ["ok"]
        assert bad.runs == 1 and ok.runs == 1

    async def test_records_execution(self) -> None:
        health = HealthMonitor()
        checker = SystemAlertChecker([StaticScan("a")], health=health)
        await checker.check_system_alerts()
        snap = health.snapshot()
        assert snap.sample_count == 1
        assert snap.last_execution_timestamp is not None

    async def test_records_execution_even_when_job_fails(self) -> None:
        health = HealthMonitor()
        health.record_miss()
        checker = SystemAlertChecker([StaticScan("bad", fail=True)], health=health)
        await checker.run_all_checks()
        assert health.snapshot().sample_count == 1
        assert health.snapshot().consecutive_misses == 0
