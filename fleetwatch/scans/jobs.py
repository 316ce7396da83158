"""Concrete fleet scans — GPS freshness, document expiry, and extension points."""

from __future__ import annotations

from datetime import timedelta

import structlog

from fleetwatch.alerts.engine import AlertEngine, days_until
from fleetwatch.core.config import ScanConfig
from fleetwatch.core.types import (
    AlertFilter,
    AlertStatus,
    AlertType,
    EntityType,
    ScanReport,
    Vehicle,
    ensure_utc,
    utc_now,
)
from fleetwatch.fleet.directory import VehicleDirectory
from fleetwatch.scans.base import ScanJob

logger = structlog.get_logger(__name__)

# (document label, Vehicle attribute) pairs checked independently.
DOCUMENT_FIELDS: tuple[tuple[str, str], ...] = (
    ("Insurance", "insurance_expiry_date"),
    ("Driver License", "driver_license_expiry_date"),
)


class GpsStatusScan(ScanJob):
    """Raises a GPS-loss alert for each active vehicle with a stale fix."""

    name = "gps_status"

    def __init__(
        self,
        engine: AlertEngine,
        vehicles: VehicleDirectory,
        config: ScanConfig | None = None,
    ) -> None:
        super().__init__(config)
        self._engine = engine
        self._vehicles = vehicles

    async def run(self) -> ScanReport:
        vehicles = await self._vehicles.get_all_active()
        cutoff = utc_now() - timedelta(minutes=self._config.gps_staleness_minutes)

        async def check(vehicle: Vehicle) -> int:
            location = vehicle.last_known_location
            if location is None:
                return 0
            last_update = ensure_utc(location.timestamp)
            if last_update >= cutoff:
                return 0
            await self._engine.raise_gps_loss_alert(vehicle.id, last_update)
            return 1

        report = await self.scan_batched(vehicles, check, lambda v: v.id)
        logger.info("gps_scan_complete", **report.model_dump())
        return report


class DocumentExpiryScan(ScanJob):
    """Raises one alert per vehicle document expiring inside the window.

    Lapsed documents are alerted at ``critical`` unless
    ``alert_expired_documents`` is disabled, in which case they are skipped.
    A lapsed document is alerted once: while its expired alert is still
    open, later scans leave it alone.
    """

    name = "document_expiry"

    def __init__(
        self,
        engine: AlertEngine,
        vehicles: VehicleDirectory,
        config: ScanConfig | None = None,
    ) -> None:
        super().__init__(config)
        self._engine = engine
        self._vehicles = vehicles

    def _in_window(self, days: int) -> bool:
        if days <= 0:
            return self._config.alert_expired_documents
        return days <= self._config.document_expiry_window_days

    async def run(self) -> ScanReport:
        vehicles = await self._vehicles.get_all()
        now = utc_now()

        async def check(vehicle: Vehicle) -> int:
            raised = 0
            for label, attr in DOCUMENT_FIELDS:
                expiry = getattr(vehicle, attr)
                if expiry is None:
                    continue
                days = days_until(expiry, now)
                if not self._in_window(days):
                    continue
                if days <= 0 and await self._expired_alert_open(vehicle.id, label):
                    continue
                await self._engine.raise_document_expiry_alert(
                    vehicle.id, label, expiry, now=now,
                )
                raised += 1
            return raised

        report = await self.scan_batched(vehicles, check, lambda v: v.id)
        logger.info("document_scan_complete", **report.model_dump())
        return report

    async def _expired_alert_open(self, vehicle_id: str, label: str) -> bool:
        alerts = await self._engine.list_alerts(AlertFilter(
            type=AlertType.DOCUMENT_EXPIRY,
            entity_type=EntityType.DOCUMENT,
            entity_id=vehicle_id,
        ))
        return any(
            a.status != AlertStatus.RESOLVED
            and a.metadata.get("documentType") == label
            and a.metadata.get("daysUntilExpiry", 1) <= 0
            for a in alerts
        )


class MaintenanceDueScan(ScanJob):
    """Extension point: no maintenance schedule source is wired yet."""

    name = "maintenance_due"

    async def run(self) -> ScanReport:
        logger.debug("maintenance_scan_skipped")
        return ScanReport(job=self.name)


class RouteDeviationScan(ScanJob):
    """Extension point: no routing source is wired yet."""

    name = "route_deviation"

    async def run(self) -> ScanReport:
        logger.debug("route_deviation_scan_skipped")
        return ScanReport(job=self.name)
