"""AlertEngine — raises, persists and routes alerts; owns the alert lifecycle."""

from __future__ import annotations

import asyncio
import math
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import pydantic
import structlog

from fleetwatch.alerts.store import AlertStore
from fleetwatch.core.config import ScanConfig
from fleetwatch.core.exceptions import (
    AlertNotFoundError,
    EntityNotFoundError,
    InvalidStateTransitionError,
    ValidationError,
)
from fleetwatch.core.types import (
    SYSTEM_TRIGGER,
    Alert,
    AlertFilter,
    AlertSpec,
    AlertStats,
    AlertStatus,
    AlertType,
    EntityType,
    Severity,
    Vehicle,
    ensure_utc,
    utc_now,
)
from fleetwatch.fleet.directory import BookingDirectory, VehicleDirectory
from fleetwatch.notify.router import NotificationRouter

logger = structlog.get_logger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60

_ALERT_TYPES = frozenset(t.value for t in AlertType)


class AlertEngine:
    """Raises typed alerts and manages their lifecycle.

    Notification fan-out runs as a detached task per alert, so a caller of
    :meth:`raise_alert` never waits on, or fails because of, delivery.

    Usage::

        engine = AlertEngine(store, router, vehicles, bookings)
        alert = await engine.raise_alert({
            "type": "maintenance",
            "title": "Brake check",
            "entityType": "vehicle",
            "entityId": "veh-1",
        })
        await engine.acknowledge(alert.alert_id, "user-7")
        await engine.resolve(alert.alert_id, "user-7")
    """

    def __init__(
        self,
        store: AlertStore,
        router: NotificationRouter | None,
        vehicles: VehicleDirectory,
        bookings: BookingDirectory | None = None,
        config: ScanConfig | None = None,
    ) -> None:
        self._store = store
        self._router = router
        self._vehicles = vehicles
        self._bookings = bookings
        self._config = config or ScanConfig()
        self._pending: set[asyncio.Task[None]] = set()
        # alert_id -> (lock, holders + waiters)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @property
    def store(self) -> AlertStore:
        return self._store

    @property
    def pending_notifications(self) -> int:
        """Number of notification tasks still in flight."""
        return len(self._pending)

    @property
    def tracked_locks(self) -> int:
        """Number of alerts with a lifecycle transition in progress."""
        return len(self._locks)

    # ── Raising ─────────────────────────────────────────────────

    async def raise_alert(self, spec: AlertSpec | Mapping[str, Any]) -> Alert:
        """Validate, default, persist and route an alert.

        Raises:
            ValidationError: unknown type or missing required field.
        """
        data = self._normalize(spec)
        alert = await self._store.create(data)
        logger.info(
            "alert_raised",
            alert_id=alert.alert_id,
            type=alert.type.value,
            severity=alert.severity.value,
            entity_type=alert.entity_type,
            entity_id=alert.entity_id,
        )
        self._notify(alert)
        return alert

    # Entry point used by other subsystems (booking urgency, payments).
    trigger_alert = raise_alert

    async def raise_gps_loss_alert(self, vehicle_id: str, last_seen: datetime) -> Alert:
        vehicle = await self._require_vehicle(vehicle_id)
        last_seen_iso = ensure_utc(last_seen).isoformat()
        return await self.raise_alert(AlertSpec(
            type=AlertType.GPS_LOSS,
            severity=Severity.HIGH,
            title="GPS Signal Lost",
            description=(
                f"Vehicle {vehicle.vehicle_registration} ({vehicle_id}) has lost"
                f" GPS signal. Last seen: {last_seen_iso}"
            ),
            entity_type=EntityType.VEHICLE,
            entity_id=vehicle_id,
            metadata={
                "lastSeen": last_seen_iso,
                "vehicleRegistration": vehicle.vehicle_registration,
                "driverId": vehicle.user_id,
            },
        ))

    async def raise_route_deviation_alert(
        self,
        booking_id: str,
        deviation_km: float,
        planned_route: Any = None,
        actual_route: Any = None,
    ) -> Alert:
        transporter_id = ""
        if self._bookings is not None:
            booking = await self._bookings.get(booking_id)
            if booking is None:
                raise EntityNotFoundError(EntityType.BOOKING, booking_id)
            transporter_id = booking.transporter_id

        severity = (
            Severity.HIGH
            if deviation_km > self._config.route_deviation_high_km
            else Severity.MEDIUM
        )
        return await self.raise_alert(AlertSpec(
            type=AlertType.ROUTE_DEVIATION,
            severity=severity,
            title="Route Deviation Detected",
            description=(
                f"Booking {booking_id} has deviated {deviation_km}km"
                " from planned route"
            ),
            entity_type=EntityType.BOOKING,
            entity_id=booking_id,
            metadata={
                "deviationDistance": deviation_km,
                "plannedRoute": planned_route,
                "actualRoute": actual_route,
                "transporterId": transporter_id,
            },
        ))

    async def raise_document_expiry_alert(
        self,
        vehicle_id: str,
        document_type: str,
        expiry_date: datetime,
        now: datetime | None = None,
    ) -> Alert:
        """Raise a document alert; *now* pins the clock the caller used."""
        vehicle = await self._require_vehicle(vehicle_id)
        expiry = ensure_utc(expiry_date)
        days = days_until(expiry, now)
        severity = self.document_expiry_severity(days)

        if days <= 0:
            title = f"{document_type} Expired"
            description = (
                f"{document_type} for vehicle {vehicle.vehicle_registration}"
                f" expired {abs(days)} days ago"
            )
        else:
            title = f"{document_type} Expiring Soon"
            description = (
                f"{document_type} for vehicle {vehicle.vehicle_registration}"
                f" expires in {days} days"
            )

        return await self.raise_alert(AlertSpec(
            type=AlertType.DOCUMENT_EXPIRY,
            severity=severity,
            title=title,
            description=description,
            entity_type=EntityType.DOCUMENT,
            entity_id=vehicle_id,
            metadata={
                "documentType": document_type,
                "expiryDate": expiry.isoformat(),
                "daysUntilExpiry": days,
                "vehicleRegistration": vehicle.vehicle_registration,
            },
        ))

    async def raise_maintenance_alert(
        self,
        vehicle_id: str,
        maintenance_type: str,
        due_date: datetime,
    ) -> Alert:
        vehicle = await self._require_vehicle(vehicle_id)
        return await self.raise_alert(AlertSpec(
            type=AlertType.MAINTENANCE,
            severity=Severity.MEDIUM,
            title="Maintenance Due",
            description=(
                f"{maintenance_type} maintenance due for vehicle"
                f" {vehicle.vehicle_registration}"
            ),
            entity_type=EntityType.VEHICLE,
            entity_id=vehicle_id,
            metadata={
                "maintenanceType": maintenance_type,
                "dueDate": ensure_utc(due_date).isoformat(),
                "vehicleRegistration": vehicle.vehicle_registration,
            },
        ))

    def document_expiry_severity(self, days: int) -> Severity:
        """Severity tier for a document *days* away from expiry."""
        if days <= 0:
            return Severity.CRITICAL
        if days <= self._config.document_high_severity_days:
            return Severity.HIGH
        if days <= self._config.document_expiry_window_days:
            return Severity.MEDIUM
        return Severity.LOW

    # ── Lifecycle ───────────────────────────────────────────────

    async def acknowledge(self, alert_id: str, user_id: str) -> Alert:
        """Move an ``active`` alert to ``acknowledged``.

        Raises:
            AlertNotFoundError: no such alert (nothing is written).
            InvalidStateTransitionError: alert is not ``active``.
        """
        _require_user(user_id)
        async with self._alert_lock(alert_id):
            alert = await self._store.get(alert_id)
            if alert is None:
                raise AlertNotFoundError(alert_id)
            if alert.status != AlertStatus.ACTIVE:
                raise InvalidStateTransitionError(
                    f"Cannot acknowledge alert {alert_id} in status {alert.status.value}",
                )
            updated = await self._store.update(alert_id, {
                "status": AlertStatus.ACKNOWLEDGED,
                "acknowledged_by": user_id,
                "acknowledged_at": utc_now(),
            })

        logger.info("alert_acknowledged", alert_id=alert_id, user_id=user_id)
        return updated

    async def resolve(self, alert_id: str, user_id: str) -> Alert:
        """Move an ``active`` or ``acknowledged`` alert to ``resolved``.

        Resolving straight from ``active`` also records the resolver as the
        acknowledger.

        Raises:
            AlertNotFoundError: no such alert (nothing is written).
            InvalidStateTransitionError: alert is already resolved.
        """
        _require_user(user_id)
        async with self._alert_lock(alert_id):
            alert = await self._store.get(alert_id)
            if alert is None:
                raise AlertNotFoundError(alert_id)
            if alert.status == AlertStatus.RESOLVED:
                raise InvalidStateTransitionError(
                    f"Alert {alert_id} is already resolved",
                )
            now = utc_now()
            patch: dict[str, Any] = {
                "status": AlertStatus.RESOLVED,
                "resolved_by": user_id,
                "resolved_at": now,
            }
            if alert.status == AlertStatus.ACTIVE:
                patch["acknowledged_by"] = user_id
                patch["acknowledged_at"] = now
            updated = await self._store.update(alert_id, patch)

        logger.info("alert_resolved", alert_id=alert_id, user_id=user_id)
        return updated

    # ── Queries ─────────────────────────────────────────────────

    async def get_alert(self, alert_id: str) -> Alert:
        alert = await self._store.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    async def list_alerts(
        self,
        filters: AlertFilter | None = None,
        limit: int | None = None,
    ) -> list[Alert]:
        return await self._store.list(filters, limit)

    async def stats(self) -> AlertStats:
        return await self._store.stats()

    async def drain(self) -> None:
        """Wait for every in-flight notification task to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ── Internal ────────────────────────────────────────────────

    def _normalize(self, spec: AlertSpec | Mapping[str, Any]) -> dict[str, Any]:
        if not isinstance(spec, AlertSpec):
            try:
                spec = AlertSpec.model_validate(dict(spec))
            except pydantic.ValidationError as exc:
                raise ValidationError(f"Invalid alert data: {exc}") from exc

        if spec.type not in _ALERT_TYPES:
            raise ValidationError(f"Unknown alert type: {spec.type!r}")
        for name in ("title", "entity_type", "entity_id"):
            if not getattr(spec, name):
                raise ValidationError(f"Missing required alert field: {name}")
        if spec.status not in (None, AlertStatus.ACTIVE):
            raise ValidationError("Alerts must be created in status 'active'")

        return {
            "type": AlertType(spec.type),
            "severity": spec.severity or Severity.MEDIUM,
            "title": spec.title,
            "description": spec.description,
            "entity_type": str(spec.entity_type),
            "entity_id": spec.entity_id,
            "status": AlertStatus.ACTIVE,
            "metadata": dict(spec.metadata),
            "triggered_by": spec.triggered_by or SYSTEM_TRIGGER,
            "expires_at": spec.expires_at,
        }

    def _notify(self, alert: Alert) -> None:
        if self._router is None:
            return
        task = asyncio.create_task(self._route_safely(alert))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _route_safely(self, alert: Alert) -> None:
        try:
            await self._router.route(alert)  # type: ignore[union-attr]
        except Exception:
            logger.exception("alert_notification_failed", alert_id=alert.alert_id)

    async def _require_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = await self._vehicles.get(vehicle_id)
        if vehicle is None:
            raise EntityNotFoundError(EntityType.VEHICLE, vehicle_id)
        return vehicle

    @asynccontextmanager
    async def _alert_lock(self, alert_id: str) -> AsyncIterator[None]:
        entry = self._locks.get(alert_id)
        lock, users = entry if entry is not None else (asyncio.Lock(), 0)
        self._locks[alert_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            _, users = self._locks[alert_id]
            if users <= 1:
                del self._locks[alert_id]
            else:
                self._locks[alert_id] = (lock, users - 1)


def days_until(expiry: datetime, now: datetime | None = None) -> int:
    """Whole days until *expiry*, rounded up (negative once lapsed)."""
    now = now or utc_now()
    delta = ensure_utc(expiry) - ensure_utc(now)
    return math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)


def _require_user(user_id: str) -> None:
    if not user_id:
        raise ValidationError("user_id is required")
