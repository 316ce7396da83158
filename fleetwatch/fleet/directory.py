"""Fleet entity lookup — collaborator interfaces and in-memory implementations.

The real transporter, booking and subscription stores live outside this
service; the monitoring engine only needs the read surface defined here.
"""

from __future__ import annotations

import abc
from datetime import datetime
from pathlib import Path
from typing import Any, NamedTuple

import yaml

from fleetwatch.core.types import Booking, Subscription, Vehicle, ensure_utc

# Booking states that still warrant a pickup reminder.
ACTIVE_BOOKING_STATUSES = frozenset({"pending", "confirmed"})


class VehicleDirectory(abc.ABC):
    """Read access to the transporter / vehicle population."""

    @abc.abstractmethod
    async def get_all_active(self) -> list[Vehicle]:
        """Vehicles currently marked active."""

    @abc.abstractmethod
    async def get_all(self) -> list[Vehicle]:
        """Every known vehicle."""

    @abc.abstractmethod
    async def get(self, vehicle_id: str) -> Vehicle | None:
        """A single vehicle, or None."""


class BookingDirectory(abc.ABC):
    """Read access to bookings."""

    @abc.abstractmethod
    async def get(self, booking_id: str) -> Booking | None:
        """A single booking, or None."""

    @abc.abstractmethod
    async def list_upcoming_recurring(self, start: datetime, end: datetime) -> list[Booking]:
        """Active recurring-instance bookings with pickup in ``[start, end]``."""


class SubscriptionDirectory(abc.ABC):
    """Read access to marketplace subscriptions."""

    @abc.abstractmethod
    async def list_active_ending_between(
        self, start: datetime, end: datetime,
    ) -> list[Subscription]:
        """Active subscriptions whose end date is in ``[start, end)``."""


class InMemoryVehicleDirectory(VehicleDirectory):
    """Vehicle directory backed by a dict."""

    def __init__(self, vehicles: list[Vehicle] | None = None) -> None:
        self._vehicles: dict[str, Vehicle] = {v.id: v for v in vehicles or []}

    def upsert(self, vehicle: Vehicle) -> None:
        self._vehicles[vehicle.id] = vehicle

    async def get_all_active(self) -> list[Vehicle]:
        return [v for v in self._vehicles.values() if v.active]

    async def get_all(self) -> list[Vehicle]:
        return list(self._vehicles.values())

    async def get(self, vehicle_id: str) -> Vehicle | None:
        return self._vehicles.get(vehicle_id)


class InMemoryBookingDirectory(BookingDirectory):
    """Booking directory backed by a dict."""

    def __init__(self, bookings: list[Booking] | None = None) -> None:
        self._bookings: dict[str, Booking] = {b.id: b for b in bookings or []}

    def upsert(self, booking: Booking) -> None:
        self._bookings[booking.id] = booking

    async def get(self, booking_id: str) -> Booking | None:
        return self._bookings.get(booking_id)

    async def list_upcoming_recurring(self, start: datetime, end: datetime) -> list[Booking]:
        return [
            b for b in self._bookings.values()
            if b.is_recurrence_instance
            and b.pickup_date is not None
            and start <= ensure_utc(b.pickup_date) <= end
            and b.status in ACTIVE_BOOKING_STATUSES
        ]


class InMemorySubscriptionDirectory(SubscriptionDirectory):
    """Subscription directory backed by a dict."""

    def __init__(self, subscriptions: list[Subscription] | None = None) -> None:
        self._subscriptions: dict[str, Subscription] = {
            s.id: s for s in subscriptions or []
        }

    def upsert(self, subscription: Subscription) -> None:
        self._subscriptions[subscription.id] = subscription

    async def list_active_ending_between(
        self, start: datetime, end: datetime,
    ) -> list[Subscription]:
        return [
            s for s in self._subscriptions.values()
            if s.is_active and start <= ensure_utc(s.end_date) < end
        ]


class FleetDirectories(NamedTuple):
    vehicles: InMemoryVehicleDirectory
    bookings: InMemoryBookingDirectory
    subscriptions: InMemorySubscriptionDirectory


def load_fleet_fixture(path: str | Path) -> FleetDirectories:
    """Build in-memory directories from a YAML file.

    The file holds optional ``vehicles``, ``bookings`` and ``subscriptions``
    lists; a missing file yields empty directories.
    """
    data: dict[str, Any] = {}
    fixture = Path(path)
    if fixture.exists():
        with open(fixture) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    return FleetDirectories(
        vehicles=InMemoryVehicleDirectory(
            [Vehicle(**v) for v in data.get("vehicles") or []]
        ),
        bookings=InMemoryBookingDirectory(
            [Booking(**b) for b in data.get("bookings") or []]
        ),
        subscriptions=InMemorySubscriptionDirectory(
            [Subscription(**s) for s in data.get("subscriptions") or []]
        ),
    )
