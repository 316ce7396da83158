"""Fleet entity directories consumed by the scans, jobs and the alert engine."""

from fleetwatch.fleet.directory import (
    BookingDirectory,
    FleetDirectories,
    InMemoryBookingDirectory,
    InMemorySubscriptionDirectory,
    InMemoryVehicleDirectory,
    SubscriptionDirectory,
    VehicleDirectory,
    load_fleet_fixture,
)

__all__ = [
    "BookingDirectory",
    "FleetDirectories",
    "InMemoryBookingDirectory",
    "InMemorySubscriptionDirectory",
    "InMemoryVehicleDirectory",
    "SubscriptionDirectory",
    "VehicleDirectory",
    "load_fleet_fixture",
]
