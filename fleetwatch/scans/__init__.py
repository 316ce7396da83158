"""Periodic fleet scans and the system alert check."""

from fleetwatch.scans.base import ScanJob
from fleetwatch.scans.checker import SystemAlertChecker
from fleetwatch.scans.jobs import (
    DocumentExpiryScan,
    GpsStatusScan,
    MaintenanceDueScan,
    RouteDeviationScan,
)

__all__ = [
    "DocumentExpiryScan",
    "GpsStatusScan",
    "MaintenanceDueScan",
    "RouteDeviationScan",
    "ScanJob",
    "SystemAlertChecker",
]
