"""Alert engine, persistence and error taxonomy."""

from fleetwatch.alerts.engine import AlertEngine, days_until
from fleetwatch.alerts.store import AlertStore, InMemoryAlertStore
from fleetwatch.core.exceptions import (
    AlertingError,
    AlertNotFoundError,
    DispatchError,
    EntityNotFoundError,
    InvalidStateTransitionError,
    NotFoundError,
    ScanError,
    ValidationError,
)

__all__ = [
    "AlertEngine",
    "AlertNotFoundError",
    "AlertStore",
    "AlertingError",
    "DispatchError",
    "EntityNotFoundError",
    "InMemoryAlertStore",
    "InvalidStateTransitionError",
    "NotFoundError",
    "ScanError",
    "ValidationError",
    "days_until",
]
