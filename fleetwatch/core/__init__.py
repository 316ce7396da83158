"""Core module — config, types, logging."""

from fleetwatch.core.config import Settings, get_settings, load_settings, reset_settings
from fleetwatch.core.logging import job_context, setup_logging
from fleetwatch.core.types import (
    Alert,
    AlertFilter,
    AlertSpec,
    AlertStats,
    AlertStatus,
    AlertType,
    ChannelKind,
    EntityType,
    HealthSnapshot,
    Recipient,
    RecipientRole,
    ScanReport,
    Severity,
    Subscription,
    UserNotification,
    Vehicle,
)

__all__ = [
    "Alert",
    "AlertFilter",
    "AlertSpec",
    "AlertStats",
    "AlertStatus",
    "AlertType",
    "ChannelKind",
    "EntityType",
    "HealthSnapshot",
    "Recipient",
    "RecipientRole",
    "ScanReport",
    "Settings",
    "Severity",
    "Subscription",
    "UserNotification",
    "Vehicle",
    "get_settings",
    "job_context",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
