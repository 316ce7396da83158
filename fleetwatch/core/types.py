"""Domain types for fleet alerting — alerts, fleet entities, recipients, health."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class _WireModel(BaseModel):
    """Base for models persisted / exchanged with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict using the camelCase storage names."""
        return self.model_dump(mode="json", by_alias=True)


# ── Alert taxonomy ──────────────────────────────────────────────


class AlertType(StrEnum):
    """Closed set of alert types."""

    GPS_LOSS = "gps_loss"
    ROUTE_DEVIATION = "route_deviation"
    MAINTENANCE = "maintenance"
    DOCUMENT_EXPIRY = "document_expiry"
    BOOKING_URGENT = "booking_urgent"
    VEHICLE_OFFLINE = "vehicle_offline"
    PAYMENT_ISSUE = "payment_issue"


class Severity(StrEnum):
    """Alert severity — ``rank`` gives the ordering low < medium < high < critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class AlertStatus(StrEnum):
    """Alert lifecycle state."""

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class EntityType(StrEnum):
    """Subject kinds an alert may point at."""

    VEHICLE = "vehicle"
    DRIVER = "driver"
    BOOKING = "booking"
    DOCUMENT = "document"


class RecipientRole(StrEnum):
    """Operational roles that receive alert notifications."""

    ADMIN = "admin"
    FLEET_MANAGER = "fleet_manager"
    DISPATCHER = "dispatcher"


class ChannelKind(StrEnum):
    """Notification delivery channel."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


SYSTEM_TRIGGER = "system"


# ── Alert records ───────────────────────────────────────────────


class AlertSpec(_WireModel):
    """Caller-supplied alert data, before validation and defaulting."""

    type: str
    severity: Severity | None = None
    title: str = ""
    description: str = ""
    entity_type: str = ""
    entity_id: str = ""
    status: AlertStatus | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    triggered_by: str | None = None
    expires_at: datetime | None = None


class Alert(_WireModel):
    """A persisted alert."""

    alert_id: str
    type: AlertType
    severity: Severity = Severity.MEDIUM
    title: str
    description: str = ""
    entity_type: str
    entity_id: str
    status: AlertStatus = AlertStatus.ACTIVE
    metadata: dict[str, Any] = Field(default_factory=dict)
    triggered_by: str = SYSTEM_TRIGGER
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime | None = None


class AlertFilter(_WireModel):
    """Equality filters for listing alerts. ``None`` fields are ignored."""

    status: AlertStatus | None = None
    type: AlertType | None = None
    severity: Severity | None = None
    entity_type: str | None = None
    entity_id: str | None = None

    def matches(self, alert: Alert) -> bool:
        for name in ("status", "type", "severity", "entity_type", "entity_id"):
            wanted = getattr(self, name)
            if wanted is not None and getattr(alert, name) != wanted:
                return False
        return True


class AlertStats(_WireModel):
    """Aggregate counts over open alerts."""

    total_active: int = 0
    total_acknowledged: int = 0
    by_severity: dict[str, int] = Field(
        default_factory=lambda: {s.value: 0 for s in Severity},
    )
    by_type: dict[str, int] = Field(default_factory=dict)


# ── Fleet entities (consumed from collaborators) ────────────────


class Location(BaseModel):
    """Last reported GPS fix."""

    latitude: float = 0.0
    longitude: float = 0.0
    timestamp: datetime


class Vehicle(BaseModel):
    """Transporter vehicle as exposed by the fleet directory."""

    id: str
    active: bool = True
    vehicle_registration: str = ""
    user_id: str = ""
    last_known_location: Location | None = None
    insurance_expiry_date: datetime | None = None
    driver_license_expiry_date: datetime | None = None


class Booking(BaseModel):
    """Booking as exposed by the booking directory."""

    id: str
    transporter_id: str = ""
    user_id: str = ""
    status: str = "pending"
    pickup_date: datetime | None = None
    is_recurrence_instance: bool = False


class Subscription(BaseModel):
    """Marketplace subscription as exposed by the subscription source."""

    id: str
    user_id: str
    plan_name: str = ""
    end_date: datetime
    is_active: bool = True


class Recipient(BaseModel):
    """A notification contact bound to an operational role."""

    recipient_id: str
    role: RecipientRole
    name: str = ""
    email: str | None = None
    phone: str | None = None
    push_token: str | None = None

    def address_for(self, channel: ChannelKind) -> str | None:
        if channel == ChannelKind.EMAIL:
            return self.email
        if channel == ChannelKind.SMS:
            return self.phone
        return self.push_token


# ── Scan & health reporting ─────────────────────────────────────


class ScanReport(BaseModel):
    """Outcome of one scan job run."""

    job: str
    scanned: int = 0
    alerts_raised: int = 0
    failures: int = 0


class HealthSnapshot(BaseModel):
    """Point-in-time view of scheduler execution health."""

    last_execution_timestamp: datetime | None = None
    consecutive_misses: int = 0
    average_duration_ms: float = 0.0
    sample_count: int = 0


class UserNotification(BaseModel):
    """In-app notification delivered to an end user (not an operator alert)."""

    id: str = ""
    user_id: str
    type: str
    message: str
    notification_type: str
    booking_id: str | None = None
    subscription_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
