"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr

from fleetwatch.core.types import Recipient

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class ScanConfig(BaseModel):
    """Thresholds and batching for the periodic fleet scans."""

    batch_size: int = 50
    batch_pause_secs: float = 0.1
    gps_staleness_minutes: float = 15.0
    document_expiry_window_days: int = 30
    document_high_severity_days: int = 7
    route_deviation_high_km: float = 20.0
    alert_expired_documents: bool = True


class HealthConfig(BaseModel):
    """Execution-health tracking thresholds."""

    window_size: int = 10
    slow_average_secs: float = 60.0
    max_consecutive_misses: int = 3


class SchedulerConfig(BaseModel):
    """Cron cadences for the named timers."""

    system_alerts_cron: str = "*/15 * * * *"
    booking_reminders_cron: str = "0 8 * * *"
    subscription_notifications_cron: str = "0 9 * * *"
    timezone: str = "UTC"
    miss_grace_secs: float = 30.0


class EmailConfig(BaseModel):
    """Transactional mail API channel."""

    enabled: bool = False
    api_url: str = ""
    api_key: SecretStr = SecretStr("")
    sender: str = "alerts@fleetwatch.local"


class SmsConfig(BaseModel):
    """SMS gateway channel."""

    enabled: bool = False
    api_url: str = "https://api.mobilesasa.com/v1/send/message"
    api_token: SecretStr = SecretStr("")
    sender_id: str = "FLEETWATCH"


class PushConfig(BaseModel):
    """Push gateway channel."""

    enabled: bool = False
    api_url: str = ""
    server_key: SecretStr = SecretStr("")


class NotificationsConfig(BaseModel):
    """Channels, request timeout and the recipient directory."""

    email: EmailConfig = EmailConfig()
    sms: SmsConfig = SmsConfig()
    push: PushConfig = PushConfig()
    timeout_secs: float = 10.0
    recipients: list[Recipient] = Field(default_factory=list)


class HttpConfig(BaseModel):
    """Health / debug HTTP surface."""

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8080
    username: str = ""
    password: SecretStr = SecretStr("")


class Settings(BaseModel):
    """Root settings container."""

    logging: LoggingConfig = LoggingConfig()
    scans: ScanConfig = ScanConfig()
    health: HealthConfig = HealthConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    notifications: NotificationsConfig = NotificationsConfig()
    http: HttpConfig = HttpConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
