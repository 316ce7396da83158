"""Tests for fleetwatch/core/config.py — YAML loading, defaults, SecretStr."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from fleetwatch.core.config import (
    HealthConfig,
    ScanConfig,
    SchedulerConfig,
    Settings,
    SmsConfig,
    get_settings,
    load_settings,
    reset_settings,
)
from fleetwatch.core.types import ChannelKind, RecipientRole


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    """Settings should have sensible defaults when no YAML is provided."""

    def test_default_scan_config(self) -> None:
        cfg = ScanConfig()
        assert cfg.batch_size == 50
        assert cfg.batch_pause_secs == 0.1
        assert cfg.gps_staleness_minutes == 15.0
        assert cfg.document_expiry_window_days == 30

    def test_default_health_config(self) -> None:
        cfg = HealthConfig()
        assert cfg.window_size == 10
        assert cfg.slow_average_secs == 60.0
        assert cfg.max_consecutive_misses == 3

    def test_default_scheduler_cadences(self) -> None:
        cfg = SchedulerConfig()
        assert cfg.system_alerts_cron == "*/15 * * * *"
        assert cfg.booking_reminders_cron == "0 8 * * *"
        assert cfg.subscription_notifications_cron == "0 9 * * *"

    def test_default_sms_secret_empty(self) -> None:
        cfg = SmsConfig()
        assert cfg.enabled is False
        assert cfg.api_token.get_secret_value() == ""

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.logging.level == "INFO"
        assert s.notifications.timeout_secs == 10.0
        assert s.notifications.recipients == []
        assert s.http.port == 8080


class TestYamlLoading:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        s = load_settings(tmp_path / "nope.yaml")
        assert s.scans.batch_size == 50

    def test_partial_override(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({
            "scans": {"batch_size": 10},
            "notifications": {"sms": {"enabled": True, "api_token": "tok"}},
        }))
        s = load_settings(path)
        assert s.scans.batch_size == 10
        assert s.scans.batch_pause_secs == 0.1
        assert s.notifications.sms.enabled is True
        assert s.notifications.sms.api_token.get_secret_value() == "tok"

    def test_secret_not_in_repr(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({"http": {"password": "hunter2"}}))
        s = load_settings(path)
        assert "hunter2" not in repr(s.http)

    def test_recipients_parsed(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({
            "notifications": {
                "recipients": [
                    {"recipient_id": "r1", "role": "dispatcher", "email": "d@x.io"},
                ],
            },
        }))
        s = load_settings(path)
        r = s.notifications.recipients[0]
        assert r.role == RecipientRole.DISPATCHER
        assert r.address_for(ChannelKind.EMAIL) == "d@x.io"
        assert r.address_for(ChannelKind.SMS) is None

    def test_non_mapping_yaml_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n")
        s = load_settings(path)
        assert s == Settings()


class TestCaching:
    def test_get_settings_caches(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({"http": {"port": 9999}}))
        load_settings(path)
        assert get_settings().http.port == 9999
        assert get_settings() is get_settings()

    def test_reset_clears_cache(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({"http": {"port": 9999}}))
        first = load_settings(path)
        reset_settings()
        assert get_settings() is not first
