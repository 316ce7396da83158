"""Tests for create_monitoring_stack — channel wiring and scheduled timers."""

from __future__ import annotations

from datetime import timedelta

from pydantic import SecretStr

from fleetwatch.core.config import (
    EmailConfig,
    NotificationsConfig,
    PushConfig,
    Settings,
    SmsConfig,
)
from fleetwatch.core.types import ChannelKind, Location, Vehicle, utc_now
from fleetwatch.fleet.directory import InMemoryBookingDirectory, InMemoryVehicleDirectory
from fleetwatch.monitor.factory import create_channels, create_monitoring_stack
from fleetwatch.notify.channels import EmailChannel, SmsChannel


class TestCreateChannels:
    def test_no_channels_by_default(self) -> None:
        assert create_channels(NotificationsConfig()) == []

    def test_enabled_channels(self) -> None:
        cfg = NotificationsConfig(
            email=EmailConfig(enabled=True, api_url="https://m"),
            sms=SmsConfig(enabled=True, api_token=SecretStr("t")),
            push=PushConfig(enabled=False),
        )
        channels = create_channels(cfg)
        assert [type(c) for c in channels] == [EmailChannel, SmsChannel]


class TestCreateStack:
    def test_scheduler_timers(self) -> None:
        stack = create_monitoring_stack(
            Settings(), InMemoryVehicleDirectory(), InMemoryBookingDirectory(),
        )
        assert stack.scheduler.job_names == [
            "system_alerts",
            "booking_recurrence_reminders",
            "subscription_notifications",
        ]
        assert not stack.scheduler.running

    def test_scan_jobs(self) -> None:
        stack = create_monitoring_stack(
            Settings(), InMemoryVehicleDirectory(), InMemoryBookingDirectory(),
        )
        assert [j.name for j in stack.checker.jobs] == [
            "gps_status", "document_expiry", "maintenance_due", "route_deviation",
        ]

    def test_channels_from_config(self) -> None:
        settings = Settings(notifications=NotificationsConfig(
            push=PushConfig(enabled=True, api_url="https://p"),
        ))
        stack = create_monitoring_stack(
            settings, InMemoryVehicleDirectory(), InMemoryBookingDirectory(),
        )
        assert stack.dispatcher.channel_kinds == [ChannelKind.PUSH]

    async def test_system_alert_run_end_to_end(self) -> None:
        vehicles = InMemoryVehicleDirectory([
            Vehicle(
                id="veh-1",
                last_known_location=Location(timestamp=utc_now() - timedelta(hours=1)),
            ),
        ])
        stack = create_monitoring_stack(
            Settings(), vehicles, InMemoryBookingDirectory(), channels=[],
        )
        assert await stack.scheduler.run_now("system_alerts") is not None
        stats = await stack.engine.stats()
        assert stats.total_active == 1
        assert stack.health.snapshot().sample_count == 1
        await stack.aclose()
