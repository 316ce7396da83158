"""Convenience factory for wiring the monitoring stack."""

from __future__ import annotations

from dataclasses import dataclass

from fleetwatch.alerts.engine import AlertEngine
from fleetwatch.alerts.store import AlertStore, InMemoryAlertStore
from fleetwatch.core.config import NotificationsConfig, Settings
from fleetwatch.fleet.directory import (
    BookingDirectory,
    InMemorySubscriptionDirectory,
    SubscriptionDirectory,
    VehicleDirectory,
)
from fleetwatch.notify.channels import (
    EmailChannel,
    NotificationChannel,
    PushChannel,
    SmsChannel,
)
from fleetwatch.notify.dispatcher import NotificationDispatcher
from fleetwatch.notify.inbox import InMemoryNotificationInbox, NotificationInbox
from fleetwatch.notify.router import NotificationRouter, RecipientDirectory
from fleetwatch.scans.checker import SystemAlertChecker
from fleetwatch.scans.jobs import (
    DocumentExpiryScan,
    GpsStatusScan,
    MaintenanceDueScan,
    RouteDeviationScan,
)
from fleetwatch.scheduler.health import HealthMonitor
from fleetwatch.scheduler.jobs import RecurrenceReminderJob, SubscriptionNotificationJob
from fleetwatch.scheduler.scheduler import JobScheduler, ScheduledJob

SYSTEM_ALERTS_JOB = "system_alerts"


@dataclass
class MonitoringStack:
    """Every long-lived component of a running monitor."""

    store: AlertStore
    dispatcher: NotificationDispatcher
    router: NotificationRouter
    engine: AlertEngine
    checker: SystemAlertChecker
    health: HealthMonitor
    scheduler: JobScheduler
    inbox: NotificationInbox

    async def aclose(self) -> None:
        """Stop timers, let queued notifications finish, release sessions."""
        await self.scheduler.stop()
        await self.engine.drain()
        await self.dispatcher.close()


def create_channels(config: NotificationsConfig) -> list[NotificationChannel]:
    channels: list[NotificationChannel] = []

    if config.email.enabled:
        channels.append(EmailChannel(config.email, timeout_secs=config.timeout_secs))

    if config.sms.enabled:
        channels.append(SmsChannel(config.sms, timeout_secs=config.timeout_secs))

    if config.push.enabled:
        channels.append(PushChannel(config.push, timeout_secs=config.timeout_secs))

    return channels


def create_monitoring_stack(
    settings: Settings,
    vehicles: VehicleDirectory,
    bookings: BookingDirectory,
    subscriptions: SubscriptionDirectory | None = None,
    store: AlertStore | None = None,
    inbox: NotificationInbox | None = None,
    channels: list[NotificationChannel] | None = None,
) -> MonitoringStack:
    """Build the engine, scans, health monitor and scheduler from config.

    *channels* overrides the config-derived channel list (useful for tests).
    The scheduler is returned unstarted.
    """
    store = store or InMemoryAlertStore()
    inbox = inbox or InMemoryNotificationInbox()
    subscriptions = subscriptions or InMemorySubscriptionDirectory()

    dispatcher = NotificationDispatcher(
        channels if channels is not None else create_channels(settings.notifications),
    )
    router = NotificationRouter(
        dispatcher, RecipientDirectory(settings.notifications.recipients),
    )
    engine = AlertEngine(store, router, vehicles, bookings, config=settings.scans)

    health = HealthMonitor(settings.health)
    checker = SystemAlertChecker(
        [
            GpsStatusScan(engine, vehicles, settings.scans),
            DocumentExpiryScan(engine, vehicles, settings.scans),
            MaintenanceDueScan(settings.scans),
            RouteDeviationScan(settings.scans),
        ],
        health=health,
    )

    reminders = RecurrenceReminderJob(bookings, inbox)
    expiring = SubscriptionNotificationJob(subscriptions, inbox)

    cfg = settings.scheduler
    scheduler = JobScheduler(
        [
            ScheduledJob(SYSTEM_ALERTS_JOB, cfg.system_alerts_cron, checker.run_all_checks),
            ScheduledJob(reminders.name, cfg.booking_reminders_cron, reminders.run),
            ScheduledJob(expiring.name, cfg.subscription_notifications_cron, expiring.run),
        ],
        health=health,
        timezone=cfg.timezone,
        miss_grace_secs=cfg.miss_grace_secs,
    )

    return MonitoringStack(
        store=store,
        dispatcher=dispatcher,
        router=router,
        engine=engine,
        checker=checker,
        health=health,
        scheduler=scheduler,
        inbox=inbox,
    )
