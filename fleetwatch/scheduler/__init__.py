"""Timers, user notification jobs and execution health."""

from fleetwatch.scheduler.health import HealthMonitor, HealthSignal
from fleetwatch.scheduler.jobs import RecurrenceReminderJob, SubscriptionNotificationJob
from fleetwatch.scheduler.scheduler import JobScheduler, ScheduledJob

__all__ = [
    "HealthMonitor",
    "HealthSignal",
    "JobScheduler",
    "RecurrenceReminderJob",
    "ScheduledJob",
    "SubscriptionNotificationJob",
]
