"""Notification routing, rendering and delivery."""

from fleetwatch.notify.channels import (
    EmailChannel,
    NotificationChannel,
    PushChannel,
    SmsChannel,
)
from fleetwatch.notify.dispatcher import NotificationDispatcher
from fleetwatch.notify.formatters import render_email, render_push, render_sms
from fleetwatch.notify.inbox import InMemoryNotificationInbox, NotificationInbox
from fleetwatch.notify.router import (
    NOTIFICATION_POLICY,
    NotificationPolicy,
    NotificationRouter,
    RecipientDirectory,
)
from fleetwatch.notify.types import EmailMessage, PushMessage, SmsMessage

__all__ = [
    "NOTIFICATION_POLICY",
    "EmailChannel",
    "EmailMessage",
    "InMemoryNotificationInbox",
    "NotificationChannel",
    "NotificationDispatcher",
    "NotificationInbox",
    "NotificationPolicy",
    "NotificationRouter",
    "PushChannel",
    "PushMessage",
    "RecipientDirectory",
    "SmsChannel",
    "SmsMessage",
    "render_email",
    "render_push",
    "render_sms",
]
