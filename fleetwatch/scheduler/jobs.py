"""User-facing notification jobs run on daily timers."""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog

from fleetwatch.core.types import (
    Booking,
    Subscription,
    UserNotification,
    ensure_utc,
    utc_now,
)
from fleetwatch.fleet.directory import BookingDirectory, SubscriptionDirectory
from fleetwatch.notify.inbox import NotificationInbox

logger = structlog.get_logger(__name__)

RECURRENCE_REMINDER = "recurrence_reminder"
SUBSCRIPTION_EXPIRING = "subscription_expiring"

# Days-ahead offsets for subscription expiry reminders.
SUBSCRIPTION_REMINDER_DAYS: tuple[int, ...] = (7, 3, 1)


class RecurrenceReminderJob:
    """Reminds users of recurring bookings picked up within ``lookahead``.

    A booking that already has a reminder in the inbox is skipped, so
    repeated runs inside the window send at most one reminder each.
    """

    name = "booking_recurrence_reminders"

    def __init__(
        self,
        bookings: BookingDirectory,
        inbox: NotificationInbox,
        lookahead: timedelta = timedelta(days=2),
    ) -> None:
        self._bookings = bookings
        self._inbox = inbox
        self._lookahead = lookahead

    async def run(self, now: datetime | None = None) -> int:
        start = ensure_utc(now) if now is not None else utc_now()
        upcoming = await self._bookings.list_upcoming_recurring(start, start + self._lookahead)

        sent = 0
        for booking in upcoming:
            if await self._inbox.has_been_sent(booking.id, RECURRENCE_REMINDER):
                continue
            await self._inbox.create(_recurrence_reminder(booking))
            sent += 1
            logger.info("recurrence_reminder_sent", booking_id=booking.id, user_id=booking.user_id)

        logger.info("recurrence_reminders_complete", candidates=len(upcoming), sent=sent)
        return sent


class SubscriptionNotificationJob:
    """Warns subscribers 7, 3 and 1 days before their subscription ends."""

    name = "subscription_notifications"

    def __init__(
        self,
        subscriptions: SubscriptionDirectory,
        inbox: NotificationInbox,
        days_ahead: tuple[int, ...] = SUBSCRIPTION_REMINDER_DAYS,
    ) -> None:
        self._subscriptions = subscriptions
        self._inbox = inbox
        self._days_ahead = days_ahead

    async def run(self, now: datetime | None = None) -> int:
        today = (ensure_utc(now) if now is not None else utc_now()).replace(
            hour=0, minute=0, second=0, microsecond=0,
        )

        sent = 0
        for days in self._days_ahead:
            day_start = today + timedelta(days=days)
            ending = await self._subscriptions.list_active_ending_between(
                day_start, day_start + timedelta(days=1),
            )
            for subscription in ending:
                try:
                    await self._inbox.create(_expiry_reminder(subscription, days))
                except Exception:
                    logger.exception(
                        "subscription_reminder_failed",
                        subscription_id=subscription.id,
                        days_remaining=days,
                    )
                    continue
                sent += 1
            logger.info("subscription_reminders_sent", days_remaining=days, count=len(ending))

        return sent


def _recurrence_reminder(booking: Booking) -> UserNotification:
    pickup = ensure_utc(booking.pickup_date) if booking.pickup_date else None
    when = pickup.strftime("%Y-%m-%d") if pickup else "soon"
    return UserNotification(
        user_id=booking.user_id,
        type="Recurring Booking Reminder",
        message=f"Your recurring booking is coming up on {when}",
        notification_type=RECURRENCE_REMINDER,
        booking_id=booking.id,
        metadata={"originalDate": pickup.isoformat() if pickup else None},
    )


def _expiry_reminder(subscription: Subscription, days: int) -> UserNotification:
    plan = subscription.plan_name or "subscription"
    unit = "day" if days == 1 else "days"
    return UserNotification(
        user_id=subscription.user_id,
        type="Subscription Expiring",
        message=f"Your {plan} plan expires in {days} {unit}",
        notification_type=SUBSCRIPTION_EXPIRING,
        subscription_id=subscription.id,
        metadata={
            "daysRemaining": days,
            "endDate": ensure_utc(subscription.end_date).isoformat(),
        },
    )
