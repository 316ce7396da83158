"""User notification inbox — in-app messages for bookers and subscribers."""

from __future__ import annotations

import abc
import uuid

from fleetwatch.core.types import UserNotification


class NotificationInbox(abc.ABC):
    """Persistence for in-app user notifications."""

    @abc.abstractmethod
    async def create(self, notification: UserNotification) -> UserNotification:
        """Store *notification*, assigning an id."""

    @abc.abstractmethod
    async def has_been_sent(self, booking_id: str, notification_type: str) -> bool:
        """Whether a notification of this type already exists for the booking."""

    @abc.abstractmethod
    async def list_for_user(self, user_id: str) -> list[UserNotification]:
        """All notifications for *user_id*, oldest first."""


class InMemoryNotificationInbox(NotificationInbox):
    def __init__(self) -> None:
        self._items: list[UserNotification] = []

    def __len__(self) -> int:
        return len(self._items)

    async def create(self, notification: UserNotification) -> UserNotification:
        stored = notification.model_copy(update={"id": uuid.uuid4().hex})
        self._items.append(stored)
        return stored.model_copy()

    async def has_been_sent(self, booking_id: str, notification_type: str) -> bool:
        return any(
            n.booking_id == booking_id and n.notification_type == notification_type
            for n in self._items
        )

    async def list_for_user(self, user_id: str) -> list[UserNotification]:
        return [n.model_copy() for n in self._items if n.user_id == user_id]
