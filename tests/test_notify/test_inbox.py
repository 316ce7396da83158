"""Tests for InMemoryNotificationInbox."""

from __future__ import annotations

from fleetwatch.core.types import UserNotification
from fleetwatch.notify.inbox import InMemoryNotificationInbox


def _note(**kw: object) -> UserNotification:
    defaults: dict[str, object] = {
        "user_id": "u1",
        "type": "Recurring Booking Reminder",
        "message": "soon",
        "notification_type": "recurrence_reminder",
        "booking_id": "bk-1",
    }
    defaults.update(kw)
    return UserNotification(**defaults)  # type: ignore[arg-type]


class TestInbox:
    async def test_create_assigns_id(self) -> None:
        inbox = InMemoryNotificationInbox()
        stored = await inbox.create(_note())
        assert stored.id
        assert len(inbox) == 1

    async def test_has_been_sent_matches_type(self) -> None:
        inbox = InMemoryNotificationInbox()
        await inbox.create(_note())
        assert await inbox.has_been_sent("bk-1", "recurrence_reminder")
        assert not await inbox.has_been_sent("bk-1", "other")
        assert not await inbox.has_been_sent("bk-2", "recurrence_reminder")

    async def test_list_for_user(self) -> None:
        inbox = InMemoryNotificationInbox()
        await inbox.create(_note())
        await inbox.create(_note(user_id="u2"))
        assert [n.user_id for n in await inbox.list_for_user("u1")] == ["u1"]
