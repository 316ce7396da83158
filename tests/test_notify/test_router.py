"""Tests for NotificationRouter — the severity policy table and fault isolation."""

from __future__ import annotations

from typing import Any

import pytest

from fleetwatch.core.exceptions import DispatchError
from fleetwatch.core.types import (
    Alert,
    AlertType,
    ChannelKind,
    Recipient,
    RecipientRole,
    Severity,
)
from fleetwatch.notify.channels import NotificationChannel
from fleetwatch.notify.dispatcher import NotificationDispatcher
from fleetwatch.notify.router import (
    NOTIFICATION_POLICY,
    NotificationRouter,
    RecipientDirectory,
)


# ── Helpers ─────────────────────────────────────────────────────


class FakeChannel(NotificationChannel):
    """In-memory channel for testing; optionally fails for one address."""

    def __init__(self, kind: ChannelKind, fail_for: str | None = None) -> None:
        self.kind = kind
        self.sent: list[Any] = []
        self._fail_for = fail_for

    async def send(self, msg: Any) -> None:
        if msg.to == self._fail_for:
            raise DispatchError("fake error")
        self.sent.append(msg)

    async def close(self) -> None:
        pass


def _recipients() -> RecipientDirectory:
    return RecipientDirectory([
        Recipient(recipient_id="admin", role=RecipientRole.ADMIN,
                  email="admin@x.io", phone="+100", push_token="tok-admin"),
        Recipient(recipient_id="fm", role=RecipientRole.FLEET_MANAGER,
                  email="fm@x.io", phone="+200", push_token="tok-fm"),
        Recipient(recipient_id="disp", role=RecipientRole.DISPATCHER,
                  email="disp@x.io", phone="+300", push_token="tok-disp"),
    ])


def _alert(severity: Severity) -> Alert:
    return Alert(
        alert_id="a1",
        type=AlertType.MAINTENANCE,
        severity=severity,
        title="t",
        entity_type="vehicle",
        entity_id="veh-1",
    )


def _channels(**kw: Any) -> dict[ChannelKind, FakeChannel]:
    return {kind: FakeChannel(kind, **kw) for kind in ChannelKind}


# ── Policy table ────────────────────────────────────────────────


class TestPolicyTable:
    def test_exact_table(self) -> None:
        table = {
            sev: (p.email, p.sms, p.push, set(p.roles))
            for sev, p in NOTIFICATION_POLICY.items()
        }
        assert table == {
            Severity.CRITICAL: (True, True, True, {
                RecipientRole.ADMIN, RecipientRole.FLEET_MANAGER, RecipientRole.DISPATCHER,
            }),
            Severity.HIGH: (True, False, True, {
                RecipientRole.FLEET_MANAGER, RecipientRole.DISPATCHER,
            }),
            Severity.MEDIUM: (True, False, False, {RecipientRole.DISPATCHER}),
            Severity.LOW: (False, False, False, set()),
        }

    def test_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            NOTIFICATION_POLICY[Severity.LOW] = NOTIFICATION_POLICY[Severity.CRITICAL]  # type: ignore[index]


class TestRouting:
    @pytest.mark.parametrize(
        ("severity", "expected"),
        [
            (Severity.CRITICAL, {
                ChannelKind.EMAIL: {"admin@x.io", "fm@x.io", "disp@x.io"},
                ChannelKind.SMS: {"+100", "+200", "+300"},
                ChannelKind.PUSH: {"tok-admin", "tok-fm", "tok-disp"},
            }),
            (Severity.HIGH, {
                ChannelKind.EMAIL: {"fm@x.io", "disp@x.io"},
                ChannelKind.SMS: set(),
                ChannelKind.PUSH: {"tok-fm", "tok-disp"},
            }),
            (Severity.MEDIUM, {
                ChannelKind.EMAIL: {"disp@x.io"},
                ChannelKind.SMS: set(),
                ChannelKind.PUSH: set(),
            }),
            (Severity.LOW, {
                ChannelKind.EMAIL: set(),
                ChannelKind.SMS: set(),
                ChannelKind.PUSH: set(),
            }),
        ],
    )
    async def test_sends_match_policy(
        self, severity: Severity, expected: dict[ChannelKind, set[str]],
    ) -> None:
        channels = _channels()
        router = NotificationRouter(
            NotificationDispatcher(list(channels.values())), _recipients(),
        )
        await router.route(_alert(severity))
        sent = {kind: {m.to for m in ch.sent} for kind, ch in channels.items()}
        assert sent == expected

    async def test_failure_for_one_recipient_isolated(self) -> None:
        channels = _channels(fail_for="fm@x.io")
        router = NotificationRouter(
            NotificationDispatcher(list(channels.values())), _recipients(),
        )
        await router.route(_alert(Severity.CRITICAL))
        assert {m.to for m in channels[ChannelKind.EMAIL].sent} == {"admin@x.io", "disp@x.io"}
        assert len(channels[ChannelKind.SMS].sent) == 3
        assert len(channels[ChannelKind.PUSH].sent) == 3

    async def test_unconfigured_channel_skipped(self) -> None:
        email = FakeChannel(ChannelKind.EMAIL)
        router = NotificationRouter(NotificationDispatcher([email]), _recipients())
        await router.route(_alert(Severity.CRITICAL))
        assert len(email.sent) == 3

    async def test_recipient_without_address_skipped(self) -> None:
        email = FakeChannel(ChannelKind.EMAIL)
        push = FakeChannel(ChannelKind.PUSH)
        recipients = RecipientDirectory([
            Recipient(recipient_id="d", role=RecipientRole.DISPATCHER, email="d@x.io"),
        ])
        router = NotificationRouter(NotificationDispatcher([email, push]), recipients)
        await router.route(_alert(Severity.HIGH))
        assert [m.to for m in email.sent] == ["d@x.io"]
        assert push.sent == []


class TestRecipientDirectory:
    def test_dedup_by_id(self) -> None:
        directory = RecipientDirectory([
            Recipient(recipient_id="x", role=RecipientRole.ADMIN, email="x@x.io"),
            Recipient(recipient_id="x", role=RecipientRole.ADMIN, email="x@x.io"),
            Recipient(recipient_id="y", role=RecipientRole.DISPATCHER),
        ])
        found = directory.for_roles((RecipientRole.ADMIN,))
        assert [r.recipient_id for r in found] == ["x"]

    def test_empty_roles(self) -> None:
        assert _recipients().for_roles(()) == []
