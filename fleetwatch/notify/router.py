"""Severity-driven notification routing.

Maps an alert's severity to a fixed policy (channels + recipient roles)
and fans the alert out to every matching (channel, recipient) pair.
Delivery is best-effort: every failure is logged and swallowed.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

import structlog

from fleetwatch.core.types import (
    Alert,
    ChannelKind,
    Recipient,
    RecipientRole,
    Severity,
)
from fleetwatch.notify.dispatcher import NotificationDispatcher
from fleetwatch.notify.formatters import render_email, render_push, render_sms

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NotificationPolicy:
    """Which channels fire and which roles receive them."""

    email: bool
    sms: bool
    push: bool
    roles: tuple[RecipientRole, ...]

    @property
    def channels(self) -> tuple[ChannelKind, ...]:
        enabled = (
            (ChannelKind.EMAIL, self.email),
            (ChannelKind.SMS, self.sms),
            (ChannelKind.PUSH, self.push),
        )
        return tuple(kind for kind, on in enabled if on)


NOTIFICATION_POLICY: Mapping[Severity, NotificationPolicy] = MappingProxyType({
    Severity.CRITICAL: NotificationPolicy(
        email=True,
        sms=True,
        push=True,
        roles=(
            RecipientRole.ADMIN,
            RecipientRole.FLEET_MANAGER,
            RecipientRole.DISPATCHER,
        ),
    ),
    Severity.HIGH: NotificationPolicy(
        email=True,
        sms=False,
        push=True,
        roles=(RecipientRole.FLEET_MANAGER, RecipientRole.DISPATCHER),
    ),
    Severity.MEDIUM: NotificationPolicy(
        email=True,
        sms=False,
        push=False,
        roles=(RecipientRole.DISPATCHER,),
    ),
    Severity.LOW: NotificationPolicy(
        email=False,
        sms=False,
        push=False,
        roles=(),
    ),
})


class RecipientDirectory:
    """Role → recipients lookup built from configuration."""

    def __init__(self, recipients: list[Recipient] | None = None) -> None:
        self._recipients: list[Recipient] = list(recipients or [])

    def for_roles(self, roles: tuple[RecipientRole, ...]) -> list[Recipient]:
        """Recipients holding any of *roles*, deduplicated by id, in config order."""
        wanted = set(roles)
        seen: set[str] = set()
        result: list[Recipient] = []
        for r in self._recipients:
            if r.role in wanted and r.recipient_id not in seen:
                seen.add(r.recipient_id)
                result.append(r)
        return result


class NotificationRouter:
    """Applies :data:`NOTIFICATION_POLICY` to an alert and dispatches."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        recipients: RecipientDirectory,
    ) -> None:
        self._dispatcher = dispatcher
        self._recipients = recipients

    async def route(self, alert: Alert) -> None:
        policy = NOTIFICATION_POLICY[alert.severity]
        channels = policy.channels
        if not channels:
            logger.debug(
                "alert_not_routed",
                alert_id=alert.alert_id,
                severity=alert.severity.value,
            )
            return

        recipients = self._recipients.for_roles(policy.roles)
        for channel in channels:
            if not self._dispatcher.supports(channel):
                logger.debug(
                    "channel_not_configured",
                    alert_id=alert.alert_id,
                    channel=channel.value,
                )
                continue
            for recipient in recipients:
                address = recipient.address_for(channel)
                if not address:
                    continue
                try:
                    await self._send(channel, alert, address)
                except Exception:
                    logger.exception(
                        "notification_dispatch_failed",
                        alert_id=alert.alert_id,
                        channel=channel.value,
                        recipient=recipient.recipient_id,
                    )

    async def _send(self, channel: ChannelKind, alert: Alert, address: str) -> None:
        if channel == ChannelKind.EMAIL:
            await self._dispatcher.send_email(render_email(alert, address))
        elif channel == ChannelKind.SMS:
            await self._dispatcher.send_sms(render_sms(alert, address))
        else:
            await self._dispatcher.send_push(render_push(alert, address))
