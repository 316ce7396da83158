"""Notification dispatcher — one send through one channel to one recipient."""

from __future__ import annotations

import structlog

from fleetwatch.core.exceptions import DispatchError
from fleetwatch.core.types import ChannelKind
from fleetwatch.notify.channels import NotificationChannel
from fleetwatch.notify.types import EmailMessage, PushMessage, SmsMessage

# Dedicated structured logger for delivery records.
notification_logger = structlog.get_logger("notification_log")

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """Sends rendered messages through the configured channels.

    Each ``send_*`` call is independent and raises :class:`DispatchError`
    when the channel is not configured or delivery fails.
    """

    def __init__(self, channels: list[NotificationChannel] | None = None) -> None:
        self._channels: dict[ChannelKind, NotificationChannel] = {
            ch.kind: ch for ch in channels or []
        }

    def supports(self, kind: ChannelKind) -> bool:
        return kind in self._channels

    @property
    def channel_kinds(self) -> list[ChannelKind]:
        return list(self._channels)

    async def send_email(self, msg: EmailMessage) -> None:
        await self._send(ChannelKind.EMAIL, msg.to, msg)

    async def send_sms(self, msg: SmsMessage) -> None:
        await self._send(ChannelKind.SMS, msg.to, msg)

    async def send_push(self, msg: PushMessage) -> None:
        await self._send(ChannelKind.PUSH, msg.to, msg)

    async def _send(
        self,
        kind: ChannelKind,
        to: str,
        msg: EmailMessage | SmsMessage | PushMessage,
    ) -> None:
        channel = self._channels.get(kind)
        if channel is None:
            raise DispatchError(f"{kind.value} channel is not configured")
        await channel.send(msg)
        notification_logger.info("notification_sent", channel=kind.value, to=to)

    async def close(self) -> None:
        for ch in self._channels.values():
            try:
                await ch.close()
            except Exception:
                logger.exception("channel_close_error", channel=type(ch).__name__)
