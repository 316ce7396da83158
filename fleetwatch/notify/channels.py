"""Notification channels — email, SMS and push delivery over HTTP."""

from __future__ import annotations

import abc
from typing import Any

import aiohttp
import structlog

from fleetwatch.core.config import EmailConfig, PushConfig, SmsConfig
from fleetwatch.core.exceptions import DispatchError
from fleetwatch.core.types import ChannelKind
from fleetwatch.notify.types import EmailMessage, PushMessage, SmsMessage

logger = structlog.get_logger(__name__)

_DEFAULT_TIMEOUT_SECS = 10.0


class NotificationChannel(abc.ABC):
    """Base class for HTTP delivery channels.

    ``send`` raises :class:`DispatchError` on any failure; callers are
    expected to catch per recipient.
    """

    kind: ChannelKind

    def __init__(self, timeout_secs: float = _DEFAULT_TIMEOUT_SECS) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout_secs)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _post(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> None:
        try:
            session = self._get_session()
            async with session.post(url, json=payload, headers=headers) as resp:
                if 200 <= resp.status < 300:
                    return
                body = await resp.text()
                logger.warning(
                    "channel_send_failed",
                    channel=self.kind.value,
                    status=resp.status,
                    body=body[:200],
                )
                raise DispatchError(
                    f"{self.kind.value} gateway returned HTTP {resp.status}",
                )
        except DispatchError:
            raise
        except Exception as exc:
            raise DispatchError(f"{self.kind.value} send error: {exc!r}") from exc

    @abc.abstractmethod
    async def send(self, msg: Any) -> None:
        """Deliver one rendered message."""

    async def close(self) -> None:
        """Release the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


class EmailChannel(NotificationChannel):
    """Delivers HTML email through a transactional mail API."""

    kind = ChannelKind.EMAIL

    def __init__(self, config: EmailConfig, timeout_secs: float = _DEFAULT_TIMEOUT_SECS) -> None:
        super().__init__(timeout_secs)
        self._url = config.api_url
        self._api_key = config.api_key.get_secret_value()
        self._sender = config.sender

    async def send(self, msg: EmailMessage) -> None:
        payload = {
            "from": self._sender,
            "to": msg.to,
            "subject": msg.subject,
            "html": msg.html,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        await self._post(self._url, payload, headers)


class SmsChannel(NotificationChannel):
    """Delivers SMS through a bearer-token JSON gateway."""

    kind = ChannelKind.SMS

    def __init__(self, config: SmsConfig, timeout_secs: float = _DEFAULT_TIMEOUT_SECS) -> None:
        super().__init__(timeout_secs)
        self._url = config.api_url
        self._token = config.api_token.get_secret_value()
        self._sender_id = config.sender_id

    async def send(self, msg: SmsMessage) -> None:
        payload = {
            "senderID": self._sender_id,
            "message": msg.message,
            "phone": msg.to,
        }
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._token}",
        }
        await self._post(self._url, payload, headers)


class PushChannel(NotificationChannel):
    """Delivers mobile push notifications through a push gateway."""

    kind = ChannelKind.PUSH

    def __init__(self, config: PushConfig, timeout_secs: float = _DEFAULT_TIMEOUT_SECS) -> None:
        super().__init__(timeout_secs)
        self._url = config.api_url
        self._server_key = config.server_key.get_secret_value()

    async def send(self, msg: PushMessage) -> None:
        payload = {
            "to": msg.to,
            "notification": {"title": msg.title, "body": msg.body},
            "data": msg.data,
        }
        headers = {"Authorization": f"key={self._server_key}"}
        await self._post(self._url, payload, headers)
