"""Tests for notification channels — HTTP mocking, DispatchError, session management."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import SecretStr

from fleetwatch.core.config import EmailConfig, PushConfig, SmsConfig
from fleetwatch.core.exceptions import DispatchError
from fleetwatch.notify.channels import EmailChannel, PushChannel, SmsChannel
from fleetwatch.notify.types import EmailMessage, PushMessage, SmsMessage


# ── Helpers ─────────────────────────────────────────────────────


def _mock_response(status: int = 200, text: str = "ok") -> AsyncMock:
    resp = AsyncMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=False)
    return resp


def _session(resp: AsyncMock | None = None, exc: Exception | None = None) -> MagicMock:
    session = MagicMock()
    if exc is not None:
        session.post = MagicMock(side_effect=exc)
    else:
        session.post = MagicMock(return_value=resp or _mock_response())
    session.closed = False
    return session


def _sms() -> SmsChannel:
    return SmsChannel(SmsConfig(
        enabled=True,
        api_url="https://sms.example/send",
        api_token=SecretStr("sms-token"),
        sender_id="FLEET",
    ))


# ── SmsChannel ──────────────────────────────────────────────────


class TestSmsChannel:
    async def test_send_success(self) -> None:
        ch = _sms()
        session = _session()
        ch._session = session

        await ch.send(SmsMessage(to="+254700000001", message="ALERT high: x."))

        session.post.assert_called_once()
        url = session.post.call_args[0][0]
        kwargs = session.post.call_args[1]
        assert url == "https://sms.example/send"
        assert kwargs["json"] == {
            "senderID": "FLEET",
            "message": "ALERT high: x.",
            "phone": "+254700000001",
        }
        assert kwargs["headers"]["Authorization"] == "Bearer sms-token"

    async def test_send_failure_status(self) -> None:
        ch = _sms()
        ch._session = _session(_mock_response(500, "gateway down"))
        with pytest.raises(DispatchError, match="500"):
            await ch.send(SmsMessage(to="+1", message="m"))

    async def test_send_exception(self) -> None:
        ch = _sms()
        ch._session = _session(exc=ConnectionError("timeout"))
        with pytest.raises(DispatchError):
            await ch.send(SmsMessage(to="+1", message="m"))

    async def test_timeout_wrapped(self) -> None:
        ch = _sms()
        ch._session = _session(exc=TimeoutError())
        with pytest.raises(DispatchError):
            await ch.send(SmsMessage(to="+1", message="m"))


# ── EmailChannel ────────────────────────────────────────────────


class TestEmailChannel:
    async def test_send_success(self) -> None:
        ch = EmailChannel(EmailConfig(
            enabled=True,
            api_url="https://mail.example/send",
            api_key=SecretStr("mail-key"),
            sender="ops@fleet.io",
        ))
        session = _session(_mock_response(202))
        ch._session = session

        await ch.send(EmailMessage(to="a@b.io", subject="[HIGH] t", html="<p>x</p>"))

        kwargs = session.post.call_args[1]
        assert kwargs["json"]["from"] == "ops@fleet.io"
        assert kwargs["json"]["to"] == "a@b.io"
        assert kwargs["json"]["subject"] == "[HIGH] t"
        assert kwargs["headers"]["Authorization"] == "Bearer mail-key"

    async def test_send_failure_status(self) -> None:
        ch = EmailChannel(EmailConfig(enabled=True, api_url="https://mail.example/send"))
        ch._session = _session(_mock_response(401, "bad key"))
        with pytest.raises(DispatchError):
            await ch.send(EmailMessage(to="a@b.io", subject="s", html="h"))


# ── PushChannel ─────────────────────────────────────────────────


class TestPushChannel:
    async def test_send_success(self) -> None:
        ch = PushChannel(PushConfig(
            enabled=True,
            api_url="https://push.example/send",
            server_key=SecretStr("srv"),
        ))
        session = _session()
        ch._session = session

        await ch.send(PushMessage(to="tok", title="T", body="B", data={"alertId": "a1"}))

        kwargs = session.post.call_args[1]
        assert kwargs["json"]["to"] == "tok"
        assert kwargs["json"]["notification"] == {"title": "T", "body": "B"}
        assert kwargs["json"]["data"] == {"alertId": "a1"}
        assert kwargs["headers"]["Authorization"] == "key=srv"


# ── Session management ──────────────────────────────────────────


class TestSession:
    async def test_close_session(self) -> None:
        ch = _sms()
        mock_session = AsyncMock()
        mock_session.closed = False
        ch._session = mock_session

        await ch.close()
        mock_session.close.assert_awaited_once()
        assert ch._session is None

    async def test_close_when_no_session(self) -> None:
        ch = _sms()
        await ch.close()  # should not raise

    async def test_lazy_session_creation(self) -> None:
        ch = _sms()
        assert ch._session is None
        session = ch._get_session()
        assert session is not None
        assert ch._get_session() is session
        await ch.close()
