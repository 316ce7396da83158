"""Pure functions that render an Alert into channel-specific messages.

Rendering is the only place that reads ``Alert.metadata``.
"""

from __future__ import annotations

from html import escape as html_escape

from fleetwatch.core.types import Alert
from fleetwatch.notify.types import EmailMessage, PushMessage, SmsMessage

_SMS_DESCRIPTION_CHARS = 100
_TIME_FORMAT = "%Y-%m-%d %H:%M UTC"


def _subject(alert: Alert) -> str:
    return f"[{alert.severity.value.upper()}] {alert.title}"


def render_email(alert: Alert, to: str) -> EmailMessage:
    """HTML email with the alert summary and any metadata as a detail list."""
    parts = [
        f"<h2>{html_escape(alert.title)}</h2>",
        f"<p>{html_escape(alert.description)}</p>",
        f"<p><strong>Entity:</strong> {html_escape(alert.entity_type)}"
        f" {html_escape(alert.entity_id)}</p>",
        f"<p><strong>Time:</strong> {alert.created_at.strftime(_TIME_FORMAT)}</p>",
    ]
    if alert.metadata:
        items = "".join(
            f"<li><code>{html_escape(str(k))}</code>: {html_escape(str(v))}</li>"
            for k, v in alert.metadata.items()
        )
        parts.append(f"<ul>{items}</ul>")
    parts.append("<p>Please take appropriate action.</p>")

    return EmailMessage(to=to, subject=_subject(alert), html="\n".join(parts))


def render_sms(alert: Alert, to: str) -> SmsMessage:
    """Short plain-text SMS; the description is truncated."""
    description = alert.description
    if len(description) > _SMS_DESCRIPTION_CHARS:
        description = description[:_SMS_DESCRIPTION_CHARS] + "..."
    text = f"ALERT {alert.severity.value}: {alert.title}."
    if description:
        text = f"{text} {description}"
    return SmsMessage(to=to, message=text)


def render_push(alert: Alert, to: str) -> PushMessage:
    return PushMessage(
        to=to,
        title=_subject(alert),
        body=alert.description,
        data={
            "alertId": alert.alert_id,
            "type": alert.type.value,
            "entityType": alert.entity_type,
            "entityId": alert.entity_id,
        },
    )
