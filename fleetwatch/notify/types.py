"""Rendered notification messages, one per (channel, recipient)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class EmailMessage(BaseModel):
    to: str
    subject: str
    html: str


class SmsMessage(BaseModel):
    to: str
    message: str


class PushMessage(BaseModel):
    to: str
    title: str
    body: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
