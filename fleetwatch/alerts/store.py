"""Alert persistence — store interface and an in-memory implementation."""

from __future__ import annotations

import abc
import uuid
from typing import Any

from fleetwatch.core.exceptions import AlertNotFoundError
from fleetwatch.core.types import (
    Alert,
    AlertFilter,
    AlertStats,
    AlertStatus,
    utc_now,
)


class AlertStore(abc.ABC):
    """Persistence and query surface for alert records."""

    @abc.abstractmethod
    async def create(self, data: dict[str, Any]) -> Alert:
        """Persist a new alert, assigning ``alert_id`` and timestamps."""

    @abc.abstractmethod
    async def get(self, alert_id: str) -> Alert | None:
        """Return the alert, or None if it does not exist."""

    @abc.abstractmethod
    async def update(self, alert_id: str, patch: dict[str, Any]) -> Alert:
        """Apply *patch*, bump ``updated_at`` and return the updated alert."""

    @abc.abstractmethod
    async def list(
        self,
        filters: AlertFilter | None = None,
        limit: int | None = None,
    ) -> list[Alert]:
        """Return matching alerts, newest first by ``created_at``."""

    async def stats(self) -> AlertStats:
        """Aggregate counts of active / acknowledged alerts."""
        active = await self.list(AlertFilter(status=AlertStatus.ACTIVE))
        acknowledged = await self.list(AlertFilter(status=AlertStatus.ACKNOWLEDGED))

        stats = AlertStats(
            total_active=len(active),
            total_acknowledged=len(acknowledged),
        )
        for alert in active:
            stats.by_severity[alert.severity.value] += 1
            stats.by_type[alert.type.value] = stats.by_type.get(alert.type.value, 0) + 1
        return stats


class InMemoryAlertStore(AlertStore):
    """Process-local store. Returned alerts are copies."""

    def __init__(self) -> None:
        self._alerts: dict[str, Alert] = {}
        self._seq: dict[str, int] = {}
        self._counter = 0

    def __len__(self) -> int:
        return len(self._alerts)

    async def create(self, data: dict[str, Any]) -> Alert:
        now = utc_now()
        alert = Alert(
            **{
                **data,
                "alert_id": uuid.uuid4().hex,
                "created_at": now,
                "updated_at": now,
            },
        )
        self._alerts[alert.alert_id] = alert
        self._counter += 1
        self._seq[alert.alert_id] = self._counter
        return alert.model_copy(deep=True)

    async def get(self, alert_id: str) -> Alert | None:
        alert = self._alerts.get(alert_id)
        return alert.model_copy(deep=True) if alert is not None else None

    async def update(self, alert_id: str, patch: dict[str, Any]) -> Alert:
        current = self._alerts.get(alert_id)
        if current is None:
            raise AlertNotFoundError(alert_id)
        updated = current.model_copy(update={**patch, "updated_at": utc_now()})
        self._alerts[alert_id] = updated
        return updated.model_copy(deep=True)

    async def list(
        self,
        filters: AlertFilter | None = None,
        limit: int | None = None,
    ) -> list[Alert]:
        filters = filters or AlertFilter()
        matched = [a for a in self._alerts.values() if filters.matches(a)]
        matched.sort(
            key=lambda a: (a.created_at, self._seq[a.alert_id]),
            reverse=True,
        )
        if limit is not None:
            matched = matched[:limit]
        return [a.model_copy(deep=True) for a in matched]
