"""Alerting and monitoring exceptions."""

from __future__ import annotations


class AlertingError(Exception):
    """Base exception for alerting errors."""


class ValidationError(AlertingError):
    """Alert data is malformed (unknown type, missing required field)."""


class NotFoundError(AlertingError):
    """A referenced alert or entity does not exist."""


class AlertNotFoundError(NotFoundError):
    """No alert with the given id."""

    def __init__(self, alert_id: str) -> None:
        super().__init__(f"Alert {alert_id} not found")
        self.alert_id = alert_id


class EntityNotFoundError(NotFoundError):
    """No vehicle / booking with the given id."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(f"{entity_type} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidStateTransitionError(AlertingError):
    """Requested lifecycle transition is not allowed from the current status."""


class DispatchError(AlertingError):
    """A single notification send failed (non-fatal)."""


class ScanError(AlertingError):
    """A single entity check failed during a scan (non-fatal)."""

    def __init__(self, job: str, entity_id: str, cause: BaseException) -> None:
        super().__init__(f"{job}: check failed for {entity_id}: {cause!r}")
        self.job = job
        self.entity_id = entity_id
        self.cause = cause
