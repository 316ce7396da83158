"""Tests for fleetwatch/core/logging.py — renderer, service tag, job context."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from fleetwatch.core.config import LoggingConfig
from fleetwatch.core.logging import QUIET_LOGGERS, SERVICE_NAME, job_context, setup_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


def _json_lines(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestSetupLogging:
    def test_json_events_carry_service(self) -> None:
        stream = io.StringIO()
        setup_logging(config=LoggingConfig(level="INFO", format="json"), stream=stream)

        structlog.get_logger("fleetwatch.test").info("alert_raised", alert_id="a-1")

        [event] = _json_lines(stream)
        assert event["event"] == "alert_raised"
        assert event["alert_id"] == "a-1"
        assert event["service"] == SERVICE_NAME
        assert event["level"] == "info"

    def test_level_override_filters(self) -> None:
        stream = io.StringIO()
        setup_logging(level="warning", config=LoggingConfig(level="DEBUG"), stream=stream)

        log = structlog.get_logger("fleetwatch.test")
        log.info("dropped")
        log.warning("kept")

        assert [e["event"] for e in _json_lines(stream)] == ["kept"]

    def test_library_loggers_quieted(self) -> None:
        setup_logging(level="DEBUG", config=LoggingConfig(), stream=io.StringIO())
        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_unknown_format_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown log format"):
            setup_logging(config=LoggingConfig(format="xml"), stream=io.StringIO())


class TestJobContext:
    def test_events_inside_block_tagged(self) -> None:
        stream = io.StringIO()
        setup_logging(config=LoggingConfig(format="json"), stream=stream)
        log = structlog.get_logger("fleetwatch.test")

        with job_context("system_alerts"):
            log.info("gps_scan_complete")
        log.info("idle")

        inside, outside = _json_lines(stream)
        assert inside["job"] == "system_alerts"
        assert "job" not in outside
