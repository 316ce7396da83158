"""HealthMonitor — rolling execution durations and missed-trigger tracking."""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

import structlog

from fleetwatch.core.config import HealthConfig
from fleetwatch.core.types import HealthSnapshot, utc_now

logger = structlog.get_logger(__name__)


class HealthSignal(StrEnum):
    """Advisory signals emitted by the monitor."""

    DEGRADED = "degraded"
    ESCALATION = "escalation"


HealthListener = Callable[[HealthSignal, HealthSnapshot], None]


class HealthMonitor:
    """Process-wide execution health with lock-guarded state.

    Tracks the last ``window_size`` run durations (oldest evicted first),
    the time of the last recorded execution, and the count of consecutive
    missed triggers.  Crossing a threshold emits a signal (log + listeners);
    signals never block or raise into the caller.
    """

    def __init__(self, config: HealthConfig | None = None) -> None:
        self._config = config or HealthConfig()
        self._lock = threading.Lock()
        self._durations: deque[float] = deque(maxlen=self._config.window_size)
        self._last_execution: datetime | None = None
        self._consecutive_misses = 0
        self._listeners: list[HealthListener] = []

    def on_signal(self, listener: HealthListener) -> None:
        """Register a listener for degraded / escalation signals."""
        self._listeners.append(listener)

    # ── Recording ───────────────────────────────────────────────

    def record_execution(self, start_time: float, end_time: float | None = None) -> None:
        """Record a completed run that started at *start_time* (``time.monotonic()``)."""
        end = time.monotonic() if end_time is None else end_time
        duration = max(0.0, end - start_time)

        with self._lock:
            self._durations.append(duration)
            self._last_execution = utc_now()
            self._consecutive_misses = 0
            average = sum(self._durations) / len(self._durations)
            snap = self._snapshot_locked()

        if average > self._config.slow_average_secs:
            logger.warning(
                "scheduler_execution_degraded",
                average_duration_secs=round(average, 3),
                threshold_secs=self._config.slow_average_secs,
                samples=snap.sample_count,
            )
            self._emit(HealthSignal.DEGRADED, snap)

    def record_miss(self) -> None:
        """Record a trigger that did not run on time."""
        with self._lock:
            self._consecutive_misses += 1
            misses = self._consecutive_misses
            snap = self._snapshot_locked()

        if misses > self._config.max_consecutive_misses:
            logger.warning(
                "scheduler_missed_triggers",
                consecutive_misses=misses,
                threshold=self._config.max_consecutive_misses,
            )
            self._emit(HealthSignal.ESCALATION, snap)

    # ── Queries ─────────────────────────────────────────────────

    def snapshot(self) -> HealthSnapshot:
        with self._lock:
            return self._snapshot_locked()

    # Accessor name used by liveness probes.
    get_snapshot = snapshot

    @property
    def durations(self) -> list[float]:
        """Buffered durations in seconds, oldest first."""
        with self._lock:
            return list(self._durations)

    def reset(self) -> None:
        with self._lock:
            self._durations.clear()
            self._last_execution = None
            self._consecutive_misses = 0

    # ── Internal ────────────────────────────────────────────────

    def _snapshot_locked(self) -> HealthSnapshot:
        count = len(self._durations)
        average_ms = (sum(self._durations) / count) * 1000 if count else 0.0
        return HealthSnapshot(
            last_execution_timestamp=self._last_execution,
            consecutive_misses=self._consecutive_misses,
            average_duration_ms=round(average_ms, 3),
            sample_count=count,
        )

    def _emit(self, signal: HealthSignal, snap: HealthSnapshot) -> None:
        for listener in self._listeners:
            try:
                listener(signal, snap)
            except Exception:
                logger.exception("health_listener_error", signal=signal.value)
