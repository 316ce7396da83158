#!/usr/bin/env python3
"""Monitor entrypoint — wires the alerting stack and runs the scheduled scans.

Usage::

    # Run with default config and fleet fixture
    python scripts/run.py

    # Custom config / fleet data
    python scripts/run.py --config config/settings.yaml --fleet config/fleet.yaml

    # Run every scan once and exit
    python scripts/run.py --once

    # Override log level
    python scripts/run.py --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from fleetwatch.core.config import load_settings
from fleetwatch.core.logging import setup_logging
from fleetwatch.fleet.directory import load_fleet_fixture
from fleetwatch.monitor.factory import create_monitoring_stack
from fleetwatch.monitor.web import create_web_app, start_health_server

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start all components and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level, config=settings.logging)

    fleet = load_fleet_fixture(args.fleet)
    stack = create_monitoring_stack(
        settings,
        vehicles=fleet.vehicles,
        bookings=fleet.bookings,
        subscriptions=fleet.subscriptions,
    )

    logger.info(
        "monitor_starting",
        vehicles=len(await fleet.vehicles.get_all()),
        channels=[str(k) for k in stack.dispatcher.channel_kinds],
        recipients=len(settings.notifications.recipients),
    )

    if args.once:
        reports = await stack.checker.run_all_checks()
        await stack.aclose()
        for report in reports:
            logger.info("scan_report", **report.model_dump())
        return 0

    # ── Start everything ─────────────────────────────────────────
    runner = None
    if settings.http.enabled:
        app = create_web_app(
            stack.engine,
            stack.checker,
            stack.health,
            scheduler=stack.scheduler,
            username=settings.http.username or None,
            password=settings.http.password.get_secret_value() or None,
        )
        runner = await start_health_server(app, settings.http.host, settings.http.port)

    stack.scheduler.start()
    logger.info("monitor_running", jobs=stack.scheduler.job_names)

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stack.scheduler.stop_all()
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("monitor_shutting_down")

    await stack.aclose()
    if runner is not None:
        await runner.cleanup()

    stats = await stack.engine.stats()
    logger.info(
        "monitor_stopped",
        active_alerts=stats.total_active,
        acknowledged_alerts=stats.total_acknowledged,
        health=stack.health.snapshot().model_dump(mode="json"),
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the fleet alerting and scheduled monitoring service.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--fleet",
        default="config/fleet.yaml",
        help="Path to fleet fixture YAML with vehicles/bookings/subscriptions",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run every scan once and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
