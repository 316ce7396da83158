"""Health, debug and alert-management HTTP surface.

Runs as an ``aiohttp`` web server alongside the scheduler.
Exposes:
- ``GET  /health``                        → execution health snapshot
- ``POST /debug/check-alerts``            → run every scan now
- ``GET  /api/alerts``                    → list (filters: status, type,
  severity, entityType, entityId, limit)
- ``GET  /api/alerts/stats``              → open alert counts
- ``GET  /api/alerts/{id}``               → single alert
- ``PATCH /api/alerts/{id}/acknowledge``  → body ``{"userId": ...}``
- ``PATCH /api/alerts/{id}/resolve``      → body ``{"userId": ...}``
- ``POST /api/alerts``                    → trigger an alert
"""

from __future__ import annotations

import base64
import hmac
import json
from typing import Any

import pydantic
import structlog
from aiohttp import web

from fleetwatch.alerts.engine import AlertEngine
from fleetwatch.core.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from fleetwatch.core.types import AlertFilter
from fleetwatch.scans.checker import SystemAlertChecker
from fleetwatch.scheduler.health import HealthMonitor
from fleetwatch.scheduler.scheduler import JobScheduler

logger = structlog.get_logger(__name__)

_FILTER_PARAMS = ("status", "type", "severity", "entityType", "entityId")


def _check_basic_auth(request: web.Request, username: str, password: str) -> bool:
    """Validate HTTP Basic Auth credentials."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Basic "):
        return False
    try:
        decoded = base64.b64decode(auth_header[6:]).decode("utf-8")
        req_user, req_pass = decoded.split(":", 1)
    except (ValueError, UnicodeDecodeError):
        return False
    user_ok = hmac.compare_digest(req_user, username)
    pass_ok = hmac.compare_digest(req_pass, password)
    return user_ok and pass_ok


@web.middleware
async def _auth_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Require HTTP Basic Auth on all routes when credentials are configured."""
    username = request.app.get("auth_username")
    password = request.app.get("auth_password")
    if username and password:
        if not _check_basic_auth(request, username, password):
            return web.json_response(
                {"error": "Unauthorized"},
                status=401,
                headers={"WWW-Authenticate": 'Basic realm="fleetwatch"'},
            )
    return await handler(request)


@web.middleware
async def _error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Map domain errors onto HTTP status codes."""
    try:
        return await handler(request)
    except ValidationError as exc:
        return web.json_response({"error": str(exc)}, status=400)
    except NotFoundError as exc:
        return web.json_response({"error": str(exc)}, status=404)
    except InvalidStateTransitionError as exc:
        return web.json_response({"error": str(exc)}, status=409)


async def _json_body(request: web.Request) -> dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("Request body must be valid UTF-8 JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _parse_filters(request: web.Request) -> tuple[AlertFilter, int | None]:
    raw = {k: request.query[k] for k in _FILTER_PARAMS if k in request.query}
    try:
        filters = AlertFilter.model_validate(raw)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid filter: {exc}") from exc

    limit: int | None = None
    if "limit" in request.query:
        try:
            limit = int(request.query["limit"])
        except ValueError as exc:
            raise ValidationError("limit must be an integer") from exc
        if limit < 0:
            raise ValidationError("limit must be non-negative")
    return filters, limit


# ── Handlers ────────────────────────────────────────────────────


async def _handle_health(request: web.Request) -> web.Response:
    health: HealthMonitor = request.app["health"]
    scheduler: JobScheduler | None = request.app.get("scheduler")
    snap = health.snapshot()
    return web.json_response({
        "status": "ok",
        "scheduler_running": bool(scheduler and scheduler.running),
        "health": snap.model_dump(mode="json"),
    })


async def _handle_check_alerts(request: web.Request) -> web.Response:
    checker: SystemAlertChecker = request.app["checker"]
    reports = await checker.check_system_alerts()
    logger.info("manual_alert_check", jobs=len(reports))
    return web.json_response({
        "success": True,
        "reports": [r.model_dump(mode="json") for r in reports],
    })


async def _handle_list_alerts(request: web.Request) -> web.Response:
    engine: AlertEngine = request.app["engine"]
    filters, limit = _parse_filters(request)
    alerts = await engine.list_alerts(filters, limit)
    return web.json_response({"alerts": [a.to_wire() for a in alerts], "count": len(alerts)})


async def _handle_stats(request: web.Request) -> web.Response:
    engine: AlertEngine = request.app["engine"]
    stats = await engine.stats()
    return web.json_response(stats.to_wire())


async def _handle_get_alert(request: web.Request) -> web.Response:
    engine: AlertEngine = request.app["engine"]
    alert = await engine.get_alert(request.match_info["alert_id"])
    return web.json_response(alert.to_wire())


async def _handle_acknowledge(request: web.Request) -> web.Response:
    engine: AlertEngine = request.app["engine"]
    body = await _json_body(request)
    alert = await engine.acknowledge(request.match_info["alert_id"], str(body.get("userId") or ""))
    return web.json_response(alert.to_wire())


async def _handle_resolve(request: web.Request) -> web.Response:
    engine: AlertEngine = request.app["engine"]
    body = await _json_body(request)
    alert = await engine.resolve(request.match_info["alert_id"], str(body.get("userId") or ""))
    return web.json_response(alert.to_wire())


async def _handle_trigger(request: web.Request) -> web.Response:
    engine: AlertEngine = request.app["engine"]
    body = await _json_body(request)
    alert = await engine.trigger_alert(body)
    return web.json_response(alert.to_wire(), status=201)


def create_web_app(
    engine: AlertEngine,
    checker: SystemAlertChecker,
    health: HealthMonitor,
    scheduler: JobScheduler | None = None,
    username: str | None = None,
    password: str | None = None,
) -> web.Application:
    """Create the aiohttp web application."""
    app = web.Application(middlewares=[_auth_middleware, _error_middleware])
    app["engine"] = engine
    app["checker"] = checker
    app["health"] = health
    app["scheduler"] = scheduler
    app["auth_username"] = username
    app["auth_password"] = password
    app.router.add_get("/health", _handle_health)
    app.router.add_post("/debug/check-alerts", _handle_check_alerts)
    app.router.add_get("/api/alerts", _handle_list_alerts)
    app.router.add_post("/api/alerts", _handle_trigger)
    app.router.add_get("/api/alerts/stats", _handle_stats)
    app.router.add_get("/api/alerts/{alert_id}", _handle_get_alert)
    app.router.add_patch("/api/alerts/{alert_id}/acknowledge", _handle_acknowledge)
    app.router.add_patch("/api/alerts/{alert_id}/resolve", _handle_resolve)
    return app


async def start_health_server(
    app: web.Application,
    host: str = "0.0.0.0",
    port: int = 8080,
) -> web.AppRunner:
    """Start serving *app*. Returns the runner for cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("health_server_started", host=host, port=port)
    return runner
