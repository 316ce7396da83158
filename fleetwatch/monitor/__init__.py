"""Stack wiring and the health / alert HTTP surface."""

from fleetwatch.monitor.factory import (
    MonitoringStack,
    create_channels,
    create_monitoring_stack,
)
from fleetwatch.monitor.web import create_web_app, start_health_server

__all__ = [
    "MonitoringStack",
    "create_channels",
    "create_monitoring_stack",
    "create_web_app",
    "start_health_server",
]
