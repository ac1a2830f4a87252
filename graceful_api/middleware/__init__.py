"""ASGI middleware. Each class wraps the next application in the chain."""

from graceful_api.middleware.correlation import CorrelationIdMiddleware
from graceful_api.middleware.gate import RequestGateMiddleware
from graceful_api.middleware.health import HealthCheckLoggingMiddleware
from graceful_api.middleware.metrics import MetricsMiddleware
from graceful_api.middleware.tracking import ResponseTrackingMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "HealthCheckLoggingMiddleware",
    "MetricsMiddleware",
    "RequestGateMiddleware",
    "ResponseTrackingMiddleware",
]
