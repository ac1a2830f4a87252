"""Middleware to collect HTTP request metrics for Prometheus."""

import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from graceful_api.metrics import (
    HTTP_REQUESTS_TOTAL,
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_PROGRESS,
    normalize_endpoint,
)

logger = logging.getLogger(__name__)

# Label used when the application never started a response (peer closed first)
NO_RESPONSE = "none"


class MetricsMiddleware:
    """Record count, latency and in-flight gauge for every HTTP request."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        path = scope["path"]
        endpoint = normalize_endpoint(path)

        # Skip metrics for the /metrics endpoint itself
        if endpoint == "/metrics":
            await self.app(scope, receive, send)
            return

        status_code = NO_RESPONSE

        async def send_with_status(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = str(message["status"])
            await send(message)

        HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()

        try:
            await self.app(scope, receive, send_with_status)
        except Exception:
            status_code = "500"
            raise
        finally:
            duration = time.perf_counter() - start_time
            HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=endpoint).dec()
            HTTP_REQUESTS_TOTAL.labels(
                method=method, endpoint=endpoint, status_code=status_code
            ).inc()
            HTTP_REQUEST_DURATION_SECONDS.labels(
                method=method, endpoint=endpoint
            ).observe(duration)

            logger.info(
                "request_completed",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": status_code,
                    "duration_ms": round(duration * 1000, 2),
                },
            )
