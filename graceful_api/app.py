"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.exceptions import HTTPException
from starlette.requests import Request

from graceful_api import __version__
from graceful_api.errors import ErrorCode, error_response
from graceful_api.middleware import (
    CorrelationIdMiddleware,
    HealthCheckLoggingMiddleware,
    MetricsMiddleware,
    RequestGateMiddleware,
    ResponseTrackingMiddleware,
)
from graceful_api.routes import general_router, long_running_router
from graceful_api.shutdown import begin_draining

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting graceful-api", extra={"version": __version__})
    yield

    # Normally already closed by the coordinator; covers hosting by a plain uvicorn
    begin_draining()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="graceful-api",
    description="HTTP server that drains in-flight requests before exiting.",
    version=__version__,
    lifespan=lifespan,
)

# Middleware runs outermost-last-added. Resulting chain, outside in:
# tracking -> correlation -> metrics -> gate -> health logging -> routes
app.add_middleware(HealthCheckLoggingMiddleware)
app.add_middleware(RequestGateMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(ResponseTrackingMiddleware)


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint.

    Includes:
    - http_requests_total: Request count by method, endpoint, status
    - http_request_duration_seconds: Request latency histogram
    - http_requests_in_progress: Current in-flight requests
    - http_requests_rejected_total: 503s issued while draining
    - long_running_outcomes_total: completed, failed or suppressed long requests
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTTP errors as ``{"error": <detail>}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Runs in Starlette's ServerErrorMiddleware, outside the response tracker,
# and writes straight to the connection. Starlette re-raises the error afterwards.
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log the failure; the client only sees the generic 500 body."""
    logger.exception(
        "Unhandled error",
        extra={"method": request.method, "path": request.url.path},
    )
    return error_response(ErrorCode.INTERNAL_ERROR)


# Include routers
app.include_router(general_router)
app.include_router(long_running_router)
