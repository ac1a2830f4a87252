"""Reject new work with 503 once the server is draining."""

import logging

from starlette.types import ASGIApp, Receive, Scope, Send

from graceful_api.errors import ErrorCode, error_response
from graceful_api.metrics import HTTP_REQUESTS_REJECTED_TOTAL, normalize_endpoint
from graceful_api.shutdown import is_draining

logger = logging.getLogger(__name__)


class RequestGateMiddleware:
    """
    Consult the request gate before any route code runs.

    The check is a plain flag read, so it stays cheap on the hot path.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not is_draining():
            await self.app(scope, receive, send)
            return

        path = scope["path"]
        HTTP_REQUESTS_REJECTED_TOTAL.labels(endpoint=normalize_endpoint(path)).inc()
        logger.info(
            "Rejecting request while draining",
            extra={"method": scope["method"], "path": path},
        )
        response = error_response(ErrorCode.SERVER_RESTARTING)
        await response(scope, receive, send)
