"""Correlation ID middleware for request tracing."""

import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from graceful_api.logging_config import correlation_id

# Header name for correlation ID (industry standard)
CORRELATION_ID_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware:
    """
    Extract or generate a correlation ID for each request.

    - If the incoming request has an X-Correlation-ID header, it is used
    - Otherwise, a new unique ID is generated
    - The correlation ID is echoed back in the response header
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        req_id = Headers(scope=scope).get(CORRELATION_ID_HEADER) or uuid.uuid4().hex[:16]

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[CORRELATION_ID_HEADER] = req_id
            await send(message)

        token = correlation_id.set(req_id)
        try:
            await self.app(scope, receive, send_with_header)
        finally:
            correlation_id.reset(token)
