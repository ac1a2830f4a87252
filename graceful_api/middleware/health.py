"""Log unhealthy /health responses."""

import logging

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"


class HealthCheckLoggingMiddleware:
    """
    Watch the /health response and log it when the status is not 200.

    Only observes the outgoing messages; the response itself is untouched.
    """

    def __init__(self, app: ASGIApp, path: str = HEALTH_PATH):
        self.app = app
        self.path = path

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] != self.path:
            await self.app(scope, receive, send)
            return

        status_code = 200
        body = bytearray()

        async def observing_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            elif message["type"] == "http.response.body" and status_code != 200:
                body.extend(message.get("body", b""))
                if not message.get("more_body", False):
                    logger.warning(
                        "Health check issue",
                        extra={
                            "status_code": status_code,
                            "response": body.decode("utf-8", errors="replace"),
                        },
                    )
            await send(message)

        await self.app(scope, receive, observing_send)
