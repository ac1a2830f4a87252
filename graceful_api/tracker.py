"""Per-request close and headers-sent tracking.

A ResponseTracker sits between the ASGI server and the application for one
HTTP request. It records when the peer (client or proxy) closes the
connection and when the response has started, and it refuses to put bytes on
a connection that is already closed.
"""

import asyncio
import contextlib
import logging
from typing import AsyncIterator, Callable, Optional

from fastapi import Request
from starlette.responses import Response
from starlette.types import Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

# Key under request.state / scope["state"]
TRACKER_STATE_KEY = "response_tracker"


class SuppressedResponse(Response):
    """A response that writes nothing to the connection."""

    def __init__(self) -> None:
        super().__init__(content=None, status_code=204)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        return None


class ResponseTracker:
    """
    Read/write view on one in-flight request.

    ``closed`` flips when ``receive`` yields ``http.disconnect``.
    ``headers_sent`` flips when ``http.response.start`` goes through ``send``.
    """

    def __init__(self, receive: Receive, send: Send):
        self._receive = receive
        self._send = send
        self.closed = False
        self.headers_sent = False
        self._discarding = False
        self._close_callbacks: list[Callable[[], None]] = []
        self._watcher: Optional[asyncio.Task] = None

    def on_close(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the connection closes (immediately if it already has)."""
        if self.closed:
            callback()
            return
        self._close_callbacks.append(callback)

    def _mark_closed(self) -> None:
        if self.closed:
            return
        self.closed = True
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            callback()

    async def receive(self) -> Message:
        message = await self._receive()
        if message["type"] == "http.disconnect":
            self._mark_closed()
        return message

    async def send(self, message: Message) -> None:
        if self.closed:
            logger.debug(f"Dropping {message['type']} for closed connection")
            return

        if message["type"] == "http.response.start":
            if self.headers_sent:
                logger.info("Response already inflight, dropping second response")
                self._discarding = True
                return
            self.headers_sent = True
        elif message["type"] == "http.response.body" and self._discarding:
            if not message.get("more_body", False):
                self._discarding = False
            return

        await self._send(message)

    async def _watch_disconnect(self) -> None:
        while not self.closed:
            await self.receive()

    @contextlib.asynccontextmanager
    async def watch(self) -> AsyncIterator["ResponseTracker"]:
        """
        Listen for a peer close while the block runs.

        Enter this before any long wait: a close that happens during the wait,
        or one that happened before entering, is reflected in ``closed``.
        The listener consumes request body messages, so read the body first.
        """
        self._watcher = asyncio.ensure_future(self._watch_disconnect())
        try:
            yield self
        finally:
            watcher, self._watcher = self._watcher, None
            if not watcher.done():
                watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher

    @property
    def can_respond(self) -> bool:
        return not self.closed and not self.headers_sent

    def finalize(self, response: Response) -> Response:
        """Return ``response`` if it can still be written, else a response that writes nothing."""
        if self.can_respond:
            return response
        logger.info(
            "Response already inflight/closed, skipping write",
            extra={"closed": self.closed, "headers_sent": self.headers_sent},
        )
        return SuppressedResponse()


def get_response_tracker(request: Request) -> ResponseTracker:
    """FastAPI dependency returning the tracker installed by ResponseTrackingMiddleware."""
    tracker = getattr(request.state, TRACKER_STATE_KEY, None)
    if tracker is None:
        raise RuntimeError("ResponseTrackingMiddleware is not installed")
    return tracker
