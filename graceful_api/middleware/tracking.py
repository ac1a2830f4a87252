"""Outermost middleware: one ResponseTracker per HTTP request."""

from starlette.types import ASGIApp, Receive, Scope, Send

from graceful_api.tracker import TRACKER_STATE_KEY, ResponseTracker


class ResponseTrackingMiddleware:
    """
    Wrap the connection's receive/send in a ResponseTracker.

    Must be the outermost user middleware so that the tracker's ``send`` is
    the one writing to the connection.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        tracker = ResponseTracker(receive, send)
        scope.setdefault("state", {})[TRACKER_STATE_KEY] = tracker
        await self.app(scope, tracker.receive, tracker.send)
