"""Process entry point: uvicorn listener wired to the shutdown coordinator."""

import asyncio
import logging
import os
import sys
from types import FrameType
from typing import Optional

import uvicorn

from graceful_api.config import Settings, get_settings
from graceful_api.coordinator import ShutdownCoordinator, ShutdownState, default_deadlines
from graceful_api.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Same code uvicorn uses when the socket cannot be bound or lifespan startup fails
EXIT_STARTUP_FAILURE = 3

DRAIN_POLL_INTERVAL = 0.1


class GracefulServer(uvicorn.Server):
    """uvicorn server whose signal callback belongs to a ShutdownCoordinator."""

    def __init__(self, config: uvicorn.Config, coordinator: Optional[ShutdownCoordinator] = None):
        super().__init__(config)
        self.coordinator = coordinator

    def handle_exit(self, sig: int, frame: Optional[FrameType]) -> None:
        if self.coordinator is None:
            super().handle_exit(sig, frame)
            return
        self.coordinator.handle_signal(sig)

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            logger.info(f"Server running at http://localhost:{self.config.port}")


class UvicornListener:
    """Adapts a running GracefulServer to the coordinator's Listener protocol."""

    def __init__(self, server: uvicorn.Server, serve_task: "asyncio.Task[None]"):
        self._server = server
        self._serve_task = serve_task

    def stop_accepting(self) -> None:
        # uvicorn closes the listening socket on its next tick, closes idle
        # keep-alive connections and lets busy ones finish their response.
        open_connections = len(self._server.server_state.connections)
        logger.info(
            f"Stopped accepting connections, waiting for {open_connections} open connection(s)",
            extra={"open_connections": open_connections},
        )
        self._server.should_exit = True

    async def wait_drained(self) -> None:
        """Resolve once the listener is closed and no connection is open.

        uvicorn would also wait for handler tasks whose peer already left;
        those are abandoned by setting ``force_exit``. uvicorn then skips the
        lifespan shutdown, so it is run here once ``serve()`` has returned.
        """
        state = self._server.server_state
        while not self._serve_task.done() and (
            state.connections or any(s.is_serving() for s in getattr(self._server, "servers", ()))
        ):
            await asyncio.sleep(DRAIN_POLL_INTERVAL)

        skipped_lifespan = not self._serve_task.done()
        self._server.force_exit = True
        # asyncio.wait never cancels the serve task, even if this waiter is cancelled
        await asyncio.wait({self._serve_task})
        self._serve_task.result()

        lifespan = getattr(self._server, "lifespan", None)
        if skipped_lifespan and lifespan is not None:
            await lifespan.shutdown()


def build_server(settings: Settings) -> GracefulServer:
    config = uvicorn.Config(
        "graceful_api.app:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
        access_log=False,
        lifespan="on",
    )
    return GracefulServer(config)


def hard_exit(code: int) -> None:
    """Terminate now, abandoning whatever connections are still open."""
    logging.shutdown()
    os._exit(code)


async def serve(settings: Settings) -> int:
    """
    Serve until a termination signal has been fully handled.

    Returns:
        Process exit code. A forced exit never returns: the process ends here.
    """
    server = build_server(settings)
    serve_task = asyncio.create_task(server.serve())

    coordinator = ShutdownCoordinator(
        UvicornListener(server, serve_task),
        deadlines=default_deadlines(settings.shutdown_timeout, settings.interrupt_timeout),
    )
    coordinator.bind(asyncio.get_running_loop())
    server.coordinator = coordinator

    terminated = asyncio.create_task(coordinator.wait())
    await asyncio.wait({serve_task, terminated}, return_when=asyncio.FIRST_COMPLETED)

    if coordinator.state is ShutdownState.RUNNING:
        # Server stopped on its own (e.g. the port was taken)
        terminated.cancel()
        serve_task.result()
        if not server.started:
            return EXIT_STARTUP_FAILURE
        logger.info("Server stopped without a termination signal")
        return 0

    exit_code = await terminated
    # Handlers whose peer already left are abandoned, not cancelled
    if coordinator.forced or server.server_state.tasks:
        hard_exit(exit_code)
    return exit_code


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_json)
    sys.exit(asyncio.run(serve(settings)))
