"""Shutdown coordinator: Running -> Draining -> Terminated.

On a termination signal the coordinator closes the request gate, tells the
listener to stop accepting connections, and then races "every open
connection has closed" against the drain deadline configured for that
signal. Whichever finishes first decides the exit code; a one-shot guard
makes sure only one of them performs the terminal transition.
"""

import asyncio
import logging
import signal
from enum import Enum
from typing import Optional, Protocol

from graceful_api.shutdown import begin_draining

logger = logging.getLogger(__name__)

EXIT_DRAINED = 0
EXIT_FORCED = 1


class ShutdownState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


class Listener(Protocol):
    """What the coordinator needs from the HTTP listener."""

    def stop_accepting(self) -> None:
        """Stop accepting new connections; existing ones keep being served."""

    async def wait_drained(self) -> None:
        """Return once every connection open at stop time has closed."""


def default_deadlines(
    shutdown_timeout: float = 120.0,
    interrupt_timeout: Optional[float] = None,
) -> dict[int, Optional[float]]:
    """Drain deadline per signal. ``None`` means wait for the drain indefinitely."""
    return {
        signal.SIGTERM: shutdown_timeout,
        signal.SIGINT: interrupt_timeout,
    }


def _signal_name(sig: int) -> str:
    try:
        return signal.Signals(sig).name
    except ValueError:
        return str(sig)


class ShutdownCoordinator:
    """
    Owns the termination sequence for one process.

    Args:
        listener: The HTTP listener to stop and wait on
        deadlines: Seconds allowed for the drain, per signal number. Signals
            missing from the table, or mapped to None, get no deadline.
    """

    def __init__(
        self,
        listener: Listener,
        deadlines: Optional[dict[int, Optional[float]]] = None,
    ):
        self._listener = listener
        self._deadlines = default_deadlines() if deadlines is None else dict(deadlines)
        self._state = ShutdownState.RUNNING
        self._exit_code: Optional[int] = None
        self._forced = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._drain_task: Optional[asyncio.Task] = None
        self._terminated = asyncio.Event()

    @property
    def state(self) -> ShutdownState:
        return self._state

    @property
    def exit_code(self) -> Optional[int]:
        return self._exit_code

    @property
    def forced(self) -> bool:
        """True when the deadline, not the drain, ended the process."""
        return self._forced

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach the event loop that signal deliveries are scheduled onto."""
        self._loop = loop

    def handle_signal(self, sig: int) -> None:
        """
        Entry point for signal handlers.

        Safe to call from a ``signal.signal`` handler or from another thread;
        the transition itself runs on the bound loop.
        """
        if self._loop is None:
            raise RuntimeError("ShutdownCoordinator.bind() must be called first")
        self._loop.call_soon_threadsafe(self.begin_shutdown, sig)

    def begin_shutdown(self, sig: int) -> bool:
        """
        Move from Running to Draining. Must run on the event loop.

        Returns:
            False if a shutdown was already under way (the call is ignored)
        """
        name = _signal_name(sig)
        if self._state is not ShutdownState.RUNNING:
            logger.info(f"{name} received while {self._state.value}, ignoring")
            return False

        deadline = self._deadlines.get(sig)
        logger.warning(
            f"{name} received, starting graceful shutdown",
            extra={"signal": name, "drain_timeout": deadline},
        )
        self._state = ShutdownState.DRAINING

        begin_draining()
        self._listener.stop_accepting()
        self._drain_task = asyncio.get_running_loop().create_task(self._drain(deadline))
        return True

    async def _drain(self, deadline: Optional[float]) -> None:
        drained = asyncio.ensure_future(self._listener.wait_drained())
        waiters = {drained}
        if deadline is not None:
            waiters.add(asyncio.ensure_future(asyncio.sleep(deadline)))

        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                if waiter is not drained and not waiter.done():
                    waiter.cancel()

        if not drained.done():
            drained.cancel()
            self._terminate(EXIT_FORCED, forced=True)
            return

        error = asyncio.CancelledError() if drained.cancelled() else drained.exception()
        if error is not None:
            logger.error("Listener failed while draining", exc_info=error)
            self._terminate(EXIT_FORCED)
            return

        self._terminate(EXIT_DRAINED)

    def _terminate(self, exit_code: int, forced: bool = False) -> bool:
        """Enter Terminated. Only the first caller has any effect."""
        if self._state is ShutdownState.TERMINATED:
            return False
        self._state = ShutdownState.TERMINATED
        self._exit_code = exit_code
        self._forced = forced

        if forced:
            logger.error("Drain deadline elapsed, force exiting")
        elif exit_code == EXIT_DRAINED:
            logger.info("All active connections closed, exiting")
        self._terminated.set()
        return True

    async def wait(self) -> int:
        """Wait for the Terminated state and return the process exit code."""
        await self._terminated.wait()
        return self._exit_code
