"""Request gate: the process-wide draining flag.

Written once by the shutdown coordinator, read by every inbound request.
"""

import logging

logger = logging.getLogger(__name__)

_draining: bool = False


def is_draining() -> bool:
    """Check if the server has stopped taking new work."""
    return _draining


def begin_draining() -> None:
    """Close the gate. Later calls have no further effect."""
    global _draining
    if _draining:
        return
    _draining = True
    logger.info("Request gate closed, rejecting new requests")


def reset_drain_state() -> None:
    """Reopen the gate. Used for testing."""
    global _draining
    _draining = False
