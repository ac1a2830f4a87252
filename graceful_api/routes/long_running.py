"""Long-running endpoint: slow work whose response may no longer be wanted."""

import asyncio
import functools
import logging
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from graceful_api.config import get_settings
from graceful_api.errors import ErrorCode, error_response
from graceful_api.metrics import record_long_running_outcome
from graceful_api.tracker import ResponseTracker, SuppressedResponse, get_response_tracker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["long-running"])

SUCCESS_MESSAGE = "Your 5 minutes query from the version One ran successfully"

LongTask = Callable[[], Awaitable[None]]


async def simulate_work(seconds: float) -> None:
    """Stand-in for a real asynchronous job."""
    await asyncio.sleep(seconds)


def get_long_task() -> LongTask:
    """The work behind /long-running; overridable through dependency_overrides."""
    settings = get_settings()
    return functools.partial(simulate_work, settings.long_running_seconds)


@router.get("/long-running")
async def long_running(
    tracker: ResponseTracker = Depends(get_response_tracker),
    task: LongTask = Depends(get_long_task),
):
    """
    Run the long task, then answer only if the connection can still take it.

    - 200 text/plain when the task completes
    - 500 JSON when the task raises
    - nothing at all when the peer closed first or a response already started
    """
    logger.info("Long running API started")
    tracker.on_close(
        lambda: logger.info("Response stream closed (proxy reload or client went away)")
    )

    async with tracker.watch():
        try:
            await task()
            response = PlainTextResponse(SUCCESS_MESSAGE)
            outcome = "completed"
        except Exception as e:
            logger.error(f"Long running API unexpected error: {e}")
            response = error_response(ErrorCode.INTERNAL_ERROR)
            outcome = "failed"

        response = tracker.finalize(response)

    if isinstance(response, SuppressedResponse):
        outcome = "suppressed"
    record_long_running_outcome(outcome)
    return response
