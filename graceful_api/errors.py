"""Error codes and the fixed response bodies clients see for them."""

from enum import Enum

from fastapi.responses import JSONResponse


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    # Server Error (500/503)
    INTERNAL_ERROR = "internal_error"
    SERVER_RESTARTING = "server_restarting"


# Status code and body per error. Bodies are part of the public contract.
ERROR_RESPONSES: dict[ErrorCode, tuple[int, dict]] = {
    ErrorCode.INTERNAL_ERROR: (500, {"error": "Internal Server Error"}),
    ErrorCode.SERVER_RESTARTING: (
        503,
        {"message": "Server is restarting, please retry shortly"},
    ),
}


def make_error(code: ErrorCode) -> dict:
    """
    Build the response body for the given error code.

    Args:
        code: The ErrorCode enum value

    Returns:
        A fresh dict, safe for the caller to modify
    """
    _, body = ERROR_RESPONSES[code]
    return dict(body)


def error_response(code: ErrorCode) -> JSONResponse:
    """Build a JSONResponse carrying the status and body for ``code``."""
    status_code, _ = ERROR_RESPONSES[code]
    return JSONResponse(status_code=status_code, content=make_error(code))
