"""Global exception handlers for consistent error responses.

- ``StoreUnavailable`` -> 500 with the generic body (backend detail is logged, not returned)
- other ``AppError`` -> 400 with code and message
- any other exception -> generic 500
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from quotagate.core.errors import AppError, StoreUnavailable
from quotagate.core.logging import get_request_id

logger = logging.getLogger(__name__)


def internal_error_response() -> JSONResponse:
    """Build the opaque 500 response shared by all server-side failures."""
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with ``{"error": {...}}`` body.
    """
    if isinstance(exc, StoreUnavailable):
        logger.error(
            "store_unavailable",
            extra={
                "error_code": exc.code,
                "request_path": request.url.path,
                "request_id": get_request_id(),
            },
        )
        return internal_error_response()

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": 400,
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(status_code=400, content={"error": error_content})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the error type and message; the client only gets the generic body.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )
    return internal_error_response()


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
