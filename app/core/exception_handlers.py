"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- RateLimitExceededError → 429 with quota body and X-RateLimit-* headers
- AppError subclasses → appropriate HTTP status (400, 403, 404, 500)
- Unexpected Exception → generic 500 (safety net)
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    NotFoundAppError,
    RateLimitExceededError,
)
from app.core.logging import get_request_id
from app.core.rate_limit import build_rate_limit_headers, format_reset_time

logger = logging.getLogger(__name__)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Render an exhausted quota as HTTP 429.

    Body: ``{message, limit, resetTime, retryAfter}`` where retryAfter is the
    number of whole seconds until the caller's window resets.
    """
    headers = build_rate_limit_headers(exc.result)
    headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=429,
        content={
            "message": "Rate limit exceeded",
            "limit": exc.result.limit,
            "resetTime": format_reset_time(exc.result.reset_at_ms),
            "retryAfter": exc.retry_after,
        },
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to appropriate HTTP status codes:
    - AuthenticationAppError → 403 Forbidden
    - NotFoundAppError → 404 Not Found
    - ConfigurationAppError → 500 Internal Server Error (server fault)
    - anything else → 400 Bad Request

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = 400
    if isinstance(exc, AuthenticationAppError):
        status_code = 403
    elif isinstance(exc, NotFoundAppError):
        status_code = 404
    elif isinstance(exc, ConfigurationAppError):
        status_code = 500

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

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


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
