"""Application-level exception types.

This module defines domain errors used across adapters and the HTTP layer,
enabling consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from app.adapters.rate_limit.base import AdmissionResult


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    field: str
    actual_value: int
    slug: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input validation fails."""


class ConfigurationAppError(AppError):
    """Raised when settings describe an unusable configuration."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when a requested resource does not exist."""


@dataclass
class RateLimitExceededError(AppError):
    """Raised at the HTTP edge when a caller's quota is exhausted.

    The tracker itself reports rejection as ``admitted=False``; this error
    only carries that result to the 429 handler, which renders its own body
    instead of the generic error envelope.

    Attributes:
        result: The rejected admission decision.
        retry_after: Whole seconds until the caller's window resets.
    """

    result: "AdmissionResult | None" = None
    retry_after: int = 0
