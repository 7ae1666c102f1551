"""Rate limiting dependency for FastAPI routes.

This module wires the admission tracker into the HTTP layer.

Strategy:
- Authenticated callers are keyed ``user_<id>`` and get the daily quota.
- Anonymous callers are keyed ``ip_<address>`` and get the hourly quota.
- The two prefixes keep the identity classes from colliding.
- The tracker instance and policies live on ``app.state`` and are created
  once by the app factory.
"""

from __future__ import annotations

import hashlib
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, Request, Response

from app.adapters.rate_limit.base import AbstractAdmissionTracker, AdmissionResult, Policy
from app.core.auth import resolve_user_id
from app.core.config import RateLimitSettings, settings
from app.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class RateLimitPolicies:
    """Policy per caller class."""

    authenticated: Policy
    anonymous: Policy


def build_policies(rate_limit_settings: RateLimitSettings | None = None) -> RateLimitPolicies:
    """Build and validate the caller-class policies from settings.

    Raises:
        ConfigurationAppError: If any policy is not usable.
    """
    cfg = rate_limit_settings or settings.rate_limit
    return RateLimitPolicies(
        authenticated=Policy(
            limit=cfg.authenticated_limit,
            window_ms=cfg.authenticated_window_seconds * 1000,
        ).validate(),
        anonymous=Policy(
            limit=cfg.anonymous_limit,
            window_ms=cfg.anonymous_window_seconds * 1000,
        ).validate(),
    )


def build_identity_key(user_id: str | None, client_host: str | None) -> tuple[str, str]:
    """Build the namespaced identity key for a caller.

    Args:
        user_id: Authenticated user id, or None for anonymous callers.
        client_host: Transport-level peer address.

    Returns:
        Tuple of (identity_key, key_type) where key_type is "user" or "ip".
    """
    if user_id:
        return f"user_{user_id}", "user"
    return f"ip_{client_host or 'unknown'}", "ip"


def _hash_identity_key(identity_key: str) -> str:
    """Hash the identity key for logging without exposing ids or IPs."""
    return hashlib.sha256(identity_key.encode()).hexdigest()[:16]


def format_reset_time(reset_at_ms: int) -> str:
    """Render epoch milliseconds as ISO-8601 UTC, e.g. ``2024-01-01T00:00:00.000Z``."""
    moment = _EPOCH + timedelta(milliseconds=reset_at_ms)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def retry_after_seconds(result: AdmissionResult, now_ms: int) -> int:
    """Whole seconds until the caller's window resets, never negative."""
    return max(0, math.ceil((result.reset_at_ms - now_ms) / 1000))


def build_rate_limit_headers(result: AdmissionResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(max(0, result.remaining)),
        "X-RateLimit-Reset": format_reset_time(result.reset_at_ms),
    }


def get_admission_tracker(request: Request) -> AbstractAdmissionTracker:
    return request.app.state.admission_tracker


def get_rate_limit_policies(request: Request) -> RateLimitPolicies:
    return request.app.state.rate_limit_policies


@dataclass(frozen=True)
class CallerIdentity:
    """Resolved identity and the policy that applies to it."""

    identity_key: str
    key_type: str
    policy: Policy


async def resolve_caller(
    request: Request,
    user_id: Annotated[str | None, Depends(resolve_user_id)],
) -> CallerIdentity:
    """FastAPI dependency selecting identity key and policy for the caller."""
    policies = get_rate_limit_policies(request)
    client_host = request.client.host if request.client else None
    identity_key, key_type = build_identity_key(user_id, client_host)
    policy = policies.authenticated if key_type == "user" else policies.anonymous
    return CallerIdentity(identity_key=identity_key, key_type=key_type, policy=policy)


async def enforce_rate_limit(
    request: Request,
    response: Response,
    caller: Annotated[CallerIdentity, Depends(resolve_caller)],
) -> AdmissionResult | None:
    """FastAPI dependency enforcing per-caller quotas.

    When enabled, consumes one unit from the caller's budget and sets the
    X-RateLimit-* headers on the response. If the budget is exhausted,
    raises RateLimitExceededError, which the 429 handler renders.

    Returns:
        The admission result, or None when rate limiting is disabled.

    Raises:
        RateLimitExceededError: When the caller's quota is exhausted.
    """

    cfg: RateLimitSettings = request.app.state.rate_limit_settings
    if not cfg.enabled:
        return None

    tracker = get_admission_tracker(request)
    now_ms = tracker.now_ms()
    result = tracker.check_and_consume(caller.identity_key, caller.policy, now_ms)
    key_hash = _hash_identity_key(caller.identity_key)

    if result.admitted:
        logger.info(
            "rate_limit.admitted",
            extra={
                "key_type": caller.key_type,
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        if cfg.include_headers:
            response.headers.update(build_rate_limit_headers(result))
        return result

    retry_after = retry_after_seconds(result, now_ms)
    logger.warning(
        "rate_limit.rejected",
        extra={
            "key_type": caller.key_type,
            "key_hash": key_hash,
            "limit": result.limit,
            "window_ms": caller.policy.window_ms,
            "retry_after_s": retry_after,
        },
    )
    raise RateLimitExceededError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded",
        result=result,
        retry_after=retry_after,
    )
