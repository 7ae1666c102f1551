"""Optional API key authentication.

Callers without an ``X-API-Key`` header are anonymous and are rate limited
by IP. A recognised key resolves to a user id and switches the caller to the
authenticated quota. Keys are configured as ``user_id:key`` pairs in
``APP_API_KEYS``.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> dict[str, str]:
    """Parse comma-separated ``user_id:key`` pairs into a key -> user id map.

    Args:
        keys_string: Raw configuration value, or None.

    Returns:
        Mapping of API key to the user id it authenticates. Entries without
        a user id or key are skipped.

    Examples:
        >>> parse_api_keys("alice:k1, bob:k2")
        {'k1': 'alice', 'k2': 'bob'}
        >>> parse_api_keys(None)
        {}
    """
    if not keys_string:
        return {}

    keys: dict[str, str] = {}
    for pair in keys_string.split(","):
        user_id, sep, key = pair.strip().partition(":")
        user_id, key = user_id.strip(), key.strip()
        if sep and user_id and key:
            keys[key] = user_id
    return keys


def _hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()[:16]


def resolve_api_key(provided_key: str) -> str:
    """Return the user id that owns provided_key.

    Raises:
        AuthenticationAppError: If the key is not configured.
    """
    user_id = parse_api_keys(settings.app.api_keys).get(provided_key)
    if user_id is None:
        logger.warning(
            "auth.unknown_key",
            extra={"api_key_hash": _hash_api_key(provided_key)},
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid API key",
            details={"hint": "Omit X-API-Key to call anonymously"},
        )
    return user_id


async def resolve_user_id(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str | None:
    """FastAPI dependency resolving the authenticated user, if any.

    Returns:
        The user id for a valid key, or None for anonymous callers.

    Raises:
        AuthenticationAppError: For a key that is present but unknown (403).
    """
    if not x_api_key:
        return None

    user_id = resolve_api_key(x_api_key)
    logger.debug(
        "auth.success",
        extra={"api_key_hash": _hash_api_key(x_api_key)},
    )
    return user_id
