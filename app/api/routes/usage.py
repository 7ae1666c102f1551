from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.rate_limit import (
    CallerIdentity,
    format_reset_time,
    get_admission_tracker,
    resolve_caller,
)
from app.schemas.usage import UsageResponse

router = APIRouter(tags=["Usage"])


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    request: Request,
    caller: Annotated[CallerIdentity, Depends(resolve_caller)],
) -> UsageResponse:
    """Report the caller's current quota without consuming any of it."""
    tracker = get_admission_tracker(request)
    result = tracker.peek(caller.identity_key, caller.policy)
    return UsageResponse(
        identity_type=caller.key_type,
        limit=result.limit,
        remaining=result.remaining,
        window_seconds=caller.policy.window_ms // 1000,
        reset_time=format_reset_time(result.reset_at_ms),
    )
