from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check, never rate limited.

    Returns:
        dict: ``status`` plus the number of identities the admission tracker
            currently holds.
    """

    tracker = getattr(request.app.state, "admission_tracker", None)
    return {
        "status": "ok",
        "tracked_identities": len(tracker) if tracker is not None else 0,
    }
