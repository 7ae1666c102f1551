"""Periodic removal of stale admission tracker entries.

One-off anonymous callers would otherwise leave an entry behind forever.
The loop is started and stopped explicitly by the app lifespan.
"""

from __future__ import annotations

import asyncio
import logging

from app.adapters.rate_limit.base import AbstractAdmissionTracker

logger = logging.getLogger(__name__)


async def _sweep_loop(
    tracker: AbstractAdmissionTracker,
    interval_seconds: float,
    stale_threshold_ms: int,
) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = tracker.sweep_stale(tracker.now_ms(), stale_threshold_ms)
        except Exception:
            logger.exception("rate_limit.sweep_failed")
            continue
        logger.info(
            "rate_limit.sweep",
            extra={"removed": removed, "entries": len(tracker)},
        )


def start_sweep_loop(
    tracker: AbstractAdmissionTracker,
    *,
    interval_seconds: float,
    stale_threshold_ms: int,
) -> asyncio.Task:
    """Schedule the sweep loop on the running event loop.

    Args:
        tracker: Tracker whose stale entries should be dropped.
        interval_seconds: Delay between sweeps.
        stale_threshold_ms: Age after which an entry's window counts as stale.

    Returns:
        The background task; pass it to stop_sweep_loop on shutdown.

    Raises:
        ValueError: If interval or threshold is not positive.
    """
    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be > 0")
    if stale_threshold_ms <= 0:
        raise ValueError("stale_threshold_ms must be > 0")

    logger.info(
        "rate_limit.sweep_started",
        extra={"interval_s": interval_seconds, "stale_threshold_ms": stale_threshold_ms},
    )
    return asyncio.create_task(
        _sweep_loop(tracker, interval_seconds, stale_threshold_ms),
        name="rate-limit-sweep",
    )


async def stop_sweep_loop(task: asyncio.Task | None) -> None:
    """Cancel the sweep task and wait for it to finish."""
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    logger.info("rate_limit.sweep_stopped")
