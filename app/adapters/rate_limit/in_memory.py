"""In-memory fixed-window admission tracker.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state, since sync routes run in a
  threadpool alongside the sweep loop.
- Windows are anchored at each identity's first request, not aligned to the
  clock. A caller can therefore fit up to 2x the limit around a window
  boundary.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from app.adapters.rate_limit.base import (
    AbstractAdmissionTracker,
    AdmissionResult,
    Policy,
    TrackerEntry,
)


class InMemoryAdmissionTracker(AbstractAdmissionTracker):
    """Admission tracker keeping one fixed-window counter per identity.

    Important:
        This tracker is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the tracker.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, TrackerEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identity_key: object) -> bool:
        with self._lock:
            return identity_key in self._entries

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _is_expired(self, entry: TrackerEntry, policy: Policy, now_ms: int) -> bool:
        # A request exactly at window_start + window_ms still belongs to the old window.
        return now_ms - entry.window_start_ms > policy.window_ms

    def _current_entry_locked(self, identity_key: str, policy: Policy, now_ms: int) -> TrackerEntry:
        """Return the live entry for key, starting a new window when needed."""
        entry = self._entries.get(identity_key)
        if entry is None or self._is_expired(entry, policy, now_ms):
            entry = TrackerEntry(identity_key=identity_key, count=0, window_start_ms=now_ms)
            self._entries[identity_key] = entry
        return entry

    def check_and_consume(
        self, identity_key: str, policy: Policy, now_ms: int | None = None
    ) -> AdmissionResult:
        """Check the identity's window and consume one unit when allowed.

        Args:
            identity_key: Namespaced caller identity.
            policy: Quota to evaluate against.
            now_ms: Current epoch milliseconds; defaults to the tracker clock.

        Returns:
            AdmissionResult with the decision and quota metadata.

        Raises:
            ValueError: If identity_key is empty.
        """
        if not identity_key:
            raise ValueError("identity_key must be a non-empty string")
        if now_ms is None:
            now_ms = self.now_ms()

        with self._lock:
            entry = self._current_entry_locked(identity_key, policy, now_ms)
            reset_at_ms = entry.window_start_ms + policy.window_ms

            if entry.count >= policy.limit:
                return AdmissionResult(
                    admitted=False,
                    limit=policy.limit,
                    remaining=0,
                    reset_at_ms=reset_at_ms,
                )

            entry.count += 1
            return AdmissionResult(
                admitted=True,
                limit=policy.limit,
                remaining=policy.limit - entry.count,
                reset_at_ms=reset_at_ms,
            )

    def peek(
        self, identity_key: str, policy: Policy, now_ms: int | None = None
    ) -> AdmissionResult:
        if now_ms is None:
            now_ms = self.now_ms()

        with self._lock:
            entry = self._entries.get(identity_key)
            if entry is None or self._is_expired(entry, policy, now_ms):
                return AdmissionResult(
                    admitted=True,
                    limit=policy.limit,
                    remaining=policy.limit,
                    reset_at_ms=now_ms + policy.window_ms,
                )
            remaining = max(0, policy.limit - entry.count)
            return AdmissionResult(
                admitted=remaining > 0,
                limit=policy.limit,
                remaining=remaining,
                reset_at_ms=entry.window_start_ms + policy.window_ms,
            )

    def sweep_stale(self, now_ms: int, stale_threshold_ms: int) -> int:
        with self._lock:
            stale_keys = [
                key
                for key, entry in self._entries.items()
                if now_ms - entry.window_start_ms > stale_threshold_ms
            ]
            for key in stale_keys:
                del self._entries[key]
            return len(stale_keys)
