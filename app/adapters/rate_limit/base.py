"""Request admission interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the storage backend can be swapped later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.core.errors import ConfigurationAppError


@dataclass(frozen=True)
class Policy:
    """Quota applied to one class of caller.

    Attributes:
        limit: Maximum admitted requests per window.
        window_ms: Window length in milliseconds.
    """

    limit: int
    window_ms: int

    def validate(self) -> "Policy":
        """Reject unusable policies at setup time.

        Returns:
            The policy itself, for chaining.

        Raises:
            ConfigurationAppError: If limit or window is not positive.
        """
        if self.limit <= 0:
            raise ConfigurationAppError(
                code="invalid_rate_limit_policy",
                message="Policy limit must be a positive integer",
                details={"field": "limit", "actual_value": self.limit},
            )
        if self.window_ms <= 0:
            raise ConfigurationAppError(
                code="invalid_rate_limit_policy",
                message="Policy window must be a positive number of milliseconds",
                details={"field": "window_ms", "actual_value": self.window_ms},
            )
        return self


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of an admission decision.

    Attributes:
        admitted: Whether the request may proceed.
        limit: Policy limit the decision was made against.
        remaining: Requests left in the current window (0 when rejected).
        reset_at_ms: Epoch milliseconds at which the current window ends.
    """

    admitted: bool
    limit: int
    remaining: int
    reset_at_ms: int


@dataclass
class TrackerEntry:
    identity_key: str
    count: int
    window_start_ms: int


class AbstractAdmissionTracker(ABC):
    """Interface for request admission trackers."""

    @abstractmethod
    def check_and_consume(
        self, identity_key: str, policy: Policy, now_ms: int | None = None
    ) -> AdmissionResult:
        """Decide whether to admit one request and record it if admitted.

        Args:
            identity_key: Namespaced caller identity (e.g. ``user_42``).
            policy: Quota to evaluate against.
            now_ms: Current epoch milliseconds; defaults to the tracker clock.

        Returns:
            AdmissionResult describing the decision.
        """
        raise NotImplementedError

    @abstractmethod
    def peek(
        self, identity_key: str, policy: Policy, now_ms: int | None = None
    ) -> AdmissionResult:
        """Report quota state for an identity without consuming budget."""
        raise NotImplementedError

    @abstractmethod
    def sweep_stale(self, now_ms: int, stale_threshold_ms: int) -> int:
        """Drop entries whose window started more than the threshold ago.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    @abstractmethod
    def now_ms(self) -> int:
        """Current time in epoch milliseconds according to the tracker."""
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError
