"""Request admission adapters.

This package provides a small abstraction layer so the service can start with
an in-memory tracker and later migrate to Redis or another shared store
without changing the API layer.
"""

from app.adapters.rate_limit.base import (
    AbstractAdmissionTracker,
    AdmissionResult,
    Policy,
    TrackerEntry,
)
from app.adapters.rate_limit.in_memory import InMemoryAdmissionTracker

__all__ = [
    "AbstractAdmissionTracker",
    "AdmissionResult",
    "InMemoryAdmissionTracker",
    "Policy",
    "TrackerEntry",
]
