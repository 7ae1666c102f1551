"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before anything imports the settings module.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_API_KEYS", "alice:test-api-key-123,bob:test-api-key-456")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.rate_limit.in_memory import InMemoryAdmissionTracker
from app.core.app_factory import create_app
from app.core.config import RateLimitSettings, Settings


@pytest.fixture
def clock() -> Mock:
    """Controllable time source in UNIX seconds."""
    return Mock(return_value=1_700_000_000.0)


@pytest.fixture
def tracker(clock: Mock) -> InMemoryAdmissionTracker:
    return InMemoryAdmissionTracker(clock=clock)


@pytest.fixture
def rate_limit_settings() -> RateLimitSettings:
    return RateLimitSettings(
        authenticated_limit=5,
        authenticated_window_seconds=86400,
        anonymous_limit=2,
        anonymous_window_seconds=3600,
    )


@pytest.fixture
def app(tracker: InMemoryAdmissionTracker, rate_limit_settings: RateLimitSettings) -> FastAPI:
    return create_app(tracker=tracker, app_settings=Settings(rate_limit=rate_limit_settings))


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def alice_headers() -> dict[str, str]:
    return {"X-API-Key": "test-api-key-123"}
