"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated apps, each with its own admission tracker.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractAdmissionTracker
from app.adapters.rate_limit.in_memory import InMemoryAdmissionTracker
from app.api.routes import agents_router, health_router, usage_router
from app.core.config import Settings, settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_policies
from app.core.sweeper import start_sweep_loop, stop_sweep_loop

logger = logging.getLogger(__name__)


def create_app(
    *,
    tracker: AbstractAdmissionTracker | None = None,
    app_settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        tracker: Admission tracker to use; a fresh in-memory one by default.
        app_settings: Settings to build policies and the sweep loop from.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.

    Raises:
        ConfigurationAppError: If a rate limit policy is invalid.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    # Fail at startup, not per request, on a bad policy
    policies = build_policies(cfg.rate_limit)
    admission_tracker = tracker if tracker is not None else InMemoryAdmissionTracker()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweep_task = start_sweep_loop(
            app.state.admission_tracker,
            interval_seconds=cfg.rate_limit.sweep_interval_seconds,
            stale_threshold_ms=cfg.rate_limit.stale_after_seconds * 1000,
        )
        try:
            yield
        finally:
            await stop_sweep_loop(sweep_task)

    app = FastAPI(
        title="Agent Gateway API",
        description=(
            "Runs catalog agents on behalf of anonymous and authenticated callers. "
            "Agent runs are rate limited per user (authenticated) or per IP "
            "(anonymous) and report quota through X-RateLimit-* headers."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    app.state.admission_tracker = admission_tracker
    app.state.rate_limit_policies = policies
    app.state.rate_limit_settings = cfg.rate_limit

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(agents_router, prefix="/v1")
    app.include_router(usage_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.created",
        extra={
            "authenticated_limit": policies.authenticated.limit,
            "authenticated_window_ms": policies.authenticated.window_ms,
            "anonymous_limit": policies.anonymous.limit,
            "anonymous_window_ms": policies.anonymous.window_ms,
            "rate_limit_enabled": cfg.rate_limit.enabled,
        },
    )
    return app
