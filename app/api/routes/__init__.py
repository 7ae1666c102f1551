from __future__ import annotations

from app.api.routes.agents import router as agents_router
from app.api.routes.health import router as health_router
from app.api.routes.usage import router as usage_router

__all__ = ["agents_router", "health_router", "usage_router"]
