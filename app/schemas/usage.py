"""Pydantic schemas for quota reporting."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class UsageResponse(BaseModel):
    """Current quota for the calling identity, read without consuming."""

    identity_type: Literal["user", "ip"] = Field(
        ..., description="Caller class the quota was looked up for."
    )
    limit: int = Field(..., ge=1, description="Requests allowed per window.")
    remaining: int = Field(..., ge=0, description="Requests left in the current window.")
    window_seconds: int = Field(..., ge=1, description="Window length in seconds.")
    reset_time: str = Field(
        ..., description="ISO-8601 UTC time at which the current window ends."
    )
