"""Pydantic schemas for the agent catalog and agent runs."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class AgentSummary(BaseModel):
    """Public description of an agent in the catalog."""

    slug: str = Field(..., description="Stable identifier used in run URLs.")
    name: str = Field(..., description="Display name.")
    description: str = Field(..., description="One-line summary of what the agent does.")


class AgentRunResponse(BaseModel):
    """Acknowledgement returned once a run has been admitted."""

    agent: str = Field(..., description="Slug of the agent that was invoked.")
    status: Literal["accepted"] = Field(
        "accepted",
        description="Run admission status; execution is handled by the agent worker.",
    )
    caller: Literal["user", "ip"] = Field(
        ..., description="Whether the run counted against a user or an IP quota."
    )
