from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.core.rate_limit import CallerIdentity, enforce_rate_limit, resolve_caller
from app.schemas.agents import AgentRunResponse, AgentSummary
from app.services.agent_catalog import get_agent, list_agents

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Agents"])


@router.get("/agents", response_model=list[AgentSummary])
async def list_agent_catalog() -> list[AgentSummary]:
    """List every agent that can be run. Not rate limited."""
    return list_agents()


@router.post(
    "/agents/{slug}/run",
    response_model=AgentRunResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def run_agent(
    slug: str,
    caller: Annotated[CallerIdentity, Depends(resolve_caller)],
) -> AgentRunResponse:
    """Admit an agent run for the caller.

    The rate limit is consumed before the slug is looked up, so runs against
    unknown agents still count toward the caller's quota.

    Raises:
        NotFoundAppError: 404 if the slug is not in the catalog.
    """
    agent = get_agent(slug)
    logger.info(
        "agent.run_accepted",
        extra={"agent": agent.slug, "key_type": caller.key_type},
    )
    return AgentRunResponse(agent=agent.slug, caller=caller.key_type)
