"""Static catalog of runnable agents.

Agent implementations live outside this service; the catalog only tells the
HTTP layer which slugs exist.
"""

from __future__ import annotations

from app.core.errors import NotFoundAppError
from app.schemas.agents import AgentSummary

AGENTS: tuple[AgentSummary, ...] = (
    AgentSummary(
        slug="cloud_cost_agent",
        name="Cloud Cost Auditor",
        description="Find idle resources and wasted spend in cloud billing exports.",
    ),
    AgentSummary(
        slug="cicd_agent",
        name="CI/CD Pipeline Generator",
        description="Generate build, test and deploy workflows for a tech stack.",
    ),
    AgentSummary(
        slug="log_anomaly_agent",
        name="Log Anomaly Detective",
        description="Detect anomalies in server logs and suggest root causes.",
    ),
    AgentSummary(
        slug="sql_generator",
        name="Smart SQL Generator",
        description="Turn natural language questions into SQL with explanations.",
    ),
    AgentSummary(
        slug="resume_opt",
        name="Resume Optimizer",
        description="Tailor a resume to a job description.",
    ),
    AgentSummary(
        slug="code_fix_agent",
        name="Code Fix Agent",
        description="Explain and patch failing code snippets.",
    ),
)

_BY_SLUG = {agent.slug: agent for agent in AGENTS}


def list_agents() -> list[AgentSummary]:
    return list(AGENTS)


def get_agent(slug: str) -> AgentSummary:
    """Look up an agent by slug.

    Raises:
        NotFoundAppError: If no agent has this slug.
    """
    agent = _BY_SLUG.get(slug)
    if agent is None:
        raise NotFoundAppError(
            code="agent_not_found",
            message="Agent not found",
            details={"slug": slug},
        )
    return agent
