"""Schema for the agent-run endpoint."""

from pydantic import Field

from taskmarket.schemas.common import ApiModel


class AgentRunRequest(ApiModel):
    task_id: str = Field(..., min_length=1)
