"""
Agent models and agent-type templates
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class AgentType(str, Enum):
    """Supported agent types"""
    LOAD_BOARD = "LoadBoard"


SUPPORTED_AGENT_TYPES = frozenset(t.value for t in AgentType)


class AgentTemplate(BaseModel):
    """Behavioural template sent to the agent provider for an agent type"""
    role: str
    persona: str
    voice: str
    prompt_template: str
    context_aware: bool = True

    def render_prompt(self, company_name: str) -> str:
        """Get the prompt with the company name filled in"""
        return self.prompt_template.format(company_name=company_name)


AGENT_TEMPLATES: Dict[AgentType, AgentTemplate] = {
    AgentType.LOAD_BOARD: AgentTemplate(
        role="Professional Load Booking Assistant",
        persona="Friendly, assertive, quick negotiator",
        voice="Natural, neutral tone",
        prompt_template=(
            "You are a load booking assistant for {company_name}. "
            "You help negotiate rates, match routes, and answer queries."
        ),
        context_aware=True
    )
}


def get_agent_template(agent_type: str) -> Optional[AgentTemplate]:
    """Get the template for an agent type, or None if unsupported"""
    if agent_type not in SUPPORTED_AGENT_TYPES:
        return None
    return AGENT_TEMPLATES.get(AgentType(agent_type))


class AgentConfig(BaseModel):
    """Configuration returned by the conversational-agent provider"""
    provider_agent_id: Optional[str] = Field(
        default=None,
        description="Identifier assigned by the provider, needed to release the agent"
    )
    name: Optional[str] = None
    role: Optional[str] = None
    persona: Optional[str] = None
    voice: Optional[str] = None
    prompt: Optional[str] = None
    context_aware: bool = True
    raw_response: Dict[str, Any] = Field(default_factory=dict)


class AgentRecord(BaseModel):
    """Locally persisted agent"""
    agent_id: int = Field(..., description="Identifier assigned by the agent directory")
    company_id: int
    agent_type: str
    provider_agent_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"from_attributes": True}
