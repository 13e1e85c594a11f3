"""Data models for the Agent Provisioning service"""

from .company import CompanyProfile

from .agent import (
    AgentType,
    AgentTemplate,
    AgentConfig,
    AgentRecord,
    AGENT_TEMPLATES,
    SUPPORTED_AGENT_TYPES,
    get_agent_template
)

from .provisioning import (
    ProvisioningRequest,
    ProvisioningResult,
    RegionPolicy,
    PurchasedNumber,
    EventStatus,
    ProvisioningEvent,
    ResourceType,
    OrphanStatus,
    OrphanedResource
)

__all__ = [
    # Company models
    "CompanyProfile",
    # Agent models
    "AgentType",
    "AgentTemplate",
    "AgentConfig",
    "AgentRecord",
    "AGENT_TEMPLATES",
    "SUPPORTED_AGENT_TYPES",
    "get_agent_template",
    # Provisioning models
    "ProvisioningRequest",
    "ProvisioningResult",
    "RegionPolicy",
    "PurchasedNumber",
    "EventStatus",
    "ProvisioningEvent",
    "ResourceType",
    "OrphanStatus",
    "OrphanedResource"
]
