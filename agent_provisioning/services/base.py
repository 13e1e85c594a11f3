"""
Provider Base Classes

Contracts for the two remote providers the orchestrator drives. Both are
expected to report failure through their return value rather than raise;
the orchestrator still guards against exceptions.
"""

from abc import ABC, abstractmethod
from typing import Optional

from agent_provisioning.models.agent import AgentConfig
from agent_provisioning.models.provisioning import PurchasedNumber, RegionPolicy


class AgentProvider(ABC):
    """Conversational-agent provider"""

    @abstractmethod
    async def allocate_agent(self, company_name: str, agent_type: str) -> Optional[AgentConfig]:
        """
        Create an agent configuration for a company.

        Returns None when the provider did not produce a usable configuration.
        """
        pass

    @abstractmethod
    async def release_agent(self, provider_agent_id: str) -> bool:
        """Delete a previously allocated agent. Returns True on success."""
        pass


class TelephonyProvider(ABC):
    """Telephony number provisioning provider"""

    @abstractmethod
    async def acquire_number(self, policy: RegionPolicy) -> Optional[PurchasedNumber]:
        """
        Search for and purchase a number matching the policy.

        Returns None when no number could be bought.
        """
        pass

    @abstractmethod
    async def release_number(self, sid: str) -> bool:
        """Release a purchased number. Returns True on success."""
        pass
