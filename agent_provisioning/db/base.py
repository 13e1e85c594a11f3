"""
Database Adapter and Directory Base Classes

This module defines the abstract interfaces for the storage side of the
provisioning workflow: the low-level database adapter and the three
directories the orchestrator talks to.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any

from agent_provisioning.models.agent import AgentRecord
from agent_provisioning.models.company import CompanyProfile
from agent_provisioning.models.provisioning import OrphanedResource, OrphanStatus


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Queries use `?` placeholders; adapters translate them as needed.
    """

    @abstractmethod
    async def connect(self) -> bool:
        """
        Establish connection to the database.
        Returns True if successful, False otherwise.
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the database connection."""
        pass

    @abstractmethod
    async def initialize_schema(self) -> bool:
        """
        Create necessary tables if they don't exist.
        Returns True if successful, False otherwise.
        """
        pass

    @abstractmethod
    async def execute(self, query: str, params: tuple = ()) -> Any:
        """Execute a raw SQL query."""
        pass

    @abstractmethod
    async def fetch_one(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Execute query and return single row as dict."""
        pass

    @abstractmethod
    async def fetch_all(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Execute query and return all rows as list of dicts."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if database connection is active."""
        pass


class CompanyDirectory(ABC):
    """Resolves companies and persists updates to their profile."""

    @abstractmethod
    async def get_by_id(self, company_id: int) -> Optional[CompanyProfile]:
        """Get a company profile, or None if it does not exist."""
        pass

    @abstractmethod
    async def update(self, profile: CompanyProfile) -> None:
        """Persist the profile."""
        pass


class AgentDirectory(ABC):
    """Persists agent records."""

    @abstractmethod
    async def insert(
        self,
        company_id: int,
        agent_type: str,
        provider_agent_id: Optional[str] = None
    ) -> AgentRecord:
        """Insert a new agent record; the directory assigns agent_id."""
        pass

    @abstractmethod
    async def delete(self, agent_id: int) -> bool:
        """Delete an agent record. Returns True if a row was removed."""
        pass


class OrphanRegistry(ABC):
    """Durable record of remote resources left without a local counterpart."""

    @abstractmethod
    async def record(self, orphan: OrphanedResource) -> OrphanedResource:
        """Store an orphan and return it with its assigned orphan_id."""
        pass

    @abstractmethod
    async def get(self, orphan_id: int) -> Optional[OrphanedResource]:
        pass

    @abstractmethod
    async def list_open(self, limit: int = 100) -> List[OrphanedResource]:
        """List orphans that still need reconciliation."""
        pass

    @abstractmethod
    async def mark(self, orphan_id: int, status: OrphanStatus) -> Optional[OrphanedResource]:
        """Set the reconciliation status of an orphan."""
        pass
