"""
Directory Repository Implementations

This module provides concrete implementations of the directory interfaces
that work with any DatabaseAdapter.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from agent_provisioning.db.base import (
    DatabaseAdapter,
    CompanyDirectory,
    AgentDirectory,
    OrphanRegistry,
)
from agent_provisioning.models.agent import AgentRecord
from agent_provisioning.models.company import CompanyProfile
from agent_provisioning.models.provisioning import OrphanedResource, OrphanStatus

logger = logging.getLogger(__name__)

# Singleton instance
_repository_instance: Optional["DatabaseRepository"] = None


class CompanyRepository(CompanyDirectory):
    """Company profiles stored in the `company` table."""

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter

    async def get_by_id(self, company_id: int) -> Optional[CompanyProfile]:
        query = "SELECT company_id, name, telephony_number FROM company WHERE company_id = ?"
        row = await self.adapter.fetch_one(query, (company_id,))

        if not row:
            return None

        return CompanyProfile(
            company_id=row["company_id"],
            name=row["name"],
            telephony_number=row.get("telephony_number"),
        )

    async def update(self, profile: CompanyProfile) -> None:
        query = "UPDATE company SET name = ?, telephony_number = ? WHERE company_id = ?"
        await self.adapter.execute(
            query, (profile.name, profile.telephony_number, profile.company_id)
        )
        logger.info(f"Updated company: {profile.company_id}")


class AgentRepository(AgentDirectory):
    """Agent records stored in the `agent` table."""

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter

    async def insert(
        self,
        company_id: int,
        agent_type: str,
        provider_agent_id: Optional[str] = None
    ) -> AgentRecord:
        query = """
            INSERT INTO agent (company_id, agent_type, provider_agent_id, created_at)
            VALUES (?, ?, ?, ?)
            RETURNING agent_id, created_at
        """
        row = await self.adapter.fetch_one(
            query, (company_id, agent_type, provider_agent_id, datetime.now(timezone.utc))
        )
        if not row:
            raise RuntimeError("Agent insert returned no row")

        record = AgentRecord(
            agent_id=row["agent_id"],
            company_id=company_id,
            agent_type=agent_type,
            provider_agent_id=provider_agent_id,
            created_at=row["created_at"],
        )
        logger.info(f"Created agent record: {record.agent_id} for company {company_id}")
        return record

    async def delete(self, agent_id: int) -> bool:
        row = await self.adapter.fetch_one(
            "DELETE FROM agent WHERE agent_id = ? RETURNING agent_id", (agent_id,)
        )
        if row:
            logger.info(f"Deleted agent record: {agent_id}")
        return row is not None


class OrphanRepository(OrphanRegistry):
    """Orphaned remote resources stored in the `orphaned_resources` table."""

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter

    async def record(self, orphan: OrphanedResource) -> OrphanedResource:
        query = """
            INSERT INTO orphaned_resources (
                run_id, company_id, resource_type, resource_id,
                phone_number, reason, status, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING orphan_id
        """
        params = (
            orphan.run_id,
            orphan.company_id,
            orphan.resource_type.value,
            orphan.resource_id,
            orphan.phone_number,
            orphan.reason,
            orphan.status.value,
            orphan.created_at,
        )
        row = await self.adapter.fetch_one(query, params)
        stored = orphan.model_copy(update={"orphan_id": row["orphan_id"] if row else None})
        logger.info(f"Recorded orphaned {orphan.resource_type.value}: {stored.orphan_id}")
        return stored

    async def get(self, orphan_id: int) -> Optional[OrphanedResource]:
        row = await self.adapter.fetch_one(
            "SELECT * FROM orphaned_resources WHERE orphan_id = ?", (orphan_id,)
        )
        if not row:
            return None
        return self._row_to_orphan(row)

    async def list_open(self, limit: int = 100) -> List[OrphanedResource]:
        query = """
            SELECT * FROM orphaned_resources
            WHERE status IN ('open', 'release_failed')
            ORDER BY created_at ASC LIMIT ?
        """
        rows = await self.adapter.fetch_all(query, (limit,))
        return [self._row_to_orphan(row) for row in rows]

    async def mark(self, orphan_id: int, status: OrphanStatus) -> Optional[OrphanedResource]:
        resolved_at = datetime.now(timezone.utc) if status == OrphanStatus.RELEASED else None
        await self.adapter.execute(
            "UPDATE orphaned_resources SET status = ?, resolved_at = ? WHERE orphan_id = ?",
            (status.value, resolved_at, orphan_id),
        )
        logger.info(f"Marked orphan {orphan_id} as {status.value}")
        return await self.get(orphan_id)

    def _row_to_orphan(self, row: Dict[str, Any]) -> OrphanedResource:
        return OrphanedResource(
            orphan_id=row["orphan_id"],
            run_id=row["run_id"],
            company_id=row["company_id"],
            resource_type=row["resource_type"],
            resource_id=row.get("resource_id"),
            phone_number=row.get("phone_number"),
            reason=row["reason"],
            status=row["status"],
            created_at=row["created_at"],
            resolved_at=row.get("resolved_at"),
        )


class DatabaseRepository:
    """
    Bundles the adapter with the three directories that share it.
    """

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter
        self.companies = CompanyRepository(adapter)
        self.agents = AgentRepository(adapter)
        self.orphans = OrphanRepository(adapter)

    async def initialize(self) -> bool:
        """
        Initialize the repository (connect and setup schema).

        Returns:
            True if initialization successful, False otherwise.
        """
        connected = await self.adapter.connect()
        if not connected:
            return False

        return await self.adapter.initialize_schema()

    async def close(self) -> None:
        """Close the database connection."""
        await self.adapter.disconnect()

    @staticmethod
    def create_repository(database_url: Optional[str] = None) -> "DatabaseRepository":
        from agent_provisioning.db.adapters.postgres import PostgresAdapter
        return DatabaseRepository(PostgresAdapter(database_url))


def get_repository() -> DatabaseRepository:
    """
    Get or create the singleton repository instance.
    """
    global _repository_instance

    if _repository_instance is None:
        _repository_instance = DatabaseRepository.create_repository()
        logger.info("Created postgres repository instance")

    return _repository_instance


async def initialize_database() -> bool:
    """
    Initialize the database (connect and create schema).

    Call this at application startup.
    """
    repo = get_repository()
    return await repo.initialize()


async def close_database() -> None:
    """
    Close the database connection.

    Call this at application shutdown.
    """
    global _repository_instance
    if _repository_instance:
        await _repository_instance.close()
        _repository_instance = None
        logger.info("Database connection closed")
