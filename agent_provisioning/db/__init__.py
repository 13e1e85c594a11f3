"""
Database Abstraction Layer

Storage side of the provisioning workflow: the adapter interface, the
directory contracts the orchestrator consumes, and their Postgres-backed
repositories.

Usage:
    from agent_provisioning.db import get_repository

    repo = get_repository()
    company = await repo.companies.get_by_id(7)
"""

from agent_provisioning.db.base import (
    DatabaseAdapter,
    CompanyDirectory,
    AgentDirectory,
    OrphanRegistry,
)
from agent_provisioning.db.repository import (
    DatabaseRepository,
    CompanyRepository,
    AgentRepository,
    OrphanRepository,
    get_repository,
    initialize_database,
    close_database,
)

__all__ = [
    "DatabaseAdapter",
    "CompanyDirectory",
    "AgentDirectory",
    "OrphanRegistry",
    "DatabaseRepository",
    "CompanyRepository",
    "AgentRepository",
    "OrphanRepository",
    "get_repository",
    "initialize_database",
    "close_database",
]
