"""
Database Adapters

Concrete implementations of the DatabaseAdapter interface.
"""

from agent_provisioning.db.adapters.postgres import PostgresAdapter

__all__ = ["PostgresAdapter"]
