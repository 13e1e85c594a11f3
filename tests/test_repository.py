"""
Tests for the database repositories
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from agent_provisioning.db.adapters.postgres import PostgresAdapter
from agent_provisioning.db.repository import (
    AgentRepository,
    CompanyRepository,
    DatabaseRepository,
    OrphanRepository,
)
from agent_provisioning.models.company import CompanyProfile
from agent_provisioning.models.provisioning import OrphanedResource, OrphanStatus, ResourceType


@pytest.fixture
def adapter():
    mock = MagicMock()
    mock.execute = AsyncMock(return_value="UPDATE 1")
    mock.fetch_one = AsyncMock(return_value=None)
    mock.fetch_all = AsyncMock(return_value=[])
    mock.connect = AsyncMock(return_value=True)
    mock.initialize_schema = AsyncMock(return_value=True)
    mock.disconnect = AsyncMock()
    return mock


class TestCompanyRepository:
    """Tests for the company directory"""

    @pytest.mark.asyncio
    async def test_get_by_id(self, adapter):
        adapter.fetch_one.return_value = {
            "company_id": 7,
            "name": "Acme Freight",
            "telephony_number": None
        }

        company = await CompanyRepository(adapter).get_by_id(7)

        assert company == CompanyProfile(company_id=7, name="Acme Freight")
        query, params = adapter.fetch_one.call_args.args
        assert "FROM company" in query
        assert params == (7,)

    @pytest.mark.asyncio
    async def test_get_missing_company(self, adapter):
        assert await CompanyRepository(adapter).get_by_id(999) is None

    @pytest.mark.asyncio
    async def test_update(self, adapter):
        profile = CompanyProfile(company_id=7, name="Acme Freight", telephony_number="+14155550100")

        await CompanyRepository(adapter).update(profile)

        query, params = adapter.execute.call_args.args
        assert query.startswith("UPDATE company")
        assert params == ("Acme Freight", "+14155550100", 7)


class TestAgentRepository:
    """Tests for the agent directory"""

    @pytest.mark.asyncio
    async def test_insert_returns_assigned_id(self, adapter):
        created_at = datetime(2026, 1, 5, 12, 0, 0)
        adapter.fetch_one.return_value = {"agent_id": 42, "created_at": created_at}

        record = await AgentRepository(adapter).insert(7, "LoadBoard", "uv-agent-1")

        assert record.agent_id == 42
        assert record.company_id == 7
        assert record.agent_type == "LoadBoard"
        assert record.provider_agent_id == "uv-agent-1"
        assert record.created_at == created_at
        query, params = adapter.fetch_one.call_args.args
        assert "RETURNING agent_id" in query
        assert params[:3] == (7, "LoadBoard", "uv-agent-1")
        assert params[3].tzinfo == timezone.utc

    @pytest.mark.asyncio
    async def test_insert_without_row_raises(self, adapter):
        with pytest.raises(RuntimeError):
            await AgentRepository(adapter).insert(7, "LoadBoard")

    @pytest.mark.asyncio
    async def test_delete(self, adapter):
        adapter.fetch_one.return_value = {"agent_id": 42}
        assert await AgentRepository(adapter).delete(42) is True

        adapter.fetch_one.return_value = None
        assert await AgentRepository(adapter).delete(42) is False


class TestOrphanRepository:
    """Tests for the orphan registry"""

    def _row(self, **kwargs):
        row = {
            "orphan_id": 1,
            "run_id": "run-1",
            "company_id": 7,
            "resource_type": "telephony_number",
            "resource_id": "PN123",
            "phone_number": "+14155550100",
            "reason": "persist_agent failed",
            "status": "open",
            "created_at": datetime(2026, 1, 5, 12, 0, 0),
            "resolved_at": None
        }
        row.update(kwargs)
        return row

    @pytest.mark.asyncio
    async def test_record(self, adapter):
        adapter.fetch_one.return_value = {"orphan_id": 5}
        orphan = OrphanedResource(
            run_id="run-1",
            company_id=7,
            resource_type=ResourceType.TELEPHONY_NUMBER,
            resource_id="PN123",
            phone_number="+14155550100",
            reason="persist_agent failed"
        )

        stored = await OrphanRepository(adapter).record(orphan)

        assert stored.orphan_id == 5
        _, params = adapter.fetch_one.call_args.args
        assert params[2] == "telephony_number"
        assert params[6] == "open"
        assert params[7].tzinfo == timezone.utc

    @pytest.mark.asyncio
    async def test_list_open(self, adapter):
        adapter.fetch_all.return_value = [self._row(), self._row(orphan_id=2, status="release_failed")]

        orphans = await OrphanRepository(adapter).list_open(limit=10)

        assert [o.orphan_id for o in orphans] == [1, 2]
        assert orphans[1].status == OrphanStatus.RELEASE_FAILED
        _, params = adapter.fetch_all.call_args.args
        assert params == (10,)

    @pytest.mark.asyncio
    async def test_mark_released(self, adapter):
        adapter.fetch_one.return_value = self._row(status="released", resolved_at=datetime(2026, 1, 6))

        orphan = await OrphanRepository(adapter).mark(1, OrphanStatus.RELEASED)

        assert orphan.status == OrphanStatus.RELEASED
        _, params = adapter.execute.call_args.args
        assert params[0] == "released"
        assert isinstance(params[1], datetime)
        assert params[1].tzinfo == timezone.utc
        assert params[2] == 1


class TestDatabaseRepository:
    """Tests for repository setup"""

    @pytest.mark.asyncio
    async def test_initialize(self, adapter):
        repo = DatabaseRepository(adapter)

        assert await repo.initialize() is True
        adapter.initialize_schema.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_initialize_without_connection(self, adapter):
        adapter.connect.return_value = False
        repo = DatabaseRepository(adapter)

        assert await repo.initialize() is False
        adapter.initialize_schema.assert_not_awaited()


class TestPostgresAdapter:
    """Tests for the Postgres adapter"""

    def test_convert_placeholders(self):
        query = "UPDATE company SET name = ?, telephony_number = ? WHERE company_id = ?"

        assert PostgresAdapter._convert_placeholders(query) == (
            "UPDATE company SET name = $1, telephony_number = $2 WHERE company_id = $3"
        )

    @pytest.mark.asyncio
    async def test_connect_without_url(self):
        adapter = PostgresAdapter()
        adapter.database_url = None

        assert await adapter.connect() is False
        assert adapter.is_connected() is False

    @pytest.mark.asyncio
    async def test_query_requires_connection(self):
        adapter = PostgresAdapter(database_url="postgresql://localhost/test")

        with pytest.raises(ConnectionError):
            await adapter.fetch_one("SELECT 1")
