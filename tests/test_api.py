"""
Tests for API endpoints
"""

import pytest

from agent_provisioning.models.provisioning import OrphanedResource, ResourceType


class TestHealthEndpoints:
    """Tests for health check endpoints"""

    def test_health_check(self, test_client):
        """Test basic health check"""
        response = test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    def test_readiness_without_database(self, test_client):
        """Readiness reports degraded while the database is unavailable"""
        response = test_client.get("/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["ultravox"] is True
        assert data["checks"]["database"] is False

    def test_api_info(self, test_client):
        response = test_client.get("/api")
        assert response.status_code == 200
        assert response.json()["endpoints"]["register"] == "/api/v1/agents/register"


class TestRegisterEndpoint:
    """Tests for agent registration"""

    def test_register_success(self, test_client, company_directory):
        response = test_client.post(
            "/api/v1/agents/register",
            json={"company_id": 7, "agent_type": "LoadBoard"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["agent_id"] == 42
        assert data["telephony_number"] == "+14155550100"
        assert company_directory.companies[7].telephony_number == "+14155550100"

    def test_register_unsupported_agent_type(self, test_client, call_log):
        response = test_client.post(
            "/api/v1/agents/register",
            json={"company_id": 7, "agent_type": "Dispatcher"}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "UNSUPPORTED_AGENT_TYPE"
        assert data["message"] == "AgentType not supported"
        assert call_log.calls == []

    def test_register_unknown_company(self, test_client):
        response = test_client.post(
            "/api/v1/agents/register",
            json={"company_id": 999, "agent_type": "LoadBoard"}
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "COMPANY_NOT_FOUND"

    def test_register_provider_failure(self, test_client, agent_provider):
        agent_provider.config = None

        response = test_client.post(
            "/api/v1/agents/register",
            json={"company_id": 7, "agent_type": "LoadBoard"}
        )

        assert response.status_code == 502
        assert response.json()["error_kind"] == "provider"

    def test_register_persistence_failure(self, test_client, agent_directory):
        agent_directory.fail_insert = True

        response = test_client.post(
            "/api/v1/agents/register",
            json={"company_id": 7, "agent_type": "LoadBoard"}
        )

        assert response.status_code == 500
        assert response.json()["error_code"] == "AGENT_PERSISTENCE_FAILED"

    def test_register_twice_conflicts(self, test_client):
        body = {"company_id": 7, "agent_type": "LoadBoard"}

        assert test_client.post("/api/v1/agents/register", json=body).status_code == 200
        response = test_client.post("/api/v1/agents/register", json=body)

        assert response.status_code == 409
        assert response.json()["error_code"] == "AGENT_ALREADY_PROVISIONED"

    def test_register_invalid_body(self, test_client):
        response = test_client.post("/api/v1/agents/register", json={"agent_type": "LoadBoard"})
        assert response.status_code == 422


class TestOrphanEndpoints:
    """Tests for orphan reconciliation endpoints"""

    @pytest.fixture
    def number_orphan(self, orphan_registry):
        orphan = OrphanedResource(
            orphan_id=1,
            run_id="run-1",
            company_id=7,
            resource_type=ResourceType.TELEPHONY_NUMBER,
            resource_id="PN123",
            phone_number="+14155550100",
            reason="persist_agent failed"
        )
        orphan_registry.orphans[1] = orphan
        return orphan

    def test_list_orphans(self, test_client, number_orphan):
        response = test_client.get("/api/v1/agents/orphans")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["resource_id"] == "PN123"
        assert data[0]["status"] == "open"

    def test_release_orphan(self, test_client, number_orphan, telephony_provider):
        response = test_client.post("/api/v1/agents/orphans/1/release")

        assert response.status_code == 200
        assert response.json()["status"] == "released"
        assert telephony_provider.released == ["PN123"]

    def test_release_orphan_failure(self, test_client, number_orphan, telephony_provider):
        telephony_provider.release_result = False

        response = test_client.post("/api/v1/agents/orphans/1/release")

        assert response.status_code == 502
        assert response.json()["status"] == "release_failed"

    def test_release_unknown_orphan(self, test_client):
        response = test_client.post("/api/v1/agents/orphans/404/release")

        assert response.status_code == 404
        assert response.json()["error"] == "ORPHAN_NOT_FOUND"
