"""
Pytest configuration and fixtures
"""

import os
import pytest
from datetime import datetime, timezone
from typing import Dict, List, Optional

# Set test environment variables before importing application modules
os.environ.setdefault("ULTRAVOX_API_KEY", "test-ultravox-key")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "test-account-sid")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "test-auth-token")
os.environ.setdefault("TWILIO_WEBHOOK_URL", "https://hooks.example.com/twilio")
os.environ.setdefault("LEASE_BACKEND", "memory")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("API_RETRY_DELAY", "0.01")
os.environ["DATABASE_URL"] = ""

from agent_provisioning.db.base import CompanyDirectory, AgentDirectory, OrphanRegistry
from agent_provisioning.models.agent import AgentConfig, AgentRecord
from agent_provisioning.models.company import CompanyProfile
from agent_provisioning.models.provisioning import (
    EventStatus,
    OrphanedResource,
    OrphanStatus,
    ProvisioningEvent,
    PurchasedNumber,
    RegionPolicy,
)
from agent_provisioning.services.base import AgentProvider, TelephonyProvider
from agent_provisioning.services.events import ProvisioningEventSink
from agent_provisioning.services.lease_service import LocalLeaseManager
from agent_provisioning.services.provisioning_orchestrator import (
    ProvisioningOptions,
    ProvisioningOrchestrator,
)


class CallLog:
    """Shared, ordered record of collaborator calls"""

    def __init__(self):
        self.calls: List[str] = []

    def add(self, name: str) -> None:
        self.calls.append(name)

    def count(self, name: str) -> int:
        return self.calls.count(name)


class FakeClock:
    """Monotonic clock that only moves when a test advances it"""

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class FakeCompanyDirectory(CompanyDirectory):
    def __init__(self, log: CallLog, companies: Optional[Dict[int, CompanyProfile]] = None):
        self.log = log
        self.companies = companies or {}
        self.fail_update = False

    async def get_by_id(self, company_id: int) -> Optional[CompanyProfile]:
        self.log.add("company.get_by_id")
        company = self.companies.get(company_id)
        return company.model_copy() if company else None

    async def update(self, profile: CompanyProfile) -> None:
        self.log.add("company.update")
        if self.fail_update:
            raise RuntimeError("company table locked")
        self.companies[profile.company_id] = profile


class FakeAgentDirectory(AgentDirectory):
    def __init__(self, log: CallLog):
        self.log = log
        self.records: Dict[int, AgentRecord] = {}
        self.next_id = 42
        self.fail_insert = False
        self.fail_delete = False

    async def insert(self, company_id: int, agent_type: str, provider_agent_id: Optional[str] = None) -> AgentRecord:
        self.log.add("agent.insert")
        if self.fail_insert:
            raise RuntimeError("connection reset")
        record = AgentRecord(
            agent_id=self.next_id,
            company_id=company_id,
            agent_type=agent_type,
            provider_agent_id=provider_agent_id
        )
        self.records[record.agent_id] = record
        self.next_id += 1
        return record

    async def delete(self, agent_id: int) -> bool:
        self.log.add("agent.delete")
        if self.fail_delete:
            raise RuntimeError("connection reset")
        return self.records.pop(agent_id, None) is not None


class FakeAgentProvider(AgentProvider):
    def __init__(self, log: CallLog):
        self.log = log
        self.config: Optional[AgentConfig] = AgentConfig(provider_agent_id="uv-agent-1", name="Acme Freight")
        self.release_result = True
        self.released: List[str] = []
        self.allocated_for: List[str] = []

    async def allocate_agent(self, company_name: str, agent_type: str) -> Optional[AgentConfig]:
        self.log.add("provider.allocate_agent")
        self.allocated_for.append(company_name)
        return self.config

    async def release_agent(self, provider_agent_id: str) -> bool:
        self.log.add("provider.release_agent")
        self.released.append(provider_agent_id)
        return self.release_result


class FakeTelephonyProvider(TelephonyProvider):
    def __init__(self, log: CallLog):
        self.log = log
        self.number: Optional[PurchasedNumber] = PurchasedNumber(phone_number="+14155550100", sid="PN123")
        self.release_result = True
        self.released: List[str] = []
        self.policies: List[RegionPolicy] = []
        self.gate = None

    async def acquire_number(self, policy: RegionPolicy) -> Optional[PurchasedNumber]:
        self.log.add("telephony.acquire_number")
        self.policies.append(policy)
        if self.gate is not None:
            await self.gate.wait()
        return self.number

    async def release_number(self, sid: str) -> bool:
        self.log.add("telephony.release_number")
        self.released.append(sid)
        if isinstance(self.release_result, Exception):
            raise self.release_result
        return self.release_result


class FakeOrphanRegistry(OrphanRegistry):
    def __init__(self):
        self.orphans: Dict[int, OrphanedResource] = {}
        self.fail_record = False
        self._next_id = 1

    async def record(self, orphan: OrphanedResource) -> OrphanedResource:
        if self.fail_record:
            raise RuntimeError("orphan table unavailable")
        stored = orphan.model_copy(update={"orphan_id": self._next_id})
        self.orphans[stored.orphan_id] = stored
        self._next_id += 1
        return stored

    async def get(self, orphan_id: int) -> Optional[OrphanedResource]:
        return self.orphans.get(orphan_id)

    async def list_open(self, limit: int = 100) -> List[OrphanedResource]:
        return [o for o in self.orphans.values() if o.status != OrphanStatus.RELEASED][:limit]

    async def mark(self, orphan_id: int, status: OrphanStatus) -> Optional[OrphanedResource]:
        orphan = self.orphans.get(orphan_id)
        if orphan is None:
            return None
        resolved_at = datetime.now(timezone.utc) if status == OrphanStatus.RELEASED else None
        updated = orphan.model_copy(update={"status": status, "resolved_at": resolved_at})
        self.orphans[orphan_id] = updated
        return updated


class CollectingEventSink(ProvisioningEventSink):
    """Keeps events in memory, in emission order"""

    def __init__(self):
        self.events: List[ProvisioningEvent] = []

    def emit(self, event: ProvisioningEvent) -> None:
        self.events.append(event)

    def statuses(self, step: str) -> List[EventStatus]:
        return [e.status for e in self.events if e.step == step]


@pytest.fixture
def call_log():
    return CallLog()


@pytest.fixture
def acme():
    """Company 7, Acme Freight, without a number"""
    return CompanyProfile(company_id=7, name="Acme Freight")


@pytest.fixture
def company_directory(call_log, acme):
    return FakeCompanyDirectory(call_log, {acme.company_id: acme})


@pytest.fixture
def agent_directory(call_log):
    return FakeAgentDirectory(call_log)


@pytest.fixture
def agent_provider(call_log):
    return FakeAgentProvider(call_log)


@pytest.fixture
def telephony_provider(call_log):
    return FakeTelephonyProvider(call_log)


@pytest.fixture
def orphan_registry():
    return FakeOrphanRegistry()


@pytest.fixture
def event_sink():
    return CollectingEventSink()


@pytest.fixture
def lease_manager():
    return LocalLeaseManager(poll_interval=0.01)


@pytest.fixture
def options():
    return ProvisioningOptions()


@pytest.fixture
def orchestrator(
    company_directory,
    agent_directory,
    agent_provider,
    telephony_provider,
    lease_manager,
    event_sink,
    orphan_registry,
    options
):
    """Orchestrator wired to in-memory fakes"""
    return ProvisioningOrchestrator(
        company_directory=company_directory,
        agent_directory=agent_directory,
        agent_provider=agent_provider,
        telephony_provider=telephony_provider,
        lease_manager=lease_manager,
        event_sink=event_sink,
        orphan_registry=orphan_registry,
        region_policy=RegionPolicy(),
        options=options
    )


@pytest.fixture
def test_client(orchestrator, orphan_registry, agent_provider, telephony_provider):
    """Fixture for test client with the services replaced by fakes"""
    from fastapi.testclient import TestClient

    from agent_provisioning.api.routes import agents
    from agent_provisioning.main import app
    from agent_provisioning.services.reconciliation_service import ReconciliationService

    reconciliation = ReconciliationService(orphan_registry, agent_provider, telephony_provider)
    app.dependency_overrides[agents.get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[agents.get_reconciliation] = lambda: reconciliation

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
