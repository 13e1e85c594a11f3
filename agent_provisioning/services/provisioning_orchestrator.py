"""
Provisioning Orchestrator
Provisions an AI agent for a company: allocates the agent configuration,
buys a telephony number, persists the agent record and attaches the number
to the company, all under a per-company lease.
"""

from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel

from agent_provisioning.core.config import Settings, settings
from agent_provisioning.core.exceptions import (
    ProvisioningException,
    UnsupportedAgentTypeError,
    CompanyNotFoundError,
    AgentAlreadyProvisionedError,
    ProvisioningConflictError,
    LeaseLostError,
    CompanyLookupError,
    AgentAllocationError,
    NumberAcquisitionError,
    AgentPersistenceError,
    CompanyUpdateError,
)
from agent_provisioning.db.base import CompanyDirectory, AgentDirectory, OrphanRegistry
from agent_provisioning.models.agent import AgentConfig, AgentRecord, SUPPORTED_AGENT_TYPES
from agent_provisioning.models.company import CompanyProfile
from agent_provisioning.models.provisioning import (
    EventStatus,
    ProvisioningEvent,
    ProvisioningRequest,
    ProvisioningResult,
    PurchasedNumber,
    RegionPolicy,
    ResourceType,
)
from agent_provisioning.services.base import AgentProvider, TelephonyProvider
from agent_provisioning.services.events import LoggingEventSink, ProvisioningEventSink
from agent_provisioning.services.lease_service import Lease, LeaseManager
from agent_provisioning.services.saga import Saga, SagaStep

# Step names
VALIDATE = "validate"
ACQUIRE_LEASE = "acquire_lease"
LOAD_COMPANY = "load_company"
ALLOCATE_AGENT = "allocate_agent"
ACQUIRE_NUMBER = "acquire_number"
PERSIST_AGENT = "persist_agent"
ATTACH_NUMBER = "attach_number"
RENEW_LEASE = "renew_lease"
RELEASE_LEASE = "release_lease"
REGISTER = "register"


class ProvisioningOptions(BaseModel):
    """Failure-handling and lease policy for provisioning runs"""
    lease_ttl_seconds: float = 300.0
    lease_wait_seconds: float = 0.0
    release_numbers_on_failure: bool = True
    release_agents_on_failure: bool = True
    allow_number_replacement: bool = False

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "ProvisioningOptions":
        return cls(
            lease_ttl_seconds=config.provisioning_lease_ttl_seconds,
            lease_wait_seconds=config.provisioning_lease_wait_seconds,
            release_numbers_on_failure=config.release_numbers_on_failure,
            release_agents_on_failure=config.release_agents_on_failure,
            allow_number_replacement=config.allow_number_replacement,
        )


def region_policy_from_settings(config: Settings = settings) -> RegionPolicy:
    """Build the number search policy from configuration"""
    return RegionPolicy(
        country_code=config.telephony_country_code,
        limit=config.telephony_search_limit,
        sms_enabled=config.telephony_sms_enabled,
        voice_enabled=config.telephony_voice_enabled,
        area_code=config.telephony_area_code,
        contains=config.telephony_contains,
        number_type=config.telephony_number_type,
    )


def lease_key(company_id: int) -> str:
    return f"company:{company_id}"


class ProvisioningOrchestrator:
    """
    Sequences the provisioning workflow against injected collaborators.

    Every outcome is reported as a ProvisioningResult; only cancellation
    propagates to the caller. Progress is reported through the event sink.
    """

    def __init__(
        self,
        company_directory: CompanyDirectory,
        agent_directory: AgentDirectory,
        agent_provider: AgentProvider,
        telephony_provider: TelephonyProvider,
        lease_manager: LeaseManager,
        event_sink: Optional[ProvisioningEventSink] = None,
        orphan_registry: Optional[OrphanRegistry] = None,
        region_policy: Optional[RegionPolicy] = None,
        options: Optional[ProvisioningOptions] = None
    ):
        self.company_directory = company_directory
        self.agent_directory = agent_directory
        self.agent_provider = agent_provider
        self.telephony_provider = telephony_provider
        self.lease_manager = lease_manager
        self.event_sink = event_sink or LoggingEventSink()
        self.orphan_registry = orphan_registry
        self.region_policy = region_policy or RegionPolicy()
        self.options = options or ProvisioningOptions()

    def _emit(self, run_id: str, company_id: int, step: str, status: EventStatus, /, **details: Any) -> None:
        self.event_sink.emit(ProvisioningEvent(
            run_id=run_id,
            company_id=company_id,
            step=step,
            status=status,
            details=details
        ))

    async def register(self, request: ProvisioningRequest) -> ProvisioningResult:
        """
        Provision an AI agent for a company

        Args:
            request: Company and agent type to provision

        Returns:
            ProvisioningResult with the agent id and number on success, or
            the first failure encountered
        """
        run_id = uuid4().hex[:12]
        self._emit(run_id, request.company_id, REGISTER, EventStatus.STARTED, agent_type=request.agent_type)

        try:
            result = await self._register(run_id, request)
        except ProvisioningException as exc:
            rejected = exc.error_kind in ("validation", "conflict") and not isinstance(exc, LeaseLostError)
            status = EventStatus.REJECTED if rejected else EventStatus.FAILED
            self._emit(run_id, request.company_id, REGISTER, status, error_code=exc.error_code)
            return ProvisioningResult.failed(exc)
        except Exception as exc:
            error = ProvisioningException(
                message="Unexpected provisioning error",
                error_code="INTERNAL_ERROR",
                details={"error": str(exc)},
                status_code=500
            )
            self._emit(run_id, request.company_id, REGISTER, EventStatus.FAILED, error_code=error.error_code, error=str(exc))
            return ProvisioningResult.failed(error)

        self._emit(
            run_id,
            request.company_id,
            REGISTER,
            EventStatus.SUCCEEDED,
            agent_id=result.agent_id,
            telephony_number=result.telephony_number
        )
        return result

    async def _register(self, run_id: str, request: ProvisioningRequest) -> ProvisioningResult:
        if request.agent_type not in SUPPORTED_AGENT_TYPES:
            self._emit(run_id, request.company_id, VALIDATE, EventStatus.REJECTED, agent_type=request.agent_type)
            raise UnsupportedAgentTypeError(request.agent_type)

        key = lease_key(request.company_id)
        lease = await self.lease_manager.acquire(
            key,
            ttl=self.options.lease_ttl_seconds,
            wait=self.options.lease_wait_seconds
        )
        if lease is None:
            self._emit(run_id, request.company_id, ACQUIRE_LEASE, EventStatus.REJECTED, key=key)
            raise ProvisioningConflictError(request.company_id)

        try:
            company = await self._load_company(run_id, request.company_id)

            saga = Saga(run_id, request.company_id, self.event_sink, self.orphan_registry)
            results = await saga.execute(self._build_steps(run_id, request, company, lease))

            record: AgentRecord = results[PERSIST_AGENT]
            number: PurchasedNumber = results[ACQUIRE_NUMBER]
            return ProvisioningResult.succeeded(record.agent_id, number.phone_number)
        finally:
            await self._release_lease(run_id, request.company_id, lease)

    async def _load_company(self, run_id: str, company_id: int) -> CompanyProfile:
        try:
            company = await self.company_directory.get_by_id(company_id)
        except Exception as exc:
            raise CompanyLookupError(company_id, str(exc))

        if company is None:
            self._emit(run_id, company_id, LOAD_COMPANY, EventStatus.REJECTED)
            raise CompanyNotFoundError(company_id)

        if company.telephony_number and not self.options.allow_number_replacement:
            self._emit(
                run_id,
                company_id,
                LOAD_COMPANY,
                EventStatus.REJECTED,
                telephony_number=company.telephony_number
            )
            raise AgentAlreadyProvisionedError(company_id, company.telephony_number)

        return company

    async def _release_lease(self, run_id: str, company_id: int, lease: Lease) -> None:
        try:
            released = await self.lease_manager.release(lease)
        except Exception as exc:
            self._emit(run_id, company_id, RELEASE_LEASE, EventStatus.FAILED, key=lease.key, error=str(exc))
            return

        if not released:
            self._emit(run_id, company_id, RELEASE_LEASE, EventStatus.FAILED, key=lease.key, error="lease expired")

    async def _renew_lease(self, run_id: str, company_id: int, lease: Lease, step: str) -> None:
        """Fail the step unless this run still holds the company lease"""
        try:
            renewed = await self.lease_manager.extend(lease, self.options.lease_ttl_seconds)
        except Exception as exc:
            self._emit(run_id, company_id, RENEW_LEASE, EventStatus.FAILED, key=lease.key, step=step, error=str(exc))
            raise LeaseLostError(company_id, step)

        if not renewed:
            self._emit(run_id, company_id, RENEW_LEASE, EventStatus.FAILED, key=lease.key, step=step, error="lease lost")
            raise LeaseLostError(company_id, step)

    def _build_steps(
        self,
        run_id: str,
        request: ProvisioningRequest,
        company: CompanyProfile,
        lease: Lease
    ) -> List[SagaStep]:
        policy = self.region_policy

        async def hold_lease(step: str) -> None:
            await self._renew_lease(run_id, company.company_id, lease, step)

        async def allocate_agent(results: Dict[str, Any]) -> AgentConfig:
            config = await self.agent_provider.allocate_agent(company.name, request.agent_type)
            if config is None:
                raise AgentAllocationError(details={"company_id": company.company_id})
            return config

        async def release_agent(config: AgentConfig) -> bool:
            if not config.provider_agent_id:
                raise ValueError("agent provider returned no agent id")
            return await self.agent_provider.release_agent(config.provider_agent_id)

        async def acquire_number(results: Dict[str, Any]) -> PurchasedNumber:
            await hold_lease(ACQUIRE_NUMBER)
            number = await self.telephony_provider.acquire_number(policy)
            if number is None:
                raise NumberAcquisitionError(details={
                    "company_id": company.company_id,
                    "country_code": policy.country_code
                })
            return number

        async def release_number(number: PurchasedNumber) -> bool:
            if not number.sid:
                raise ValueError("telephony provider returned no number sid")
            return await self.telephony_provider.release_number(number.sid)

        async def persist_agent(results: Dict[str, Any]) -> AgentRecord:
            await hold_lease(PERSIST_AGENT)
            config: AgentConfig = results[ALLOCATE_AGENT]
            return await self.agent_directory.insert(
                company.company_id,
                request.agent_type,
                config.provider_agent_id
            )

        async def delete_agent(record: AgentRecord) -> bool:
            return await self.agent_directory.delete(record.agent_id)

        async def attach_number(results: Dict[str, Any]) -> CompanyProfile:
            await hold_lease(ATTACH_NUMBER)
            number: PurchasedNumber = results[ACQUIRE_NUMBER]
            updated = company.model_copy(update={"telephony_number": number.phone_number})
            await self.company_directory.update(updated)
            return updated

        return [
            SagaStep(
                name=ALLOCATE_AGENT,
                action=allocate_agent,
                error_factory=lambda exc: AgentAllocationError(details={"company_id": company.company_id}),
                compensation=release_agent,
                compensation_enabled=self.options.release_agents_on_failure,
                describe_orphan=lambda config: {
                    "resource_type": ResourceType.AGENT_CONFIG,
                    "resource_id": config.provider_agent_id,
                },
            ),
            SagaStep(
                name=ACQUIRE_NUMBER,
                action=acquire_number,
                error_factory=lambda exc: NumberAcquisitionError(details={"company_id": company.company_id}),
                compensation=release_number,
                compensation_enabled=self.options.release_numbers_on_failure,
                describe_orphan=lambda number: {
                    "resource_type": ResourceType.TELEPHONY_NUMBER,
                    "resource_id": number.sid,
                    "phone_number": number.phone_number,
                },
            ),
            SagaStep(
                name=PERSIST_AGENT,
                action=persist_agent,
                error_factory=lambda exc: AgentPersistenceError(details={"company_id": company.company_id}),
                compensation=delete_agent,
            ),
            SagaStep(
                name=ATTACH_NUMBER,
                action=attach_number,
                error_factory=lambda exc: CompanyUpdateError(details={"company_id": company.company_id}),
            ),
        ]


# Singleton instance
_orchestrator: Optional[ProvisioningOrchestrator] = None


def get_provisioning_orchestrator() -> ProvisioningOrchestrator:
    """Get or create the orchestrator singleton wired to the configured backends"""
    global _orchestrator
    if _orchestrator is None:
        from agent_provisioning.db.repository import get_repository
        from agent_provisioning.services.lease_service import get_lease_manager
        from agent_provisioning.services.telephony.twilio_service import TwilioService
        from agent_provisioning.services.voice.ultravox_service import UltravoxService

        repository = get_repository()
        _orchestrator = ProvisioningOrchestrator(
            company_directory=repository.companies,
            agent_directory=repository.agents,
            agent_provider=UltravoxService(),
            telephony_provider=TwilioService(),
            lease_manager=get_lease_manager(),
            event_sink=LoggingEventSink(),
            orphan_registry=repository.orphans,
            region_policy=region_policy_from_settings(),
            options=ProvisioningOptions.from_settings(),
        )
    return _orchestrator


def reset_provisioning_orchestrator() -> None:
    """Drop the orchestrator singleton (its backends are closed separately)"""
    global _orchestrator
    _orchestrator = None
