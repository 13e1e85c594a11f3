"""Services for the Agent Provisioning service"""

from .base import AgentProvider, TelephonyProvider
from .voice.ultravox_service import UltravoxService
from .telephony.twilio_service import TwilioService
from .events import ProvisioningEventSink, LoggingEventSink
from .lease_service import (
    Lease,
    LeaseManager,
    LocalLeaseManager,
    RedisLeaseManager,
    get_lease_manager,
    close_lease_manager
)
from .saga import Saga, SagaStep
from .provisioning_orchestrator import (
    ProvisioningOrchestrator,
    ProvisioningOptions,
    get_provisioning_orchestrator
)
from .reconciliation_service import ReconciliationService, get_reconciliation_service

__all__ = [
    "AgentProvider",
    "TelephonyProvider",
    "UltravoxService",
    "TwilioService",
    "ProvisioningEventSink",
    "LoggingEventSink",
    "Lease",
    "LeaseManager",
    "LocalLeaseManager",
    "RedisLeaseManager",
    "get_lease_manager",
    "close_lease_manager",
    "Saga",
    "SagaStep",
    "ProvisioningOrchestrator",
    "ProvisioningOptions",
    "get_provisioning_orchestrator",
    "ReconciliationService",
    "get_reconciliation_service"
]
