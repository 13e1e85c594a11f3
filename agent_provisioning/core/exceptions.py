"""
Custom Exceptions for the Agent Provisioning service
Provides structured error handling across the application
"""

from typing import Optional, Dict, Any


class ProvisioningException(Exception):
    """Base exception for all provisioning errors"""

    error_kind = "internal"

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response"""
        return {
            "error": self.error_code,
            "kind": self.error_kind,
            "message": self.message,
            "details": self.details
        }


# Validation Exceptions (client faults, raised before any side effect)
class ValidationError(ProvisioningException):
    """Raised when a provisioning request is rejected up front"""

    error_kind = "validation"

    def __init__(
        self,
        message: str,
        error_code: str = "VALIDATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=status_code
        )


class UnsupportedAgentTypeError(ValidationError):
    """Raised when the requested agent type is not supported"""

    def __init__(self, agent_type: str):
        super().__init__(
            message="AgentType not supported",
            error_code="UNSUPPORTED_AGENT_TYPE",
            details={"agent_type": agent_type},
            status_code=400
        )


class CompanyNotFoundError(ValidationError):
    """Raised when the company does not exist"""

    def __init__(self, company_id: int):
        super().__init__(
            message="Company not found",
            error_code="COMPANY_NOT_FOUND",
            details={"company_id": company_id},
            status_code=404
        )


class AgentAlreadyProvisionedError(ValidationError):
    """Raised when the company already has a telephony number attached"""

    def __init__(self, company_id: int, telephony_number: str):
        super().__init__(
            message="Company already has a provisioned telephony number",
            error_code="AGENT_ALREADY_PROVISIONED",
            details={
                "company_id": company_id,
                "telephony_number": telephony_number
            },
            status_code=409
        )


class CompanyLookupError(ProvisioningException):
    """Raised when the company directory cannot be read (no side effects yet)"""

    def __init__(self, company_id: int, error: str):
        super().__init__(
            message="Failed to load company",
            error_code="COMPANY_LOOKUP_FAILED",
            details={"company_id": company_id, "error": error},
            status_code=500
        )


# Concurrency
class ProvisioningConflictError(ProvisioningException):
    """Raised when another provisioning run holds the company lease"""

    error_kind = "conflict"

    def __init__(
        self,
        company_id: int,
        message: str = "Provisioning already in progress for this company",
        error_code: str = "PROVISIONING_IN_PROGRESS",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details={"company_id": company_id, **(details or {})},
            status_code=409
        )


class LeaseLostError(ProvisioningConflictError):
    """Raised when a run's company lease expired or was taken over mid-run"""

    def __init__(self, company_id: int, step: str):
        super().__init__(
            company_id,
            message="Provisioning lease lost before completion",
            error_code="LEASE_LOST",
            details={"step": step}
        )


# Provider Exceptions
class ProviderError(ProvisioningException):
    """Base exception for external provider failures"""

    error_kind = "provider"

    def __init__(
        self,
        message: str,
        error_code: str = "PROVIDER_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=502
        )


class AgentAllocationError(ProviderError):
    """Raised when the agent provider returns no usable configuration"""

    def __init__(self, message: str = "Failed to create AI agent", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="AGENT_ALLOCATION_FAILED",
            details=details
        )


class NumberAcquisitionError(ProviderError):
    """Raised when no telephony number could be purchased"""

    def __init__(self, message: str = "Could not provision telephony number", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="NUMBER_ACQUISITION_FAILED",
            details=details
        )


# Persistence Exceptions
class PersistenceError(ProvisioningException):
    """Base exception for directory write failures after external side effects"""

    error_kind = "persistence"

    def __init__(
        self,
        message: str,
        error_code: str = "PERSISTENCE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=500
        )


class AgentPersistenceError(PersistenceError):
    """Raised when the agent record cannot be inserted"""

    def __init__(self, message: str = "Failed to persist agent record", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="AGENT_PERSISTENCE_FAILED",
            details=details
        )


class CompanyUpdateError(PersistenceError):
    """Raised when the company profile cannot be updated"""

    def __init__(self, message: str = "Failed to attach number to company", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            error_code="COMPANY_UPDATE_FAILED",
            details=details
        )


# Reconciliation
class OrphanNotFoundError(ProvisioningException):
    """Raised when an orphaned resource id is unknown"""

    error_kind = "validation"

    def __init__(self, orphan_id: int):
        super().__init__(
            message=f"Orphaned resource not found: {orphan_id}",
            error_code="ORPHAN_NOT_FOUND",
            details={"orphan_id": orphan_id},
            status_code=404
        )
