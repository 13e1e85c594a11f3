"""Core module for configuration, settings, and shared utilities"""

from .config import settings, get_settings, Settings
from .logging import setup_logging, get_logger
from .exceptions import (
    ProvisioningException,
    ValidationError,
    UnsupportedAgentTypeError,
    CompanyNotFoundError,
    AgentAlreadyProvisionedError,
    CompanyLookupError,
    ProvisioningConflictError,
    LeaseLostError,
    ProviderError,
    AgentAllocationError,
    NumberAcquisitionError,
    PersistenceError,
    AgentPersistenceError,
    CompanyUpdateError,
    OrphanNotFoundError
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    "Settings",
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "ProvisioningException",
    "ValidationError",
    "UnsupportedAgentTypeError",
    "CompanyNotFoundError",
    "AgentAlreadyProvisionedError",
    "CompanyLookupError",
    "ProvisioningConflictError",
    "LeaseLostError",
    "ProviderError",
    "AgentAllocationError",
    "NumberAcquisitionError",
    "PersistenceError",
    "AgentPersistenceError",
    "CompanyUpdateError",
    "OrphanNotFoundError"
]
