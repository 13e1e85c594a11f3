"""
Data models for the provisioning workflow
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field

from agent_provisioning.core.exceptions import ProvisioningException


class ProvisioningRequest(BaseModel):
    """Request to provision an AI agent for a company"""
    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "company_id": 7,
                "agent_type": "LoadBoard"
            }
        }
    }

    company_id: int = Field(..., description="Company to provision the agent for")
    agent_type: str = Field(..., description="Agent type (currently only LoadBoard)")


class ProvisioningResult(BaseModel):
    """Outcome of a provisioning run"""
    success: bool
    agent_id: Optional[int] = None
    telephony_number: Optional[str] = None
    error_kind: Optional[str] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    status_code: int = 200
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def succeeded(cls, agent_id: int, telephony_number: str) -> "ProvisioningResult":
        return cls(
            success=True,
            agent_id=agent_id,
            telephony_number=telephony_number,
            message="AI agent provisioned"
        )

    @classmethod
    def failed(cls, exc: ProvisioningException) -> "ProvisioningResult":
        return cls(
            success=False,
            error_kind=exc.error_kind,
            error_code=exc.error_code,
            message=exc.message,
            status_code=exc.status_code,
            details=exc.details
        )


class RegionPolicy(BaseModel):
    """Search policy for available telephony numbers"""
    country_code: str = "US"
    limit: int = Field(default=1, ge=1)
    sms_enabled: Optional[bool] = True
    voice_enabled: Optional[bool] = None
    area_code: Optional[int] = None
    contains: Optional[str] = None
    number_type: str = "local"

    def search_filters(self) -> Dict[str, Any]:
        """Keyword filters for the provider search call"""
        filters: Dict[str, Any] = {"limit": self.limit}
        if self.sms_enabled is not None:
            filters["sms_enabled"] = self.sms_enabled
        if self.voice_enabled is not None:
            filters["voice_enabled"] = self.voice_enabled
        if self.area_code is not None:
            filters["area_code"] = self.area_code
        if self.contains:
            filters["contains"] = self.contains
        return filters


class PurchasedNumber(BaseModel):
    """Number bought from the telephony provider"""
    phone_number: str = Field(..., description="Purchased number (E.164)")
    sid: Optional[str] = Field(None, description="Provider handle used to release the number")


class EventStatus(str, Enum):
    """Status carried by a provisioning event"""
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    COMPENSATING = "compensating"
    COMPENSATED = "compensated"
    COMPENSATION_FAILED = "compensation_failed"
    ORPHANED = "orphaned"
    REJECTED = "rejected"


class ProvisioningEvent(BaseModel):
    """Structured observability event emitted during a run"""
    run_id: str
    company_id: int
    step: str
    status: EventStatus
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    details: Dict[str, Any] = Field(default_factory=dict)


class ResourceType(str, Enum):
    """Kinds of remote resources a run can leave behind"""
    AGENT_CONFIG = "agent_config"
    TELEPHONY_NUMBER = "telephony_number"


class OrphanStatus(str, Enum):
    """Reconciliation status of an orphaned resource"""
    OPEN = "open"
    RELEASED = "released"
    RELEASE_FAILED = "release_failed"


class OrphanedResource(BaseModel):
    """Remote, billed resource with no local counterpart"""
    orphan_id: Optional[int] = None
    run_id: str
    company_id: int
    resource_type: ResourceType
    resource_id: Optional[str] = Field(None, description="Provider handle (agent id or number SID)")
    phone_number: Optional[str] = None
    reason: str
    status: OrphanStatus = OrphanStatus.OPEN
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
