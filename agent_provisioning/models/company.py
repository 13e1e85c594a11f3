"""
Company profile model
"""

from typing import Optional
from pydantic import BaseModel, Field


class CompanyProfile(BaseModel):
    """Company as seen by the provisioning workflow"""
    company_id: int = Field(..., description="Company identifier")
    name: str = Field(..., description="Display name used in agent prompts")
    telephony_number: Optional[str] = Field(
        default=None,
        description="Attached telephony number (E.164)"
    )

    model_config = {"from_attributes": True}
