"""
Agent Provisioning API Routes
Provision AI agents for companies and reconcile orphaned resources
"""

from typing import List
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from agent_provisioning.core.logging import get_logger
from agent_provisioning.models.provisioning import (
    OrphanedResource,
    OrphanStatus,
    ProvisioningRequest,
    ProvisioningResult,
)
from agent_provisioning.services.provisioning_orchestrator import (
    ProvisioningOrchestrator,
    get_provisioning_orchestrator,
)
from agent_provisioning.services.reconciliation_service import (
    ReconciliationService,
    get_reconciliation_service,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/agents", tags=["agents"])


def get_orchestrator() -> ProvisioningOrchestrator:
    """Dependency to get the provisioning orchestrator"""
    return get_provisioning_orchestrator()


def get_reconciliation() -> ReconciliationService:
    """Dependency to get the reconciliation service"""
    return get_reconciliation_service()


@router.post("/register", response_model=ProvisioningResult)
async def register_agent(
    request: ProvisioningRequest,
    orchestrator: ProvisioningOrchestrator = Depends(get_orchestrator)
):
    """
    Provision an AI agent for a company

    Allocates the agent configuration, buys a telephony number and attaches
    it to the company. The response status mirrors the result: 200 on
    success, 400/404/409 for rejected requests, 502 for provider failures
    and 500 for persistence failures.
    """
    logger.info(f"Provisioning {request.agent_type} agent for company {request.company_id}")

    result = await orchestrator.register(request)

    if not result.success:
        logger.warning(
            f"Provisioning failed for company {request.company_id}: "
            f"{result.error_code} - {result.message}"
        )

    return JSONResponse(
        status_code=result.status_code,
        content=result.model_dump(mode="json")
    )


@router.get("/orphans", response_model=List[OrphanedResource])
async def list_orphans(
    limit: int = Query(default=100, ge=1, le=1000),
    service: ReconciliationService = Depends(get_reconciliation)
):
    """
    List orphaned remote resources awaiting reconciliation
    """
    return await service.list_open(limit=limit)


@router.post("/orphans/{orphan_id}/release", response_model=OrphanedResource)
async def release_orphan(
    orphan_id: int,
    service: ReconciliationService = Depends(get_reconciliation)
):
    """
    Release an orphaned agent or telephony number at its provider

    Returns 502 with the orphan body if the provider release failed.
    """
    orphan = await service.release(orphan_id)
    status_code = 200 if orphan.status == OrphanStatus.RELEASED else 502

    return JSONResponse(
        status_code=status_code,
        content=orphan.model_dump(mode="json")
    )
