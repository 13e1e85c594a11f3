"""
Health check and status endpoints
"""

from datetime import datetime, timezone
from fastapi import APIRouter

from agent_provisioning.core.config import settings
from agent_provisioning.core.logging import get_logger
from agent_provisioning.db.repository import get_repository

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - verifies the service is ready to provision agents
    """
    checks = {
        "ultravox": bool(settings.ultravox_api_key),
        "twilio": bool(settings.twilio_account_sid and settings.twilio_auth_token),
        "database": get_repository().adapter.is_connected()
    }

    all_ready = all(checks.values())

    return {
        "status": "ready" if all_ready else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
        "lease_backend": settings.lease_backend
    }
