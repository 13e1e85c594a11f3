"""
Agent Provisioning - Main Application Entry Point

Provisions Ultravox AI agents with Twilio numbers for companies.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agent_provisioning import __version__
from agent_provisioning.core.config import settings
from agent_provisioning.core.logging import setup_logging, get_logger
from agent_provisioning.core.exceptions import ProvisioningException
from agent_provisioning.api.routes import agents, health

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events
    """
    # Startup
    logger.info("=" * 60)
    logger.info("Starting Agent Provisioning service")
    logger.info(f"Version: {__version__}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Lease backend: {settings.lease_backend}")
    logger.info(f"Number search: {settings.telephony_number_type} numbers in {settings.telephony_country_code}")
    logger.info("=" * 60)

    from agent_provisioning.db.repository import initialize_database, close_database
    from agent_provisioning.services.lease_service import close_lease_manager
    from agent_provisioning.services.provisioning_orchestrator import (
        get_provisioning_orchestrator,
        reset_provisioning_orchestrator,
    )
    from agent_provisioning.services.reconciliation_service import reset_reconciliation_service

    if await initialize_database():
        logger.info("Database initialized successfully")
    else:
        logger.warning("Database not available; provisioning requests will fail until it is")

    get_provisioning_orchestrator()
    logger.info("All services initialized successfully")

    yield

    # Shutdown
    logger.info("Shutting down Agent Provisioning service")

    reset_reconciliation_service()
    reset_provisioning_orchestrator()
    await close_lease_manager()
    await close_database()

    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Agent Provisioning API",
    description="""
    ## AI Agent Provisioning

    Provisions a voice AI agent for a company in one call:

    - **Agent configuration** created with Ultravox from the agent-type template
    - **Telephony number** purchased from Twilio and wired to the webhook URL
    - **Agent record** persisted and the number attached to the company

    Failed runs roll back what they can. Numbers or agents that could not be
    released are listed under `/api/v1/agents/orphans` for reconciliation.
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Custom Exception Handlers
@app.exception_handler(ProvisioningException)
async def provisioning_exception_handler(request: Request, exc: ProvisioningException):
    """Handle provisioning exceptions raised outside the orchestrator"""
    logger.warning(f"ProvisioningException: {exc.error_code} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "details": {"exception": str(exc)} if settings.debug else {}
        }
    )


# Include routers
app.include_router(health.router)
app.include_router(agents.router, prefix="/api/v1")


@app.get("/api")
async def api_info():
    """API information endpoint"""
    return {
        "service": "Agent Provisioning API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "register": "/api/v1/agents/register",
            "orphans": "/api/v1/agents/orphans"
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agent_provisioning.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug
    )
