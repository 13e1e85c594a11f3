"""
Orphan Reconciliation Service
Lets an operator release remote resources left behind by failed runs
"""

from typing import List, Optional

from agent_provisioning.core.exceptions import OrphanNotFoundError
from agent_provisioning.core.logging import get_logger
from agent_provisioning.db.base import OrphanRegistry
from agent_provisioning.models.provisioning import OrphanedResource, OrphanStatus, ResourceType
from agent_provisioning.services.base import AgentProvider, TelephonyProvider

logger = get_logger(__name__)


class ReconciliationService:
    """Releases orphaned agents and numbers"""

    def __init__(
        self,
        orphan_registry: OrphanRegistry,
        agent_provider: AgentProvider,
        telephony_provider: TelephonyProvider
    ):
        self.orphan_registry = orphan_registry
        self.agent_provider = agent_provider
        self.telephony_provider = telephony_provider

    async def list_open(self, limit: int = 100) -> List[OrphanedResource]:
        """List orphans that have not been released yet"""
        return await self.orphan_registry.list_open(limit=limit)

    async def release(self, orphan_id: int) -> OrphanedResource:
        """
        Release an orphaned resource at its provider

        Args:
            orphan_id: Orphan to release

        Returns:
            The orphan with its updated status (released or release_failed)

        Raises:
            OrphanNotFoundError: If the orphan does not exist
        """
        orphan = await self.orphan_registry.get(orphan_id)
        if orphan is None:
            raise OrphanNotFoundError(orphan_id)

        if orphan.status == OrphanStatus.RELEASED:
            logger.info(f"Orphan {orphan_id} already released")
            return orphan

        released = await self._release_resource(orphan)
        status = OrphanStatus.RELEASED if released else OrphanStatus.RELEASE_FAILED

        updated = await self.orphan_registry.mark(orphan_id, status)
        if released:
            logger.info(f"Released orphaned {orphan.resource_type.value}: {orphan.resource_id}")
        else:
            logger.error(f"Failed to release orphaned {orphan.resource_type.value}: {orphan.resource_id}")
        return updated or orphan.model_copy(update={"status": status})

    async def _release_resource(self, orphan: OrphanedResource) -> bool:
        if not orphan.resource_id:
            logger.error(f"Orphan {orphan.orphan_id} has no provider handle to release")
            return False

        try:
            if orphan.resource_type == ResourceType.TELEPHONY_NUMBER:
                return await self.telephony_provider.release_number(orphan.resource_id)
            return await self.agent_provider.release_agent(orphan.resource_id)
        except Exception as e:
            logger.error(f"Release of orphan {orphan.orphan_id} raised: {str(e)}")
            return False


# Singleton instance
_reconciliation_service: Optional[ReconciliationService] = None


def get_reconciliation_service() -> ReconciliationService:
    """Get or create the reconciliation service singleton"""
    global _reconciliation_service
    if _reconciliation_service is None:
        from agent_provisioning.db.repository import get_repository
        from agent_provisioning.services.provisioning_orchestrator import get_provisioning_orchestrator

        orchestrator = get_provisioning_orchestrator()
        _reconciliation_service = ReconciliationService(
            orphan_registry=get_repository().orphans,
            agent_provider=orchestrator.agent_provider,
            telephony_provider=orchestrator.telephony_provider
        )
    return _reconciliation_service


def reset_reconciliation_service() -> None:
    """Drop the reconciliation service singleton"""
    global _reconciliation_service
    _reconciliation_service = None
