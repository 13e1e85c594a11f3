"""
Provisioning Events
Sink for the structured events emitted by the orchestrator and the saga
"""

import logging
from abc import ABC, abstractmethod

from agent_provisioning.core.logging import get_logger
from agent_provisioning.models.provisioning import EventStatus, ProvisioningEvent

logger = get_logger(__name__)

EVENT_LOG_LEVELS = {
    EventStatus.ORPHANED: logging.CRITICAL,
    EventStatus.COMPENSATION_FAILED: logging.ERROR,
    EventStatus.FAILED: logging.ERROR,
    EventStatus.REJECTED: logging.WARNING,
    EventStatus.COMPENSATING: logging.WARNING,
}


class ProvisioningEventSink(ABC):
    """Receives provisioning events"""

    @abstractmethod
    def emit(self, event: ProvisioningEvent) -> None:
        """
        Handle one event.

        Must not block: it is also called while a cancelled run unwinds.
        """
        pass


class LoggingEventSink(ProvisioningEventSink):
    """Writes events through the application logger"""

    def __init__(self, event_logger: logging.Logger = logger):
        self.logger = event_logger

    def emit(self, event: ProvisioningEvent) -> None:
        level = EVENT_LOG_LEVELS.get(event.status, logging.INFO)
        message = (
            f"[run {event.run_id}] company={event.company_id} "
            f"step={event.step} status={event.status.value}"
        )
        if event.details:
            message = f"{message} details={event.details}"
        self.logger.log(level, message)

