"""
Saga Runner

Runs an ordered list of steps. Each step has a forward action and an
optional compensating action. When a step fails, the completed steps are
compensated in reverse order. A remote resource that cannot be compensated
(no compensation, compensation disabled, or compensation failed) is
recorded as an orphan. A cancelled run lets the step in flight finish, then
reports every remote resource it holds as orphaned without compensating.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from agent_provisioning.core.exceptions import ProvisioningException
from agent_provisioning.core.logging import get_run_logger
from agent_provisioning.db.base import OrphanRegistry
from agent_provisioning.models.provisioning import (
    EventStatus,
    OrphanedResource,
    ProvisioningEvent,
)
from agent_provisioning.services.events import ProvisioningEventSink


@dataclass
class SagaStep:
    """
    One step of a saga.

    Attributes:
        name: Step name used in events
        action: Forward action; receives the results of earlier steps by name
        error_factory: Wraps an unexpected exception into the step's typed error
        compensation: Undoes the action given its result; returns True on success
        compensation_enabled: When False the compensation is skipped
        describe_orphan: Describes the remote resource the result represents
            (resource_type, resource_id, phone_number); None for local resources
    """
    name: str
    action: Callable[[Dict[str, Any]], Awaitable[Any]]
    error_factory: Callable[[Exception], ProvisioningException]
    compensation: Optional[Callable[[Any], Awaitable[bool]]] = None
    compensation_enabled: bool = True
    describe_orphan: Optional[Callable[[Any], Dict[str, Any]]] = None


class Saga:
    """Executes saga steps for a single provisioning run"""

    def __init__(
        self,
        run_id: str,
        company_id: int,
        event_sink: ProvisioningEventSink,
        orphan_registry: Optional[OrphanRegistry] = None
    ):
        self.run_id = run_id
        self.company_id = company_id
        self.event_sink = event_sink
        self.orphan_registry = orphan_registry
        self.logger = get_run_logger(__name__, run_id, company_id)
        self.results: Dict[str, Any] = {}
        self.orphans: List[OrphanedResource] = []
        self._completed: List[Tuple[SagaStep, Any]] = []

    def _emit(self, step: str, status: EventStatus, **details: Any) -> None:
        self.event_sink.emit(ProvisioningEvent(
            run_id=self.run_id,
            company_id=self.company_id,
            step=step,
            status=status,
            details=details
        ))

    async def execute(self, steps: Sequence[SagaStep]) -> Dict[str, Any]:
        """
        Run the steps in order.

        Returns:
            Step results keyed by step name

        Raises:
            ProvisioningException: The failing step's typed error, after
                compensation has run
            asyncio.CancelledError: After the in-flight step has finished and
                every uncompensated remote resource, including anything that
                step acquired, has been reported as orphaned
        """
        try:
            for step in steps:
                await self._run_step(step)
        except asyncio.CancelledError:
            await self._abandon("run cancelled")
            raise
        return self.results

    async def _run_step(self, step: SagaStep) -> None:
        self._emit(step.name, EventStatus.STARTED)

        # Cancellation must not interrupt a provider call mid-flight
        action = asyncio.ensure_future(step.action(self.results))
        try:
            result = await asyncio.shield(action)
        except asyncio.CancelledError:
            await self._settle(step, action)
            raise
        except ProvisioningException as exc:
            error = exc
        except Exception as exc:
            error = step.error_factory(exc)
            error.details.setdefault("error", str(exc))
        else:
            self.results[step.name] = result
            self._completed.append((step, result))
            self._emit(step.name, EventStatus.SUCCEEDED)
            return

        self._emit(step.name, EventStatus.FAILED, error_code=error.error_code, message=error.message)
        await self._compensate(f"{step.name} failed: {error.error_code}")

        if self.orphans:
            error.details["orphaned_resources"] = [
                o.model_dump(mode="json", exclude_none=True) for o in self.orphans
            ]
        raise error

    async def _compensate(self, reason: str) -> None:
        """Compensate completed steps in reverse order"""
        while self._completed:
            step, result = self._completed[-1]

            if step.compensation is None:
                self._completed.pop()
                if step.describe_orphan is not None:
                    await self._record_orphan(step, result, f"{reason}; no compensation")
                continue

            if not step.compensation_enabled:
                self._completed.pop()
                if step.describe_orphan is not None:
                    await self._record_orphan(step, result, f"{reason}; compensation disabled")
                continue

            self._emit(step.name, EventStatus.COMPENSATING)
            try:
                compensated = await step.compensation(result)
                failure = None if compensated else "compensation returned failure"
            except Exception as exc:
                compensated = False
                failure = str(exc)

            self._completed.pop()
            if compensated:
                self._emit(step.name, EventStatus.COMPENSATED)
                continue

            self._emit(step.name, EventStatus.COMPENSATION_FAILED, error=failure)
            if step.describe_orphan is not None:
                await self._record_orphan(step, result, f"{reason}; {failure}")

    async def _settle(self, step: SagaStep, action: "asyncio.Future[Any]") -> None:
        """
        Wait for an interrupted action to finish so that anything it acquired
        is reported along with the other remaining resources.
        """
        try:
            await asyncio.wait({action})
        except asyncio.CancelledError:
            # Cancelled again while waiting; report the result when it lands
            action.add_done_callback(lambda done: self._report_late_result(step, done))
            raise

        if self._succeeded(action):
            self.results[step.name] = action.result()
            self._completed.append((step, action.result()))

    @staticmethod
    def _succeeded(action: "asyncio.Future[Any]") -> bool:
        return not action.cancelled() and action.exception() is None

    def _report_late_result(self, step: SagaStep, action: "asyncio.Future[Any]") -> None:
        if self._succeeded(action) and step.describe_orphan is not None:
            self._report_orphan(step, action.result(), "run cancelled while in flight")

    async def _abandon(self, reason: str) -> None:
        """Report every remaining remote resource without compensating it"""
        pending = [item for item in reversed(self._completed) if item[0].describe_orphan]
        self._completed.clear()

        orphans = [self._report_orphan(step, result, reason) for step, result in pending]
        for orphan in orphans:
            await self._persist_orphan(orphan)

    async def _record_orphan(self, step: SagaStep, result: Any, reason: str) -> None:
        orphan = self._report_orphan(step, result, reason)
        await self._persist_orphan(orphan)

    def _report_orphan(self, step: SagaStep, result: Any, reason: str) -> OrphanedResource:
        orphan = OrphanedResource(
            run_id=self.run_id,
            company_id=self.company_id,
            reason=reason,
            **step.describe_orphan(result)
        )
        self.orphans.append(orphan)
        self._emit(
            step.name,
            EventStatus.ORPHANED,
            resource_type=orphan.resource_type.value,
            resource_id=orphan.resource_id,
            phone_number=orphan.phone_number,
            reason=reason
        )
        # Always logged, whatever sink is configured
        self.logger.critical(
            f"Orphaned {orphan.resource_type.value}: resource_id={orphan.resource_id} "
            f"phone_number={orphan.phone_number} reason={reason}"
        )
        return orphan

    async def _persist_orphan(self, orphan: OrphanedResource) -> None:
        if self.orphan_registry is None:
            return

        try:
            stored = await self.orphan_registry.record(orphan)
        except Exception as exc:
            self.logger.critical(
                f"Failed to record orphaned {orphan.resource_type.value} {orphan.resource_id}: {exc}"
            )
            return

        index = self.orphans.index(orphan)
        self.orphans[index] = stored
