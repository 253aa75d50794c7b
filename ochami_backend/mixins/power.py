"""PCS power status and power transition operations"""

import asyncio
import logging
from typing import Dict, List, Optional

from ochami_backend.descriptors import BatchResult, OperationDescriptor, ResourceKind, Selector
from ochami_backend.errors import RequestTimeoutError
from ochami_backend.models import (
    Location,
    PowerStatus,
    PowerStatusAll,
    PowerStatusFilter,
    Transition,
    TransitionCreate,
    TransitionStarted,
    TransitionTask,
    validate_input,
)

logger = logging.getLogger(__name__)

POWER_ON = "on"
SOFT_OFF = "soft-off"
FORCE_OFF = "force-off"
SOFT_RESTART = "soft-restart"
HARD_RESTART = "hard-restart"


class PowerMixin:
    """Mixin providing power control operations for the OCHAMI backend"""

    async def get_power_status(
        self,
        selector: Selector,
        power_state_filter: Optional[str] = None,
        management_state_filter: Optional[str] = None,
    ) -> BatchResult:
        """
        Query power state for a node set, one request per batch of hosts.

        With a state filter, PCS leaves out hosts that do not match; those
        hosts get a value of None instead of an error.

        Raises:
            InvalidArgumentError: A filter value of the wrong type
        """
        filtered = power_state_filter is not None or management_state_filter is not None
        template = validate_input(
            PowerStatusFilter,
            power_state_filter=power_state_filter,
            management_state_filter=management_state_filter,
        )

        async def query(batch: List[str]) -> Dict[str, Optional[PowerStatus]]:
            descriptor = OperationDescriptor(
                ResourceKind.POWER_STATUS,
                query=template.model_copy(update={"xname": batch}),
                hosts=tuple(batch),
            )
            response = await self._dispatch(descriptor, PowerStatusAll)
            statuses: Dict[str, Optional[PowerStatus]] = {status.xname: status for status in response.status}
            if filtered:
                for xname in batch:
                    statuses.setdefault(xname, None)
            return statuses

        return await self._fan_out_batches(selector, query, "get_power_status")

    async def get_transition(self, transition_id: str) -> Transition:
        descriptor = OperationDescriptor(ResourceKind.POWER_TRANSITION, segments=(transition_id,))
        return await self._dispatch(descriptor, Transition)

    async def power_on_sync(self, selector: Selector) -> BatchResult:
        return await self._run_transition(selector, POWER_ON)

    async def power_off_sync(self, selector: Selector, force: bool = False) -> BatchResult:
        return await self._run_transition(selector, FORCE_OFF if force else SOFT_OFF)

    async def power_reset_sync(self, selector: Selector, force: bool = False) -> BatchResult:
        return await self._run_transition(selector, HARD_RESTART if force else SOFT_RESTART)

    async def _run_transition(self, selector: Selector, operation: str) -> BatchResult:
        """
        Start one PCS transition per batch and wait for each to finish.

        Values are the TransitionTask of each host. A task that PCS reports
        as failed is still a value; check TransitionTask.succeeded.
        """
        async def transition(batch: List[str]) -> Dict[str, TransitionTask]:
            descriptor = OperationDescriptor(
                ResourceKind.POWER_TRANSITION,
                method="POST",
                payload=TransitionCreate(
                    operation=operation,
                    location=[Location(xname=xname) for xname in batch],
                ),
                hosts=tuple(batch),
            )
            started = await self._dispatch(descriptor, TransitionStarted)
            logger.info(f"Power transition {started.transition_id} ({operation}) started for {len(batch)} hosts")

            finished = await self._wait_for_transition(started.transition_id)
            return {task.xname: task for task in finished.tasks}

        return await self._fan_out_batches(selector, transition, f"power {operation}")

    async def _wait_for_transition(self, transition_id: str) -> Transition:
        """
        Poll a transition until PCS reports it completed or aborted.

        Raises:
            RequestTimeoutError: transition_timeout_seconds elapsed first
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.transition_timeout_seconds

        while True:
            transition = await self.get_transition(transition_id)
            if transition.is_terminal:
                logger.info(
                    f"Power transition {transition_id} {transition.transition_status}: {transition.task_counts}"
                )
                return transition

            if loop.time() >= deadline:
                raise RequestTimeoutError(
                    f"Power transition {transition_id} still {transition.transition_status} "
                    f"after {self.settings.transition_timeout_seconds}s"
                )

            logger.debug(f"Power transition {transition_id} is {transition.transition_status}")
            await asyncio.sleep(self.settings.transition_poll_interval_seconds)
