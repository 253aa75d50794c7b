"""BSS boot parameter operations"""

import logging
from typing import Dict, List, Optional

from ochami_backend.descriptors import BatchResult, OperationDescriptor, ResourceKind, Selector
from ochami_backend.errors import InvalidArgumentError
from ochami_backend.models import BootParameters, BootParametersFilter, validate_input

logger = logging.getLogger(__name__)


class BootParametersMixin:
    """Mixin providing boot configuration operations for the OCHAMI backend"""

    async def get_bootparameters(self, selector: Selector) -> BatchResult:
        """Fetch the boot parameter record that applies to each host of a node set."""

        async def query(batch: List[str]) -> Dict[str, BootParameters]:
            descriptor = OperationDescriptor(
                ResourceKind.BOOT_PARAMETERS,
                query=BootParametersFilter(name=batch),
                hosts=tuple(batch),
            )
            records = await self._dispatch(descriptor, List[BootParameters])
            wanted = set(batch)
            by_host: Dict[str, BootParameters] = {}
            for record in records:
                for host in record.hosts or []:
                    if host in wanted:
                        by_host.setdefault(host, record)
            return by_host

        return await self._fan_out_batches(selector, query, "get_bootparameters")

    async def get_all_bootparameters(self) -> List[BootParameters]:
        descriptor = OperationDescriptor(ResourceKind.BOOT_PARAMETERS)
        return await self._dispatch(descriptor, List[BootParameters])

    async def add_bootparameters(self, boot_parameters: BootParameters) -> None:
        descriptor = OperationDescriptor(ResourceKind.BOOT_PARAMETERS, method="POST", payload=boot_parameters)
        await self._dispatch(descriptor)

    async def update_bootparameters(self, boot_parameters: BootParameters) -> None:
        descriptor = OperationDescriptor(ResourceKind.BOOT_PARAMETERS, method="PATCH", payload=boot_parameters)
        await self._dispatch(descriptor)

    async def update_boot_configuration(
        self,
        selector: Selector,
        kernel: Optional[str] = None,
        initrd: Optional[str] = None,
        params: Optional[str] = None,
    ) -> BatchResult:
        """
        Update boot images and/or kernel parameters for a node set.

        One PATCH per batch of hosts; fields left as None are not sent.

        Raises:
            InvalidArgumentError: No field to update, or a value of the wrong type
        """
        if kernel is None and initrd is None and params is None:
            raise InvalidArgumentError("Nothing to update: kernel, initrd and params are all unset")
        template = validate_input(BootParameters, kernel=kernel, initrd=initrd, params=params)

        async def patch(batch: List[str]) -> Dict[str, None]:
            payload = template.model_copy(update={"hosts": batch})
            descriptor = OperationDescriptor(
                ResourceKind.BOOT_PARAMETERS,
                method="PATCH",
                payload=payload,
                hosts=tuple(batch),
            )
            await self._dispatch(descriptor)
            return {host: None for host in batch}

        return await self._fan_out_batches(selector, patch, "update_boot_configuration")

    async def delete_bootparameters(self, boot_parameters: BootParameters) -> str:
        descriptor = OperationDescriptor(ResourceKind.BOOT_PARAMETERS, method="DELETE", payload=boot_parameters)
        return await self._dispatch(descriptor, str)
