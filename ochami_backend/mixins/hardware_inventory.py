"""SMD hardware inventory operations"""

from typing import Any, Optional

from ochami_backend.descriptors import OperationDescriptor, ResourceKind
from ochami_backend.models import HardwareQueryFilter, validate_input


class HardwareInventoryMixin:
    """Mixin providing hardware inventory operations for the OCHAMI backend"""

    async def get_inventory_hardware(self, xname: str) -> Any:
        descriptor = OperationDescriptor(ResourceKind.HARDWARE_INVENTORY, segments=(xname,), hosts=(xname,))
        return await self._dispatch(descriptor)

    async def get_inventory_hardware_query(
        self,
        xname: str,
        type: Optional[str] = None,
        children: Optional[bool] = None,
        parents: Optional[bool] = None,
        partition: Optional[str] = None,
        format: Optional[str] = None,
    ) -> Any:
        query = validate_input(
            HardwareQueryFilter,
            type=type,
            children=children,
            parents=parents,
            partition=partition,
            format=format,
        )
        descriptor = OperationDescriptor(
            ResourceKind.HARDWARE_QUERY,
            segments=(xname,),
            query=query,
            hosts=(xname,),
        )
        return await self._dispatch(descriptor)

    async def post_inventory_hardware(self, hardware: Any) -> Any:
        descriptor = OperationDescriptor(ResourceKind.HARDWARE_INVENTORY, method="POST", payload=hardware)
        return await self._dispatch(descriptor)
