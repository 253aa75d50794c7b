"""SMD State/Components operations"""

import logging
from typing import Any, List, Optional

from ochami_backend.descriptors import BatchResult, OperationDescriptor, ResourceKind, Selector
from ochami_backend.errors import DecodeError
from ochami_backend.models import Component, ComponentArray, ComponentArrayPostArray, ComponentFilter, validate_input

logger = logging.getLogger(__name__)


class ComponentsMixin:
    """Mixin providing node inventory operations for the OCHAMI backend"""

    async def get_components(self, filter: Optional[ComponentFilter] = None) -> List[Component]:
        descriptor = OperationDescriptor(ResourceKind.COMPONENT, query=filter)
        array = await self._dispatch(descriptor, ComponentArray)
        return array.components

    async def get_all_nodes(self, nid_only: Optional[bool] = None) -> List[Component]:
        return await self.get_components(validate_input(ComponentFilter, type="Node", nid_only=nid_only))

    async def get_node_metadata_available(self) -> List[Component]:
        return await self.get_all_nodes(nid_only=True)

    async def get_nodes(self, selector: Selector) -> BatchResult:
        """
        Fetch the component record of every host in a node set.

        One GET per host; a missing host shows up as a ClientError (404) in
        its own HostResult, and a record for a different component as a
        DecodeError.
        """
        async def fetch(xname: str) -> Component:
            descriptor = OperationDescriptor(ResourceKind.COMPONENT, segments=(xname,), hosts=(xname,))
            component = await self._dispatch(descriptor, Component)
            # SMD matches xnames case-insensitively
            if component.id.lower() != xname.lower():
                raise DecodeError(f"Requested component {xname} but the response describes {component.id}")
            return component

        return await self._fan_out_per_host(selector, fetch, "get_nodes")

    async def post_nodes(self, components: ComponentArrayPostArray) -> None:
        descriptor = OperationDescriptor(ResourceKind.COMPONENT, method="POST", payload=components)
        await self._dispatch(descriptor)

    async def delete_node(self, xname: str) -> Any:
        descriptor = OperationDescriptor(ResourceKind.COMPONENT, method="DELETE", segments=(xname,), hosts=(xname,))
        return await self._dispatch(descriptor)

    async def delete_nodes(self, selector: Selector) -> BatchResult:
        return await self._fan_out_per_host(selector, self.delete_node, "delete_nodes")
