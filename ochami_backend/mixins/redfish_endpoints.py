"""SMD Redfish endpoint operations"""

from typing import Any, List, Optional

from ochami_backend.descriptors import OperationDescriptor, ResourceKind
from ochami_backend.models import RedfishEndpoint, RedfishEndpointArray, RedfishEndpointFilter


class RedfishEndpointsMixin:
    """Mixin providing BMC endpoint operations for the OCHAMI backend"""

    async def get_redfish_endpoints(self, filter: Optional[RedfishEndpointFilter] = None) -> List[RedfishEndpoint]:
        descriptor = OperationDescriptor(ResourceKind.REDFISH_ENDPOINT, query=filter)
        array = await self._dispatch(descriptor, RedfishEndpointArray)
        return array.redfish_endpoints

    async def add_redfish_endpoint(self, redfish_endpoint: RedfishEndpoint) -> None:
        descriptor = OperationDescriptor(
            ResourceKind.REDFISH_ENDPOINT,
            method="POST",
            payload=RedfishEndpointArray(redfish_endpoints=[redfish_endpoint]),
        )
        await self._dispatch(descriptor)

    async def update_redfish_endpoint(self, redfish_endpoint: RedfishEndpoint) -> None:
        descriptor = OperationDescriptor(
            ResourceKind.REDFISH_ENDPOINT,
            method="PUT",
            segments=(redfish_endpoint.id,),
            payload=redfish_endpoint,
        )
        await self._dispatch(descriptor)

    async def delete_redfish_endpoint(self, endpoint_id: str) -> Any:
        descriptor = OperationDescriptor(ResourceKind.REDFISH_ENDPOINT, method="DELETE", segments=(endpoint_id,))
        return await self._dispatch(descriptor)
