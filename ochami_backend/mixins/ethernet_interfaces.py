"""SMD ethernet interface operations"""

from typing import Any, List, Optional

from ochami_backend.descriptors import OperationDescriptor, ResourceKind
from ochami_backend.errors import InvalidArgumentError
from ochami_backend.models import ComponentEthernetInterface, EthernetInterfaceFilter, IpAddressMapping, validate_input


class EthernetInterfacesMixin:
    """Mixin providing network interface operations for the OCHAMI backend"""

    async def get_ethernet_interfaces(
        self, filter: Optional[EthernetInterfaceFilter] = None
    ) -> List[ComponentEthernetInterface]:
        descriptor = OperationDescriptor(ResourceKind.ETHERNET_INTERFACE, query=filter)
        return await self._dispatch(descriptor, List[ComponentEthernetInterface])

    async def get_ethernet_interface(self, interface_id: str) -> ComponentEthernetInterface:
        descriptor = OperationDescriptor(ResourceKind.ETHERNET_INTERFACE, segments=(interface_id,))
        return await self._dispatch(descriptor, ComponentEthernetInterface)

    async def get_ip_addresses(self, interface_id: str) -> List[IpAddressMapping]:
        descriptor = OperationDescriptor(ResourceKind.ETHERNET_INTERFACE, segments=(interface_id, "IPAddresses"))
        return await self._dispatch(descriptor, List[IpAddressMapping])

    async def add_ethernet_interface(self, interface: ComponentEthernetInterface) -> Any:
        descriptor = OperationDescriptor(ResourceKind.ETHERNET_INTERFACE, method="POST", payload=interface)
        return await self._dispatch(descriptor)

    async def add_ip_addresses(self, interface_id: str, ip_address: IpAddressMapping) -> Any:
        descriptor = OperationDescriptor(
            ResourceKind.ETHERNET_INTERFACE,
            method="POST",
            segments=(interface_id, "IPAddresses"),
            payload=ip_address,
        )
        return await self._dispatch(descriptor)

    async def update_ethernet_interface(
        self,
        interface_id: str,
        description: Optional[str] = None,
        ip_address: Optional[str] = None,
        network: Optional[str] = None,
    ) -> None:
        """
        Patch the description and/or the IP address mapping of an interface.

        Raises:
            InvalidArgumentError: Nothing to update, or a network without an IP address,
                or a value of the wrong type
        """
        if description is None and ip_address is None:
            raise InvalidArgumentError("Nothing to update: description and ip_address are both unset")
        if network is not None and ip_address is None:
            raise InvalidArgumentError("A network was given without an IP address")

        patch: dict = {}
        if description is not None:
            patch["Description"] = description
        if ip_address is not None:
            patch["IPAddresses"] = [
                validate_input(IpAddressMapping, ip_address=ip_address, network=network).model_dump(
                    by_alias=True, exclude_none=True
                )
            ]

        descriptor = OperationDescriptor(
            ResourceKind.ETHERNET_INTERFACE,
            method="PATCH",
            segments=(interface_id,),
            payload=patch,
        )
        await self._dispatch(descriptor)

    async def delete_all_ethernet_interfaces(self) -> Any:
        descriptor = OperationDescriptor(ResourceKind.ETHERNET_INTERFACE, method="DELETE")
        return await self._dispatch(descriptor)

    async def delete_ethernet_interface(self, interface_id: str) -> Any:
        descriptor = OperationDescriptor(ResourceKind.ETHERNET_INTERFACE, method="DELETE", segments=(interface_id,))
        return await self._dispatch(descriptor)

    async def delete_ip_address(self, interface_id: str, ip_address: str) -> Any:
        descriptor = OperationDescriptor(
            ResourceKind.ETHERNET_INTERFACE,
            method="DELETE",
            segments=(interface_id, "IPAddresses", ip_address),
        )
        return await self._dispatch(descriptor)
