"""
Backend-agnostic dispatcher capability set.

Each capability is an abstract base class; a backend implements all of them
by inheriting BackendDispatcher. Ochami is one such backend, and nothing here
assumes it is the only one.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from .descriptors import BatchResult, Selector
from .models import (
    BootParameters,
    Component,
    ComponentArrayPostArray,
    ComponentEthernetInterface,
    ComponentFilter,
    EthernetInterfaceFilter,
    Group,
    IpAddressMapping,
    RedfishEndpoint,
    RedfishEndpointFilter,
    Transition,
)


class ComponentDispatcher(ABC):
    """Node inventory (SMD State/Components)"""

    @abstractmethod
    async def get_components(self, filter: Optional[ComponentFilter] = None) -> List[Component]:
        """List components matching a filter."""

    @abstractmethod
    async def get_all_nodes(self, nid_only: Optional[bool] = None) -> List[Component]:
        """List every component of type Node."""

    @abstractmethod
    async def get_node_metadata_available(self) -> List[Component]:
        """List the nodes available to the caller."""

    @abstractmethod
    async def get_nodes(self, selector: Selector) -> BatchResult:
        """Fetch one component record per host of a node set."""

    @abstractmethod
    async def post_nodes(self, components: ComponentArrayPostArray) -> None:
        """Create or update components."""

    @abstractmethod
    async def delete_node(self, xname: str) -> Any:
        """Delete one component."""

    @abstractmethod
    async def delete_nodes(self, selector: Selector) -> BatchResult:
        """Delete every component of a node set."""


class GroupDispatcher(ABC):
    """Node groups (SMD groups)"""

    @abstractmethod
    async def get_group_available(self) -> List[Group]:
        """Groups the caller may use."""

    @abstractmethod
    async def get_group_name_available(self) -> List[str]:
        """Labels of the groups the caller may use."""

    @abstractmethod
    async def get_all_groups(self) -> List[Group]:
        ...

    @abstractmethod
    async def get_group(self, label: str) -> Group:
        ...

    @abstractmethod
    async def get_groups(self, labels: Optional[Sequence[str]] = None) -> List[Group]:
        ...

    @abstractmethod
    async def add_group(self, group: Group) -> Group:
        ...

    @abstractmethod
    async def delete_group(self, label: str) -> Any:
        ...

    @abstractmethod
    async def get_group_members(self, label: str) -> List[str]:
        ...

    @abstractmethod
    async def get_member_vec_from_group_name_vec(self, labels: Sequence[str]) -> List[str]:
        """Members of several groups, merged in label order without duplicates."""

    @abstractmethod
    async def get_group_map_and_filter_by_group_vec(self, labels: Sequence[str]) -> Dict[str, List[str]]:
        """Map of label to members, restricted to the given labels."""

    @abstractmethod
    async def get_group_map_and_filter_by_member_vec(self, xnames: Sequence[str]) -> Dict[str, List[str]]:
        """Map of label to the given hosts it holds, for groups holding any of them."""

    @abstractmethod
    async def post_member(self, label: str, xname: str) -> Any:
        ...

    @abstractmethod
    async def add_members_to_group(self, label: str, selector: Selector) -> BatchResult:
        ...

    @abstractmethod
    async def delete_member_from_group(self, label: str, xname: str) -> None:
        ...

    @abstractmethod
    async def update_group_members(
        self,
        label: str,
        members_to_remove: Optional[Selector] = None,
        members_to_add: Optional[Selector] = None,
    ) -> BatchResult:
        """Remove and add group members in one call."""

    @abstractmethod
    async def migrate_group_members(self, target_label: str, parent_label: str, selector: Selector) -> BatchResult:
        """Move hosts, all members of the parent group, to the target group."""


class HardwareInventoryDispatcher(ABC):
    """Hardware inventory (SMD Inventory/Hardware)"""

    @abstractmethod
    async def get_inventory_hardware(self, xname: str) -> Any:
        ...

    @abstractmethod
    async def get_inventory_hardware_query(
        self,
        xname: str,
        type: Optional[str] = None,
        children: Optional[bool] = None,
        parents: Optional[bool] = None,
        partition: Optional[str] = None,
        format: Optional[str] = None,
    ) -> Any:
        ...

    @abstractmethod
    async def post_inventory_hardware(self, hardware: Any) -> Any:
        ...


class PowerDispatcher(ABC):
    """Power control (PCS)"""

    @abstractmethod
    async def get_power_status(
        self,
        selector: Selector,
        power_state_filter: Optional[str] = None,
        management_state_filter: Optional[str] = None,
    ) -> BatchResult:
        """Power state per host of a node set."""

    @abstractmethod
    async def power_on_sync(self, selector: Selector) -> BatchResult:
        ...

    @abstractmethod
    async def power_off_sync(self, selector: Selector, force: bool = False) -> BatchResult:
        ...

    @abstractmethod
    async def power_reset_sync(self, selector: Selector, force: bool = False) -> BatchResult:
        ...

    @abstractmethod
    async def get_transition(self, transition_id: str) -> Transition:
        ...


class BootParametersDispatcher(ABC):
    """Boot configuration (BSS)"""

    @abstractmethod
    async def get_bootparameters(self, selector: Selector) -> BatchResult:
        """Boot parameters per host of a node set."""

    @abstractmethod
    async def get_all_bootparameters(self) -> List[BootParameters]:
        ...

    @abstractmethod
    async def add_bootparameters(self, boot_parameters: BootParameters) -> None:
        ...

    @abstractmethod
    async def update_bootparameters(self, boot_parameters: BootParameters) -> None:
        ...

    @abstractmethod
    async def update_boot_configuration(
        self,
        selector: Selector,
        kernel: Optional[str] = None,
        initrd: Optional[str] = None,
        params: Optional[str] = None,
    ) -> BatchResult:
        """Update kernel, initrd and/or kernel parameters for a node set."""

    @abstractmethod
    async def delete_bootparameters(self, boot_parameters: BootParameters) -> str:
        ...


class RedfishEndpointDispatcher(ABC):
    """BMC endpoints (SMD Inventory/RedfishEndpoints)"""

    @abstractmethod
    async def get_redfish_endpoints(self, filter: Optional[RedfishEndpointFilter] = None) -> List[RedfishEndpoint]:
        ...

    @abstractmethod
    async def add_redfish_endpoint(self, redfish_endpoint: RedfishEndpoint) -> None:
        ...

    @abstractmethod
    async def update_redfish_endpoint(self, redfish_endpoint: RedfishEndpoint) -> None:
        ...

    @abstractmethod
    async def delete_redfish_endpoint(self, endpoint_id: str) -> Any:
        ...


class EthernetInterfaceDispatcher(ABC):
    """Network interfaces (SMD Inventory/EthernetInterfaces)"""

    @abstractmethod
    async def get_ethernet_interfaces(
        self, filter: Optional[EthernetInterfaceFilter] = None
    ) -> List[ComponentEthernetInterface]:
        ...

    @abstractmethod
    async def get_ethernet_interface(self, interface_id: str) -> ComponentEthernetInterface:
        ...

    @abstractmethod
    async def get_ip_addresses(self, interface_id: str) -> List[IpAddressMapping]:
        ...

    @abstractmethod
    async def add_ethernet_interface(self, interface: ComponentEthernetInterface) -> Any:
        ...

    @abstractmethod
    async def add_ip_addresses(self, interface_id: str, ip_address: IpAddressMapping) -> Any:
        ...

    @abstractmethod
    async def update_ethernet_interface(
        self,
        interface_id: str,
        description: Optional[str] = None,
        ip_address: Optional[str] = None,
        network: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    async def delete_all_ethernet_interfaces(self) -> Any:
        ...

    @abstractmethod
    async def delete_ethernet_interface(self, interface_id: str) -> Any:
        ...

    @abstractmethod
    async def delete_ip_address(self, interface_id: str, ip_address: str) -> Any:
        ...


class BackendDispatcher(
    ComponentDispatcher,
    GroupDispatcher,
    HardwareInventoryDispatcher,
    PowerDispatcher,
    BootParametersDispatcher,
    RedfishEndpointDispatcher,
    EthernetInterfaceDispatcher,
):
    """Full capability set a cluster backend implements"""

    @abstractmethod
    async def get_api_token(self, site_name: Optional[str] = None) -> str:
        ...

    @abstractmethod
    async def nid_to_xname(self, user_input_nid: str, is_regex: bool) -> List[str]:
        """
        Resolve NIDs to xnames. The input is a comma separated list of
        regexes when is_regex is set, otherwise a NID hostlist.
        """
