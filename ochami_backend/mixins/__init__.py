"""Capability mixins for the OCHAMI backend"""

from .components import ComponentsMixin
from .groups import GroupsMixin
from .hardware_inventory import HardwareInventoryMixin
from .power import PowerMixin
from .boot_parameters import BootParametersMixin
from .redfish_endpoints import RedfishEndpointsMixin
from .ethernet_interfaces import EthernetInterfacesMixin

__all__ = [
    'ComponentsMixin',
    'GroupsMixin',
    'HardwareInventoryMixin',
    'PowerMixin',
    'BootParametersMixin',
    'RedfishEndpointsMixin',
    'EthernetInterfacesMixin',
]
