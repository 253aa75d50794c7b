"""
Pydantic models for OCHAMI SMD, BSS and PCS payloads.

Field aliases carry the backend's wire names; Python attribute names are
snake_case. Models accept either form on input.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidArgumentError

ModelT = TypeVar("ModelT", bound=BaseModel)


class OchamiModel(BaseModel):
    """Base for response and request payloads."""

    model_config = ConfigDict(populate_by_name=True)


class QueryFilter(BaseModel):
    """Base for query filters. Unknown keys are rejected."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


# =========================================================================
# SMD - State Components
# =========================================================================

class Component(OchamiModel):
    """SMD component (Component.1.0.0_Component)."""
    id: str = Field(alias="ID")
    type: Optional[str] = Field(default=None, alias="Type")
    state: Optional[str] = Field(default=None, alias="State")
    flag: Optional[str] = Field(default=None, alias="Flag")
    enabled: Optional[bool] = Field(default=None, alias="Enabled")
    software_status: Optional[str] = Field(default=None, alias="SoftwareStatus")
    role: Optional[str] = Field(default=None, alias="Role")
    sub_role: Optional[str] = Field(default=None, alias="SubRole")
    nid: Optional[int] = Field(default=None, alias="NID")
    subtype: Optional[str] = Field(default=None, alias="Subtype")
    net_type: Optional[str] = Field(default=None, alias="NetType")
    arch: Optional[str] = Field(default=None, alias="Arch")
    class_: Optional[str] = Field(default=None, alias="Class")
    reservation_disabled: Optional[bool] = Field(default=None, alias="ReservationDisabled")
    locked: Optional[bool] = Field(default=None, alias="Locked")


class ComponentArray(OchamiModel):
    """GET /State/Components response."""
    components: List[Component] = Field(alias="Components")


class ComponentArrayPostArray(OchamiModel):
    """POST /State/Components request."""
    components: List[Component] = Field(alias="Components")
    force: Optional[bool] = Field(default=None, alias="Force")


class ComponentFilter(QueryFilter):
    """Query parameters for GET /State/Components."""
    id: Optional[List[str]] = None
    type: Optional[str] = None
    state: Optional[str] = None
    flag: Optional[str] = None
    role: Optional[str] = None
    subrole: Optional[str] = None
    enabled: Optional[bool] = None
    software_status: Optional[str] = Field(default=None, alias="softwarestatus")
    subtype: Optional[str] = None
    arch: Optional[str] = None
    class_: Optional[str] = Field(default=None, alias="class")
    nid: Optional[List[int]] = None
    nid_start: Optional[int] = None
    nid_end: Optional[int] = None
    partition: Optional[str] = None
    group: Optional[str] = None
    state_only: Optional[bool] = Field(default=None, alias="stateonly")
    flag_only: Optional[bool] = Field(default=None, alias="flagonly")
    role_only: Optional[bool] = Field(default=None, alias="roleonly")
    nid_only: Optional[bool] = Field(default=None, alias="nidonly")


# =========================================================================
# SMD - Groups
# =========================================================================

class Members(OchamiModel):
    """Group membership list (Members.1.0.0)."""
    ids: List[str]


class Member(OchamiModel):
    """POST /groups/{label}/members request."""
    id: str


class Group(OchamiModel):
    """SMD group (Group.1.0.0)."""
    label: str
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    exclusive_group: Optional[str] = Field(default=None, alias="exclusiveGroup")
    members: Optional[Members] = None

    def member_ids(self) -> List[str]:
        return list(self.members.ids) if self.members else []


class GroupFilter(QueryFilter):
    """Query parameters for GET /groups."""
    group: Optional[List[str]] = None
    tag: Optional[List[str]] = None


# =========================================================================
# SMD - Hardware inventory
# =========================================================================

class HardwareQueryFilter(QueryFilter):
    """Query parameters for GET /Inventory/Hardware/Query/{xname}."""
    type: Optional[str] = None
    children: Optional[bool] = None
    parents: Optional[bool] = None
    partition: Optional[str] = None
    format: Optional[str] = None


# =========================================================================
# SMD - Redfish endpoints
# =========================================================================

class RedfishEndpoint(OchamiModel):
    """SMD RedfishEndpoint.1.0.0."""
    id: str = Field(alias="ID")
    type: Optional[str] = Field(default=None, alias="Type")
    name: Optional[str] = Field(default=None, alias="Name")
    hostname: Optional[str] = Field(default=None, alias="Hostname")
    domain: Optional[str] = Field(default=None, alias="Domain")
    fqdn: Optional[str] = Field(default=None, alias="FQDN")
    enabled: Optional[bool] = Field(default=None, alias="Enabled")
    uuid: Optional[str] = Field(default=None, alias="UUID")
    user: Optional[str] = Field(default=None, alias="User")
    password: Optional[str] = Field(default=None, alias="Password", repr=False)
    use_ssdp: Optional[bool] = Field(default=None, alias="UseSSDP")
    mac_required: Optional[bool] = Field(default=None, alias="MACRequired")
    mac_addr: Optional[str] = Field(default=None, alias="MACAddr")
    ip_address: Optional[str] = Field(default=None, alias="IPAddress")
    rediscover_on_update: Optional[bool] = Field(default=None, alias="RediscoverOnUpdate")
    template_id: Optional[str] = Field(default=None, alias="TemplateID")
    discovery_info: Optional[Dict[str, Any]] = Field(default=None, alias="DiscoveryInfo")


class RedfishEndpointArray(OchamiModel):
    """GET /Inventory/RedfishEndpoints response."""
    redfish_endpoints: List[RedfishEndpoint] = Field(alias="RedfishEndpoints")


class RedfishEndpointFilter(QueryFilter):
    """Query parameters for GET /Inventory/RedfishEndpoints."""
    id: Optional[str] = None
    fqdn: Optional[str] = None
    type: Optional[str] = None
    uuid: Optional[str] = None
    macaddr: Optional[str] = None
    ip_address: Optional[str] = Field(default=None, alias="ipaddress")
    last_status: Optional[str] = Field(default=None, alias="laststatus")


# =========================================================================
# SMD - Ethernet interfaces
# =========================================================================

class IpAddressMapping(OchamiModel):
    """IP address assigned to an ethernet interface."""
    ip_address: str = Field(alias="IPAddress")
    network: Optional[str] = Field(default=None, alias="Network")


class ComponentEthernetInterface(OchamiModel):
    """CompEthInterface.1.0.0 as read from or written to SMD."""
    id: Optional[str] = Field(default=None, alias="ID")
    description: Optional[str] = Field(default=None, alias="Description")
    mac_address: Optional[str] = Field(default=None, alias="MACAddress")
    ip_addresses: List[IpAddressMapping] = Field(default_factory=list, alias="IPAddresses")
    last_update: Optional[str] = Field(default=None, alias="LastUpdate")
    component_id: Optional[str] = Field(default=None, alias="ComponentID")
    type: Optional[str] = Field(default=None, alias="Type")


class EthernetInterfaceFilter(QueryFilter):
    """Query parameters for GET /Inventory/EthernetInterfaces."""
    mac_address: Optional[str] = Field(default=None, alias="MACAddress")
    ip_address: Optional[str] = Field(default=None, alias="IPAddress")
    network: Optional[str] = Field(default=None, alias="Network")
    component_id: Optional[str] = Field(default=None, alias="ComponentID")
    type: Optional[str] = Field(default=None, alias="Type")
    older_than: Optional[str] = Field(default=None, alias="OlderThan")
    newer_than: Optional[str] = Field(default=None, alias="NewerThan")


# =========================================================================
# BSS - Boot parameters
# =========================================================================

class BootParameters(OchamiModel):
    """BSS BootParams; hosts, macs or nids select the nodes."""
    hosts: Optional[List[str]] = None
    macs: Optional[List[str]] = None
    nids: Optional[List[int]] = None
    params: Optional[str] = None
    kernel: Optional[str] = None
    initrd: Optional[str] = None
    cloud_init: Optional[Dict[str, Any]] = Field(default=None, alias="cloud-init")


class BootParametersFilter(QueryFilter):
    """Query parameters for GET /bootparameters."""
    name: Optional[List[str]] = None
    mac: Optional[List[str]] = None
    nid: Optional[List[int]] = None


# =========================================================================
# PCS - Power status and transitions
# =========================================================================

class PowerStatus(OchamiModel):
    """Power state of one component as reported by PCS."""
    xname: str
    power_state: Optional[str] = Field(default=None, alias="powerState")
    management_state: Optional[str] = Field(default=None, alias="managementState")
    error: Optional[str] = None
    supported_power_transitions: Optional[List[str]] = Field(default=None, alias="supportedPowerTransitions")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")


class PowerStatusAll(OchamiModel):
    """GET /power-status response."""
    status: List[PowerStatus]


class PowerStatusFilter(QueryFilter):
    """Query parameters for GET /power-status."""
    xname: Optional[List[str]] = None
    power_state_filter: Optional[str] = Field(default=None, alias="powerStateFilter")
    management_state_filter: Optional[str] = Field(default=None, alias="managementStateFilter")


class Location(OchamiModel):
    xname: str
    deputy_key: Optional[str] = Field(default=None, alias="deputyKey")


class TransitionCreate(OchamiModel):
    """POST /transitions request."""
    operation: str
    task_deadline_minutes: Optional[int] = Field(default=None, alias="taskDeadlineMinutes")
    location: List[Location]


class TransitionStarted(OchamiModel):
    """POST /transitions response."""
    transition_id: str = Field(alias="transitionID")
    operation: Optional[str] = None


class TransitionTask(OchamiModel):
    """Per-component task of a transition."""
    xname: str
    task_status: Optional[str] = Field(default=None, alias="taskStatus")
    task_status_description: Optional[str] = Field(default=None, alias="taskStatusDescription")
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.task_status == "succeeded"


class Transition(OchamiModel):
    """GET /transitions/{id} response."""
    transition_id: str = Field(alias="transitionID")
    operation: Optional[str] = None
    create_time: Optional[str] = Field(default=None, alias="createTime")
    automatic_expiration_time: Optional[str] = Field(default=None, alias="automaticExpirationTime")
    transition_status: Optional[str] = Field(default=None, alias="transitionStatus")
    task_counts: Optional[Dict[str, int]] = Field(default=None, alias="taskCounts")
    tasks: List[TransitionTask] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.transition_status in TRANSITION_TERMINAL_STATES


TRANSITION_TERMINAL_STATES = frozenset({"completed", "aborted"})


def validate_input(model_cls: Type[ModelT], **values: Any) -> ModelT:
    """
    Build a request model from caller supplied values.

    Raises:
        InvalidArgumentError: A value does not fit the model
    """
    try:
        return model_cls(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise InvalidArgumentError(f"Invalid {model_cls.__name__}: {problems}")
