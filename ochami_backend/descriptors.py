"""
Operation descriptors, node-set selectors and per-host batch results.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel

from . import hostlist
from .errors import InvalidArgumentError, OchamiError, PartialFailureError

Selector = Union[str, Iterable[str]]

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})


class ResourceKind(Enum):
    """OCHAMI resource kinds as (service, resource path)."""

    COMPONENT = ("smd", "State/Components")
    GROUP = ("smd", "groups")
    HARDWARE_INVENTORY = ("smd", "Inventory/Hardware")
    HARDWARE_QUERY = ("smd", "Inventory/Hardware/Query")
    REDFISH_ENDPOINT = ("smd", "Inventory/RedfishEndpoints")
    ETHERNET_INTERFACE = ("smd", "Inventory/EthernetInterfaces")
    BOOT_PARAMETERS = ("bss", "bootparameters")
    POWER_TRANSITION = ("pcs", "transitions")
    POWER_STATUS = ("pcs", "power-status")

    def __init__(self, service: str, path: str):
        self.service = service
        self.path = path


@dataclass(frozen=True)
class OperationDescriptor:
    """One logical HTTP call against OCHAMI."""

    kind: ResourceKind
    method: str = "GET"
    segments: Tuple[str, ...] = ()
    query: Optional[Union[BaseModel, Mapping[str, Any]]] = None
    payload: Any = None
    hosts: Tuple[str, ...] = ()

    def describe(self) -> str:
        path = "/".join((self.kind.path,) + tuple(self.segments))
        return f"{self.method} {self.kind.service}:{path}"


def resolve_selector(selector: Selector) -> List[str]:
    """
    Turn a node-set selector into an ordered list of unique hosts.

    A string is parsed as a hostlist expression; any other iterable is
    treated as hosts or hostlist expressions, expanded in order.

    Raises:
        InvalidArgumentError: If the selector is empty or not a string/iterable
        HostlistParseError: If an expression is malformed
    """
    if selector is None:
        raise InvalidArgumentError("Node selector is required")

    if isinstance(selector, str):
        if not selector.strip():
            raise InvalidArgumentError("Node selector is empty")
        return hostlist.expand(selector)

    try:
        items = list(selector)
    except TypeError:
        raise InvalidArgumentError(f"Unsupported node selector type: {type(selector).__name__}")

    if not items:
        raise InvalidArgumentError("Node selector is empty")

    seen = set()
    hosts = []
    for item in items:
        if not isinstance(item, str) or not item.strip():
            raise InvalidArgumentError(f"Invalid host identifier in selector: {item!r}")
        for host in hostlist.expand(item):
            if host not in seen:
                seen.add(host)
                hosts.append(host)
    return hosts


@dataclass
class HostResult:
    """Outcome for one host: exactly one of value or error is meaningful."""

    host: str
    value: Any = None
    error: Optional[OchamiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """
    Per-host outcomes of a fanned-out operation, in expanded host order.

    Iterating yields HostResult entries; indexing by host name returns the
    entry for that host.
    """

    results: "OrderedDict[str, HostResult]" = field(default_factory=OrderedDict)

    @classmethod
    def from_results(cls, results: Iterable[HostResult]) -> "BatchResult":
        return cls(OrderedDict((result.host, result) for result in results))

    def __iter__(self) -> Iterator[HostResult]:
        return iter(self.results.values())

    def __len__(self) -> int:
        return len(self.results)

    def __getitem__(self, host: str) -> HostResult:
        return self.results[host]

    def __contains__(self, host: object) -> bool:
        return host in self.results

    @property
    def hosts(self) -> List[str]:
        return list(self.results)

    @property
    def all_succeeded(self) -> bool:
        return all(result.ok for result in self)

    @property
    def all_failed(self) -> bool:
        return bool(self.results) and not any(result.ok for result in self)

    @property
    def is_partial(self) -> bool:
        return not self.all_succeeded and not self.all_failed

    def succeeded(self) -> Dict[str, Any]:
        return OrderedDict((r.host, r.value) for r in self if r.ok)

    def failed(self) -> Dict[str, OchamiError]:
        return OrderedDict((r.host, r.error) for r in self if not r.ok)

    def failed_hosts(self) -> List[str]:
        return [r.host for r in self if not r.ok]

    def unwrap(self) -> List[Any]:
        """Return values in host order, or raise PartialFailureError if any host failed."""
        if not self.all_succeeded:
            raise PartialFailureError(self)
        return [r.value for r in self]
