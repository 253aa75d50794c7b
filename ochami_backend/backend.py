"""
OCHAMI Backend
==============

Concrete BackendDispatcher for OpenCHAMI (SMD, BSS and PCS).

Every operation runs the same pipeline:
    descriptor -> request_builder.build -> TransportBridge.execute -> map_response

Node-set operations expand their selector first and fan out either one
request per host or one request per batch of hosts, collecting a BatchResult
in expanded host order.

Usage:
    async with Ochami(EndpointSettings()) as backend:
        status = await backend.get_power_status("x1000c0s[0-3]b0n0")
        for result in status:
            print(result.host, result.value if result.ok else result.error)
"""

import asyncio
import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from . import authentication, hostlist
from .config import EndpointSettings
from .descriptors import BatchResult, HostResult, OperationDescriptor, Selector, resolve_selector
from .errors import DecodeError, InvalidArgumentError, OchamiError
from .interfaces import BackendDispatcher
from .mixins import (
    BootParametersMixin,
    ComponentsMixin,
    EthernetInterfacesMixin,
    GroupsMixin,
    HardwareInventoryMixin,
    PowerMixin,
    RedfishEndpointsMixin,
)
from .models import ComponentFilter
from .request_builder import build
from .response_mapper import map_response
from .transport import TransportBridge

logger = logging.getLogger(__name__)

NID_PREFIX = "nid"

# Marks a host absent from a bulk response
_MISSING = object()

BatchCall = Callable[[List[str]], Awaitable[Dict[str, Any]]]


class Ochami(
    ComponentsMixin,
    GroupsMixin,
    HardwareInventoryMixin,
    PowerMixin,
    BootParametersMixin,
    RedfishEndpointsMixin,
    EthernetInterfacesMixin,
    BackendDispatcher,
):
    """OpenCHAMI implementation of the dispatcher capability set"""

    def __init__(self, settings: Optional[EndpointSettings] = None, transport: Optional[TransportBridge] = None):
        """
        Args:
            settings: Endpoint configuration; read from the environment when omitted
            transport: Transport bridge to use. One is created when omitted, and
                only that one is closed by close(); an injected bridge stays
                with its owner
        """
        self.settings = settings or EndpointSettings()
        self._owns_transport = transport is None
        self.transport = transport or TransportBridge(self.settings)

    # ------------------------------------------------------------------
    # Dispatch pipeline
    # ------------------------------------------------------------------

    async def _dispatch(self, descriptor: OperationDescriptor, expected: Any = None) -> Any:
        """
        Build, send and map one request.

        Raises:
            OchamiError: Any taxonomy error, with the descriptor attached
        """
        request = build(descriptor, self.settings)
        try:
            raw = await self.transport.execute(request)
        except OchamiError as e:
            e.descriptor = descriptor
            raise
        return map_response(raw, expected, descriptor)

    async def _fan_out(self, hosts: List[str], call: BatchCall, operation: str, batch_size: int) -> BatchResult:
        """
        Run call() over hosts split into batches, bounded by max_concurrent.

        call(batch) returns a mapping of host -> value for the hosts it could
        resolve. A taxonomy error raised by call() is recorded against every
        host of that batch; a host the call did not return gets a DecodeError.
        """
        batches = [hosts[i:i + batch_size] for i in range(0, len(hosts), batch_size)]
        semaphore = asyncio.Semaphore(self.settings.max_concurrent)
        start_time = time.monotonic()

        async def run(batch: List[str]) -> Dict[str, Any]:
            async with semaphore:
                logger.debug(f"{operation}: dispatching batch of {len(batch)} hosts starting at {batch[0]}")
                try:
                    return await call(batch)
                except OchamiError as e:
                    return {host: e for host in batch}

        outcomes = await asyncio.gather(*(run(batch) for batch in batches))

        merged: Dict[str, Any] = {}
        for outcome in outcomes:
            merged.update(outcome)

        results = []
        for host in hosts:
            value = merged.get(host, _MISSING)
            if value is _MISSING:
                results.append(HostResult(host, error=DecodeError(f"Response has no entry for host {host}")))
            elif isinstance(value, OchamiError):
                results.append(HostResult(host, error=value))
            else:
                results.append(HostResult(host, value=value))

        batch_result = BatchResult.from_results(results)
        for host, error in batch_result.failed().items():
            logger.warning(f"{operation}: {host} failed: {error}")

        elapsed = time.monotonic() - start_time
        logger.info(
            f"{operation}: {len(hosts) - len(batch_result.failed_hosts())}/{len(hosts)} hosts succeeded "
            f"in {elapsed:.2f}s"
        )
        return batch_result

    async def _fan_out_batches(self, selector: Selector, call: BatchCall, operation: str) -> BatchResult:
        hosts = resolve_selector(selector)
        return await self._fan_out(hosts, call, operation, self.settings.batch_size)

    async def _fan_out_per_host(
        self, selector: Selector, call: Callable[[str], Awaitable[Any]], operation: str
    ) -> BatchResult:
        hosts = resolve_selector(selector)

        async def single(batch: List[str]) -> Dict[str, Any]:
            return {batch[0]: await call(batch[0])}

        return await self._fan_out(hosts, single, operation, 1)

    # ------------------------------------------------------------------
    # Backend
    # ------------------------------------------------------------------

    async def get_api_token(self, site_name: Optional[str] = None) -> str:
        if self.settings.access_token:
            return self.settings.access_token
        return authentication.get_api_token()

    async def nid_to_xname(self, user_input_nid: str, is_regex: bool) -> List[str]:
        """
        Translate NIDs into xnames.

        Args:
            user_input_nid: Comma separated regexes matched against 'nid000001'
                style names when is_regex is set, otherwise a NID hostlist
                such as 'nid[000001-000004]'
            is_regex: Selects how user_input_nid is read

        Returns:
            List[str]: Matching xnames

        Raises:
            InvalidArgumentError: Bad regex, or a host that is not a NID
            HostlistParseError: Malformed hostlist
        """
        if not isinstance(user_input_nid, str) or not user_input_nid.strip():
            raise InvalidArgumentError("NID expression is empty")

        if is_regex:
            return await self._nid_regex_to_xname(user_input_nid)
        return await self._nid_hostlist_to_xname(user_input_nid)

    async def _nid_regex_to_xname(self, user_input_nid: str) -> List[str]:
        try:
            patterns = [re.compile(expr.strip()) for expr in user_input_nid.split(",") if expr.strip()]
        except re.error as e:
            raise InvalidArgumentError(f"Invalid NID regex '{user_input_nid}': {e}")

        nodes = await self.get_all_nodes(nid_only=True)
        xnames = []
        for node in nodes:
            if node.nid is None:
                continue
            nid_name = f"{NID_PREFIX}{node.nid:06}"
            if any(pattern.search(nid_name) for pattern in patterns):
                xnames.append(node.id)

        logger.debug(f"NID regex '{user_input_nid}' matched {len(xnames)} nodes")
        return xnames

    async def _nid_hostlist_to_xname(self, user_input_nid: str) -> List[str]:
        nids = []
        for host in hostlist.expand(user_input_nid):
            digits = host[len(NID_PREFIX):] if host.startswith(NID_PREFIX) else host
            if not digits.isdigit():
                raise InvalidArgumentError(f"'{host}' is not a NID")
            nids.append(int(digits))

        batch_size = self.settings.batch_size
        batches = [nids[i:i + batch_size] for i in range(0, len(nids), batch_size)]
        semaphore = asyncio.Semaphore(self.settings.max_concurrent)

        async def lookup(batch: Sequence[int]):
            async with semaphore:
                return await self.get_components(ComponentFilter(nid=list(batch), nid_only=True))

        component_lists = await asyncio.gather(*(lookup(batch) for batch in batches))

        xname_by_nid = {}
        for components in component_lists:
            for component in components:
                if component.nid is not None:
                    xname_by_nid[component.nid] = component.id

        return [xname_by_nid[nid] for nid in nids if nid in xname_by_nid]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()

    async def __aenter__(self) -> "Ochami":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()
