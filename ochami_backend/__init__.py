"""
OpenCHAMI Dispatch Backend

Translates cluster management operations into HTTP calls against OpenCHAMI
services (SMD, BSS and PCS).

Every call goes through:
- Hostlist expansion of node-set selectors
- Request building with validation before any network activity
- A thread-pool transport bridge around blocking requests
- Response mapping onto typed models or a fixed error taxonomy
"""

__version__ = "1.0.0"

from .backend import Ochami
from .config import EndpointSettings, configure_logging
from .descriptors import BatchResult, HostResult, OperationDescriptor, ResourceKind, resolve_selector
from .errors import (
    OchamiError,
    InvalidArgumentError,
    HostlistParseError,
    EncodingError,
    RequestTimeoutError,
    TransportError,
    ClientError,
    ServerError,
    DecodeError,
    PartialFailureError,
    map_ochami_error,
)
from .hostlist import compress, expand
from .interfaces import BackendDispatcher
from .retry import call_with_retry

__all__ = [
    "Ochami",
    "EndpointSettings",
    "configure_logging",
    "BatchResult",
    "HostResult",
    "OperationDescriptor",
    "ResourceKind",
    "resolve_selector",
    "OchamiError",
    "InvalidArgumentError",
    "HostlistParseError",
    "EncodingError",
    "RequestTimeoutError",
    "TransportError",
    "ClientError",
    "ServerError",
    "DecodeError",
    "PartialFailureError",
    "map_ochami_error",
    "compress",
    "expand",
    "BackendDispatcher",
    "call_with_retry",
]
