"""
Request Builder

Turns an OperationDescriptor into a fully formed HTTP request. No I/O
happens here: every validation and encoding error is raised before the
transport is involved.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

from .authentication import validate_api_token
from .config import EndpointSettings
from .descriptors import HTTP_METHODS, OperationDescriptor
from .errors import EncodingError, InvalidArgumentError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class HttpRequest:
    """A request ready to hand to the transport bridge"""

    method: str
    url: str
    params: List[Tuple[str, str]] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    timeout: Tuple[float, float] = (5.0, 30.0)


def encode_segment(segment: Any) -> str:
    """
    Percent-encode one identifier path segment.

    Raises:
        InvalidArgumentError: If the segment is empty, '.'/'..' or contains '/'
    """
    if segment is None:
        raise InvalidArgumentError("Path identifier is missing")
    segment = str(segment)
    if not segment.strip():
        raise InvalidArgumentError("Path identifier is empty")
    if "/" in segment or "\\" in segment:
        raise InvalidArgumentError(f"Path identifier '{segment}' contains a path separator")
    if segment in (".", ".."):
        raise InvalidArgumentError(f"Path identifier '{segment}' is not allowed")
    return quote(segment, safe="")


def build_url(descriptor: OperationDescriptor, settings: EndpointSettings) -> str:
    kind = descriptor.kind
    parts = [settings.base_url, settings.service_path(kind.service), kind.path]
    parts.extend(encode_segment(segment) for segment in descriptor.segments)
    return "/".join(parts)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_query(query: Optional[Any]) -> List[Tuple[str, str]]:
    """
    Encode a filter into ordered query pairs using backend key names.

    Pydantic filters are dumped by alias with unset fields dropped; lists turn
    into repeated parameters. Mappings are taken as already using backend keys.
    """
    if query is None:
        return []

    if isinstance(query, BaseModel):
        values = query.model_dump(by_alias=True, exclude_none=True)
    elif isinstance(query, Mapping):
        values = {key: value for key, value in query.items() if value is not None}
    else:
        raise InvalidArgumentError(f"Unsupported filter type: {type(query).__name__}")

    params: List[Tuple[str, str]] = []
    for key, value in values.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            params.extend((key, _query_value(item)) for item in value)
        else:
            params.append((key, _query_value(value)))
    return params


def encode_body(payload: Any) -> Optional[bytes]:
    """
    Serialize a payload to JSON bytes.

    Raises:
        EncodingError: If the payload holds values JSON cannot represent
    """
    if payload is None:
        return None

    try:
        if isinstance(payload, BaseModel):
            data = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
        elif isinstance(payload, list) and any(isinstance(item, BaseModel) for item in payload):
            data = [
                item.model_dump(mode="json", by_alias=True, exclude_none=True)
                if isinstance(item, BaseModel) else item
                for item in payload
            ]
        else:
            data = payload
        return json.dumps(data, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError, PydanticSerializationError) as e:
        raise EncodingError(f"Could not encode request body: {e}")


def build(descriptor: OperationDescriptor, settings: EndpointSettings, token: Optional[str] = None) -> HttpRequest:
    """
    Build the HTTP request for one operation.

    Args:
        descriptor: Operation to perform
        settings: Endpoint configuration (base URL, service paths, timeouts)
        token: Access token; defaults to settings.access_token

    Returns:
        HttpRequest: method, url, params, headers, body and timeout

    Raises:
        InvalidArgumentError: Unknown method, bad identifier, missing token
        EncodingError: Payload cannot be serialized
    """
    method = (descriptor.method or "").upper()
    if method not in HTTP_METHODS:
        raise InvalidArgumentError(f"Unsupported HTTP method: {descriptor.method}", descriptor=descriptor)

    token = token if token is not None else settings.access_token
    try:
        validate_api_token(token)
        url = build_url(descriptor, settings)
        params = encode_query(descriptor.query)
        body = encode_body(descriptor.payload)
    except (InvalidArgumentError, EncodingError) as e:
        e.descriptor = descriptor
        raise

    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": JSON_CONTENT_TYPE,
    }
    if body is not None:
        headers["Content-Type"] = JSON_CONTENT_TYPE

    logger.debug(f"Built request {method} {url} params={params}")

    return HttpRequest(
        method=method,
        url=url,
        params=params,
        headers=headers,
        body=body,
        timeout=settings.timeout,
    )
