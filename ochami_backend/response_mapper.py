"""
Response Mapper

Maps a RawResponse onto the expected domain type, or onto the error
taxonomy. No retries happen here.
"""

import json
import logging
from functools import lru_cache
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from .descriptors import OperationDescriptor
from .errors import (
    ClientError,
    DecodeError,
    ServerError,
    TransportError,
    body_snippet,
    map_ochami_error,
)
from .transport import RawResponse

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def _adapter(expected: Any) -> TypeAdapter:
    return TypeAdapter(expected)


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def _error_message(raw: RawResponse) -> str:
    text = raw.text
    parsed = _parse_json(text) if text.strip() else None
    return map_ochami_error(parsed if parsed is not None else text, fallback=f"HTTP {raw.status_code}")


def map_response(raw: RawResponse, expected: Any = None, descriptor: Optional[OperationDescriptor] = None) -> Any:
    """
    Convert a raw response into a typed result.

    Args:
        raw: Completed HTTP exchange
        expected: Target type (pydantic model, List[Model], dict, ...). None
            returns the parsed JSON value (or None for an empty body, or the
            text for a non-JSON body); str returns the body text.
        descriptor: Operation that produced the response, attached to errors

    Returns:
        The deserialized value

    Raises:
        ClientError: 4xx status
        ServerError: 5xx status
        TransportError: Status outside 2xx/4xx/5xx
        DecodeError: 2xx body does not match the expected type
    """
    status = raw.status_code

    if 400 <= status < 500:
        raise ClientError(_error_message(raw), status_code=status, body=body_snippet(raw.text), descriptor=descriptor)
    if 500 <= status < 600:
        raise ServerError(_error_message(raw), status_code=status, body=body_snippet(raw.text), descriptor=descriptor)
    if not 200 <= status < 300:
        raise TransportError(
            f"Unexpected HTTP status {status}", status_code=status, body=body_snippet(raw.text), descriptor=descriptor
        )

    text = raw.text

    if expected is str:
        return text

    if expected is None:
        if not text.strip():
            return None
        parsed = _parse_json(text)
        return parsed if parsed is not None else text

    if not text.strip():
        raise DecodeError(
            f"Empty response body, expected {getattr(expected, '__name__', expected)}",
            status_code=status,
            descriptor=descriptor,
        )

    try:
        return _adapter(expected).validate_json(raw.body)
    except ValidationError as e:
        snippet = body_snippet(text)
        logger.debug(f"Failed to decode response from {raw.url}: {snippet}")
        raise DecodeError(
            f"Response does not match {getattr(expected, '__name__', expected)}: {e.error_count()} error(s)",
            status_code=status,
            body=snippet,
            descriptor=descriptor,
        )
