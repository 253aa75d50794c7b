"""
OCHAMI Dispatch Error Taxonomy

Every failure surfaced by this package is an OchamiError subclass carrying a
stable `kind` tag, so callers can classify errors without knowing anything
about requests, urllib3 or pydantic.
"""

from typing import Any, Optional

BODY_SNIPPET_LENGTH = 512


class OchamiError(Exception):
    """Base exception for OCHAMI dispatch operations"""

    kind = "OchamiError"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        descriptor: Any = None,
    ):
        self.message = message
        self.status_code = status_code
        self.body = body
        self.descriptor = descriptor
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.kind} ({self.status_code}): {self.message}"
        return f"{self.kind}: {self.message}"


class InvalidArgumentError(OchamiError):
    """Malformed input detected before any network activity"""

    kind = "InvalidArgument"


class HostlistParseError(OchamiError):
    """Hostlist expression violates the range-list grammar"""

    kind = "ParseError"

    def __init__(self, message: str, expression: Optional[str] = None):
        super().__init__(message)
        self.expression = expression


class EncodingError(OchamiError):
    """Request payload could not be serialized"""

    kind = "EncodingError"


class RequestTimeoutError(OchamiError):
    """Per-request deadline exceeded"""

    kind = "Timeout"


class TransportError(OchamiError):
    """Network, TLS or proxy failure before a usable response was received"""

    kind = "TransportError"


class ClientError(OchamiError):
    """Backend rejected the request as sent (4xx)"""

    kind = "ClientError"


class ServerError(OchamiError):
    """Backend failed to process a valid request (5xx)"""

    kind = "ServerError"


class DecodeError(OchamiError):
    """Response body could not be deserialized into the expected type"""

    kind = "DecodeError"


class PartialFailureError(OchamiError):
    """Raised by BatchResult.unwrap() when at least one host failed"""

    kind = "PartialFailure"

    def __init__(self, batch):
        failed = batch.failed_hosts()
        message = f"{len(failed)} of {len(batch)} hosts failed: {', '.join(failed)}"
        super().__init__(message)
        self.batch = batch


def body_snippet(body: Optional[str], length: int = BODY_SNIPPET_LENGTH) -> str:
    """Trim a response body for error messages and logs."""
    if not body:
        return ""
    body = body.strip()
    if len(body) <= length:
        return body
    return body[:length] + "..."


def map_ochami_error(error_response: Any, fallback: str = "") -> str:
    """
    Extract a human readable message from an OCHAMI error payload.

    SMD, BSS and PCS answer errors with RFC 7807 problem documents
    (`type`, `title`, `detail`, `status`); some proxies and older services
    answer with `{"message": ...}` or `{"error": ...}` instead, and a few
    answer with plain text.

    Args:
        error_response: Parsed JSON error body (dict, list, str or None)
        fallback: Message to use when nothing structured is found

    Returns:
        str: Best available error message
    """
    if isinstance(error_response, dict):
        detail = error_response.get("detail")
        title = error_response.get("title")
        if detail and title and detail != title:
            return f"{title}: {detail}"
        if detail or title:
            return str(detail or title)

        for key in ("message", "error", "Message"):
            value = error_response.get(key)
            if isinstance(value, dict):
                return map_ochami_error(value, fallback)
            if value:
                return str(value)

    if isinstance(error_response, str) and error_response.strip():
        return body_snippet(error_response)

    return fallback or "Unknown error occurred"
