"""Fake requests session and settings shared by the test modules."""

import json
import threading
from typing import Any, Callable, List, NamedTuple, Optional
from urllib.parse import urlsplit

import requests

from ochami_backend.config import EndpointSettings

BASE_URL = "https://ochami.test"


def make_settings(**overrides) -> EndpointSettings:
    values = {
        "base_url": BASE_URL,
        "access_token": "test-token",
        "socks5_proxy": None,
        "request_timeout_seconds": 5.0,
        "max_concurrent": 4,
    }
    values.update(overrides)
    return EndpointSettings(**values)


def make_response(status_code: int, body: Any = None, url: str = BASE_URL) -> requests.Response:
    """Build a real requests.Response with a preloaded body."""
    response = requests.models.Response()
    response.status_code = status_code
    response.url = url
    response.encoding = "utf-8"
    if body is None:
        response._content = b""
    elif isinstance(body, bytes):
        response._content = body
    elif isinstance(body, str):
        response._content = body.encode("utf-8")
    else:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    return response


class RecordedCall(NamedTuple):
    method: str
    url: str
    params: Optional[list]
    headers: dict
    data: Optional[bytes]

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def json(self) -> Any:
        return json.loads(self.data) if self.data else None

    def param_values(self, key: str) -> List[str]:
        return [value for name, value in (self.params or []) if name == key]


class FakeSession:
    """
    Stands in for requests.Session.

    handler(call) returns a requests.Response or raises a requests exception.
    Calls are recorded from every worker thread.
    """

    def __init__(self, handler: Callable[[RecordedCall], requests.Response]):
        self.handler = handler
        self.calls: List[RecordedCall] = []
        self._lock = threading.Lock()

    def request(self, method, url, params=None, headers=None, data=None, timeout=None):
        call = RecordedCall(method, url, params, dict(headers or {}), data)
        with self._lock:
            self.calls.append(call)
        return self.handler(call)
