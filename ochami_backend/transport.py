"""
Transport Bridge
================

Runs blocking requests calls from asyncio code without stalling the event
loop.

Provides:
- A bounded ThreadPoolExecutor shared by every request of one backend
- Per-worker-thread requests.Session with TLS and proxy settings applied
- Per-request deadline on the awaiting side, counted from the moment a
  worker thread starts the request
- Mapping of requests exceptions onto the dispatch error taxonomy

Limitation: a blocking HTTP call cannot be interrupted. When the awaiting
coroutine times out or is cancelled, the call keeps running in its worker
thread until requests' own timeout fires, and its result is discarded.
"""

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import requests
import urllib3

from .config import EndpointSettings
from .errors import RequestTimeoutError, TransportError
from .request_builder import HttpRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawResponse:
    """Status, headers and body of a completed HTTP exchange"""

    status_code: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    url: str = ""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


def create_session(settings: EndpointSettings) -> requests.Session:
    """Create a requests.Session configured from endpoint settings."""
    session = requests.Session()
    session.verify = settings.verify

    if settings.socks5_proxy:
        logger.debug("SOCKS5 enabled")
    proxies = settings.proxies
    if proxies:
        session.proxies.update(proxies)

    return session


class TransportBridge:
    """
    Executes HttpRequests on a dedicated thread pool.

    The bridge owns its executor; close() it (or use it as a context manager)
    when the backend is no longer needed.
    """

    def __init__(
        self,
        settings: EndpointSettings,
        session_factory: Optional[Callable[[], requests.Session]] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            settings: Endpoint configuration (TLS, proxy, timeouts, concurrency)
            session_factory: Builds one session per worker thread; defaults to
                create_session(settings)
            max_workers: Worker thread count; defaults to settings.max_concurrent
        """
        self.settings = settings
        self._session_factory = session_factory or (lambda: create_session(settings))
        self._local = threading.local()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.max_concurrent,
            thread_name_prefix="ochami-transport",
        )
        self._closed = False

        if not settings.verify_ssl and not settings.root_cert_path:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            logger.warning("TLS certificate verification is disabled for OCHAMI requests")

    def _get_session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            self._local.session = session
        return session

    def send(self, request: HttpRequest) -> RawResponse:
        """
        Blocking send. Runs in a worker thread; also usable directly from
        synchronous code.

        Raises:
            RequestTimeoutError: requests connect/read timeout
            TransportError: Connection, DNS, TLS or proxy failure
        """
        session = self._get_session()
        try:
            response = session.request(
                request.method,
                request.url,
                params=request.params or None,
                headers=request.headers,
                data=request.body,
                timeout=request.timeout,
            )
            # Read the body here so no blocking read happens on the event loop
            body = response.content or b""
        except requests.exceptions.Timeout as e:
            raise RequestTimeoutError(f"{request.method} {request.url} timed out: {e}")
        except requests.exceptions.SSLError as e:
            raise TransportError(f"TLS failure for {request.method} {request.url}: {e}")
        except requests.exceptions.ProxyError as e:
            raise TransportError(f"Proxy failure for {request.method} {request.url}: {e}")
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{request.method} {request.url} failed: {e}")

        return RawResponse(
            status_code=response.status_code,
            body=body,
            headers=dict(response.headers),
            url=str(response.url or request.url),
        )

    async def execute(self, request: HttpRequest, timeout: Optional[float] = None) -> RawResponse:
        """
        Send a request from asyncio code.

        Args:
            request: Built request
            timeout: Deadline in seconds, counted from when a worker starts
                the request; defaults to settings.request_timeout_seconds

        Returns:
            RawResponse: Completed exchange (any status code)

        Raises:
            RequestTimeoutError: Deadline exceeded
            TransportError: Network failure, or the bridge is closed
        """
        if self._closed:
            raise TransportError("Transport bridge is closed")

        deadline = timeout if timeout is not None else self.settings.request_timeout_seconds
        loop = asyncio.get_running_loop()
        started = asyncio.Event()

        def run() -> RawResponse:
            if not loop.is_closed():
                loop.call_soon_threadsafe(started.set)
            return self.send(request)

        future = loop.run_in_executor(self._executor, run)

        # The deadline starts once a worker picks the request up; a worker
        # still held by an abandoned call must not time out queued requests
        started_waiter = asyncio.ensure_future(started.wait())
        try:
            await asyncio.wait({started_waiter, future}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            future.cancel()
            raise
        finally:
            started_waiter.cancel()

        if future.cancelled():
            raise TransportError(f"{request.method} {request.url} was not sent: transport bridge closed")

        try:
            return await asyncio.wait_for(future, timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning(f"{request.method} {request.url} exceeded {deadline}s deadline; result will be discarded")
            raise RequestTimeoutError(f"{request.method} {request.url} exceeded {deadline}s deadline")

    def close(self) -> None:
        """Stop accepting work; in-flight calls finish in the background."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "TransportBridge":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    async def __aenter__(self) -> "TransportBridge":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()
