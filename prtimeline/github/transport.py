"""HTTP transport layer used by the GitHub endpoint.

A transport sends one request and returns one response. It knows nothing
about GitHub semantics: status codes are returned as-is and only
connection-level failures are raised. Wrappers such as ``RetryTransport``
stack on top of any transport.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from typing import Any, Protocol

import aiohttp

from .exceptions import GitHubConnectionError, GitHubTimeoutError

logger = logging.getLogger(__name__)

RequestBody = bytes | AsyncIterable[bytes] | None


@dataclass(frozen=True)
class Request:
    """Outbound HTTP request."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: RequestBody = None


@dataclass(frozen=True)
class Response:
    """Fully read HTTP response."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        """Check for a 2xx status."""
        return 200 <= self.status < 300

    def header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default


class Transport(Protocol):
    """Anything that can send a request and return a response."""

    async def send(self, request: Request) -> Response:
        """Send a request."""
        ...


class AiohttpTransport:
    """Sends requests over a lazily created ``aiohttp.ClientSession``.

    The session is shared by every concurrent sub-fetch and is opened on the
    first request, so constructing a transport outside a running loop is safe.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = "prtimeline/1.0",
        max_connections: int = 100,
        max_connections_per_host: int = 10,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self.max_connections = max_connections
        self.max_connections_per_host = max_connections_per_host

        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def __aenter__(self) -> "AiohttpTransport":
        await self._get_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _open_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            connector=aiohttp.TCPConnector(
                limit=self.max_connections,
                limit_per_host=self.max_connections_per_host,
            ),
            headers={"User-Agent": self.user_agent},
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = self._open_session()
            return self._session

    async def close(self) -> None:
        """Close the session; a later request opens a new one."""
        session, self._session = self._session, None
        if session is not None and not session.closed:
            await session.close()

    async def send(self, request: Request) -> Response:
        """Send a request and read the whole response body.

        Raises:
            GitHubTimeoutError: If the request exceeds the transport timeout
            GitHubConnectionError: If the connection fails
        """
        session = await self._get_session()
        started = time.monotonic()
        target = f"{request.method} {request.url}"

        try:
            async with session.request(
                request.method, request.url, headers=request.headers, data=request.body
            ) as response:
                body = await response.read()
        except TimeoutError as e:
            raise GitHubTimeoutError(f"Timed out: {target}") from e
        except aiohttp.ClientError as e:
            raise GitHubConnectionError(f"Connection failed: {target}: {e}") from e

        logger.debug(f"{target} -> {response.status} in {time.monotonic() - started:.2f}s")
        return Response(status=response.status, headers=dict(response.headers), body=body)
