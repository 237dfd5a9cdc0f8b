"""Pooled async HTTP client for the message API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import aiohttp

from loadpulse._internal.logging import get_logger

if TYPE_CHECKING:
    from loadpulse._internal.config import RunConfig

logger = get_logger("client.http")

MESSAGES_PATH = "/api/v1/messages"


@dataclass(frozen=True)
class HttpReply:
    """Status and fully-read body of one HTTP exchange.

    Attributes:
        status: HTTP response status code.
        body: Raw response body.
    """

    status: int
    body: bytes

    @property
    def ok(self) -> bool:
        """Return True for a 2xx status."""
        return 200 <= self.status < 300


class MessageTransport(Protocol):
    """What the request executor needs from an HTTP client."""

    async def get(self, endpoint: str, path: str) -> HttpReply: ...

    async def post(self, endpoint: str, path: str, payload: dict[str, Any]) -> HttpReply: ...


class HttpClient:
    """Async HTTP client wrapping one shared ``aiohttp.ClientSession``.

    The session and its connection pool are reused by every request of a
    run. Requests address a ``host:port`` endpoint per call, because the
    target may change mid-run when the server suggests another host.

    Closing is idempotent: the pool is released exactly once however many
    times ``close`` or ``__aexit__`` run.
    """

    def __init__(
        self,
        *,
        timeout: float = 5.0,
        pool_size: int = 100,
        keepalive_timeout: float = 90.0,
        scheme: str = "http",
    ) -> None:
        """Initialize the client.

        Args:
            timeout: Total per-request timeout in seconds.
            pool_size: Maximum simultaneous connections in the pool.
            keepalive_timeout: Seconds an idle pooled connection is kept.
            scheme: URL scheme prepended to every endpoint.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._pool_size = pool_size
        self._keepalive_timeout = keepalive_timeout
        self._scheme = scheme
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_config(cls, config: RunConfig) -> HttpClient:
        """Build a client using the timeout and pool size of ``config``."""
        return cls(timeout=config.timeout, pool_size=config.connection_pool_size)

    @property
    def is_open(self) -> bool:
        """Return True while the underlying session is open."""
        return self._session is not None

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        connector = aiohttp.TCPConnector(
            limit=self._pool_size,
            limit_per_host=self._pool_size,
            keepalive_timeout=self._keepalive_timeout,
        )
        self._session = aiohttp.ClientSession(timeout=self._timeout, connector=connector)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        await self.close()

    async def close(self) -> None:
        """Release pooled connections. Later calls do nothing."""
        if self._session is not None:
            session, self._session = self._session, None
            await session.close()
            logger.debug("HTTP session closed")

    def url_for(self, endpoint: str, path: str) -> str:
        """Return the absolute URL of ``path`` on ``endpoint``."""
        return f"{self._scheme}://{endpoint}{path}"

    async def get(self, endpoint: str, path: str = MESSAGES_PATH) -> HttpReply:
        """Send a GET request.

        Args:
            endpoint: Target ``host:port``.
            path: URL path on the endpoint.

        Returns:
            The reply with its body fully read.
        """
        return await self._request("GET", endpoint, path)

    async def post(
        self,
        endpoint: str,
        path: str = MESSAGES_PATH,
        payload: dict[str, Any] | None = None,
    ) -> HttpReply:
        """Send a POST request with a JSON body.

        Args:
            endpoint: Target ``host:port``.
            path: URL path on the endpoint.
            payload: JSON-serialisable body.

        Returns:
            The reply with its body fully read.
        """
        return await self._request("POST", endpoint, path, json=payload or {})

    async def _request(
        self,
        method: str,
        endpoint: str,
        path: str,
        **kwargs: Any,
    ) -> HttpReply:
        """Send a request and read the whole body before releasing the connection.

        Raises:
            RuntimeError: If the client is used outside of an async context
                manager.
            aiohttp.ClientError: On connection or protocol failure.
            TimeoutError: When the request exceeds the configured timeout.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        async with self._session.request(method, self.url_for(endpoint, path), **kwargs) as resp:
            body = await resp.read()
            return HttpReply(status=resp.status, body=body)
