"""HTTP transport for the API client

The client talks to the network only through the Transport interface: one
OutboundRequest in, one TransportResponse out, or a taxonomy error when no
HTTP response was received. AiohttpTransport is the production
implementation.
"""

import asyncio
import logging
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import aiohttp
import certifi

from caresphere.configuration.settings import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RESOURCE_TIMEOUT,
    USER_AGENT,
)
from caresphere.core.exceptions import (
    APIError,
    InvalidURLError,
    NoConnectionError,
    RequestTimeoutError,
    TransportError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundRequest:
    """One attempt of a logical call. Built fresh for every attempt."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None


@dataclass(frozen=True)
class TransportResponse:
    status: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class Transport(ABC):
    """Network primitive used by APIClient."""

    @abstractmethod
    async def send(self, request: OutboundRequest) -> TransportResponse:
        """Send ``request`` and return the HTTP response.

        Raises:
            APIError: no HTTP response was received. Failures worth another
                attempt (timeouts, refused or dropped connections) are raised
                with ``transient=True``.
        """

    async def open(self) -> None:
        """Acquire network resources ahead of the first request."""

    async def close(self) -> None:
        """Release network resources."""


class AiohttpTransport(Transport):
    """Transport backed by an aiohttp ClientSession.

    The session is created lazily on first use and reused for every request.
    Timeouts are fixed at construction: ``request_timeout`` bounds connecting
    and each socket read, ``resource_timeout`` bounds the whole exchange.
    """

    DNS_TTL = 300

    def __init__(
        self,
        request_timeout: Optional[float] = None,
        resource_timeout: Optional[float] = None,
        user_agent: str = USER_AGENT,
    ):
        self.request_timeout = request_timeout or DEFAULT_REQUEST_TIMEOUT
        self.resource_timeout = resource_timeout or DEFAULT_RESOURCE_TIMEOUT
        self.user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    # ------------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------------

    async def open(self) -> None:
        await self._ensure_session()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                total=self.resource_timeout,
                sock_connect=self.request_timeout,
                sock_read=self.request_timeout,
            )
            # limit=0: concurrent calls are not capped by the client
            connector = aiohttp.TCPConnector(
                ssl=self._create_ssl_context(),
                limit=0,
                ttl_dns_cache=self.DNS_TTL,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                headers={"User-Agent": self.user_agent},
                trust_env=True,
            )
            logger.debug(
                "HTTP session opened",
                extra={
                    "request_timeout": self.request_timeout,
                    "resource_timeout": self.resource_timeout,
                },
            )
        return self._session

    def _create_ssl_context(self) -> ssl.SSLContext:
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        ssl_context.check_hostname = True
        ssl_context.verify_mode = ssl.CERT_REQUIRED
        ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2
        return ssl_context

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.debug("HTTP session closed")

    @property
    def is_open(self) -> bool:
        return self._session is not None and not self._session.closed

    # ------------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------------

    async def send(self, request: OutboundRequest) -> TransportResponse:
        session = await self._ensure_session()

        try:
            async with session.request(
                method=request.method,
                url=request.url,
                headers=request.headers,
                data=request.body,
            ) as response:
                body = await response.read()
                return TransportResponse(
                    status=response.status,
                    body=body,
                    headers=dict(response.headers),
                )
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(transient=True, cause=e) from e
        except aiohttp.ClientError as e:
            raise self._map_client_error(e, request.url) from e

    @staticmethod
    def _map_client_error(error: aiohttp.ClientError, url: str) -> APIError:
        """Map an aiohttp failure onto the error taxonomy.

        Args:
            error: aiohttp exception
            url: Request URL, for the error details

        Returns:
            APIError: transient for refused or dropped connections
        """
        if isinstance(error, aiohttp.InvalidURL):
            return InvalidURLError(url=url, cause=error)
        if isinstance(error, aiohttp.ClientConnectorError):
            # host unreachable / connection refused
            return TransportError(transient=True, cause=error, details={"url": url})
        if isinstance(error, (aiohttp.ServerDisconnectedError, aiohttp.ClientOSError)):
            # connection lost mid-request
            return NoConnectionError(transient=True, cause=error, details={"url": url})
        if isinstance(error, aiohttp.ClientConnectionError):
            return TransportError(transient=True, cause=error, details={"url": url})
        return TransportError(cause=error, details={"url": url})
