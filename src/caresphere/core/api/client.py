"""CareSphere API client

Single choke point for every outbound call to the CareSphere backend. The
client attaches bearer credentials, retries transient failures a bounded
number of times, refreshes an expired access token once per call, and maps
every failure onto the APIError taxonomy.

Usage:
    async with APIClient(base_url, credential_store=store) as client:
        user = await client.request(Endpoints.Auth.PROFILE, response_type=User)
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Union

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from caresphere.configuration.settings import (
    ACCESS_TOKEN_ACCOUNT,
    DEFAULT_API_BASE_URL,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RESOURCE_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    REFRESH_TOKEN_ACCOUNT,
)
from caresphere.core.api.coding import (
    decode_response,
    encode_body,
    encode_json,
    extract_error_message,
)
from caresphere.core.api.endpoints import Endpoint, Endpoints
from caresphere.core.api.models import RefreshTokenRequest, RefreshTokenResponse
from caresphere.core.api.transport import (
    AiohttpTransport,
    OutboundRequest,
    Transport,
    TransportResponse,
)
from caresphere.core.base import CareSphereComponent, ComponentState
from caresphere.core.exceptions import (
    APIError,
    CredentialStoreError,
    ForbiddenError,
    NoConnectionError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnauthorizedError,
    UnknownAPIError,
)
from caresphere.infrastructure.credential_manager import (
    CredentialStore,
    MemoryCredentialStore,
    mask_token,
)

if TYPE_CHECKING:
    from caresphere.configuration.config_manager import APIConfiguration

logger = logging.getLogger(__name__)


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass(frozen=True)
class CredentialPair:
    access_token: str
    refresh_token: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"CredentialPair(access_token={mask_token(self.access_token)}, "
            f"refresh_token={mask_token(self.refresh_token) if self.refresh_token else None})"
        )


@dataclass
class RetryState:
    """Per-call bookkeeping; never shared between logical calls."""

    attempt_number: int = 1
    has_refreshed_once: bool = False


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, APIError) and error.transient


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        # HTTP-date form is not interpreted
        return None


class APIClient(CareSphereComponent):
    """Authenticated, retrying JSON client for the CareSphere REST API.

    Construct one per process at startup and hand it to every service.

    Attributes:
        base_url: Backend base URL every Endpoint is joined with
        max_attempts: Attempts per logical call for transient failures
        retry_delay: Fixed delay between attempts (seconds)
        request_timeout: Connect / socket read timeout (seconds)
        resource_timeout: Whole-exchange timeout (seconds)
    """

    MAX_ATTEMPTS = DEFAULT_MAX_ATTEMPTS
    RETRY_DELAY = DEFAULT_RETRY_DELAY
    REQUEST_TIMEOUT = DEFAULT_REQUEST_TIMEOUT
    RESOURCE_TIMEOUT = DEFAULT_RESOURCE_TIMEOUT

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        credential_store: Optional[CredentialStore] = None,
        transport: Optional[Transport] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        request_timeout: Optional[float] = None,
        resource_timeout: Optional[float] = None,
    ):
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts if max_attempts is not None else self.MAX_ATTEMPTS
        self.retry_delay = retry_delay if retry_delay is not None else self.RETRY_DELAY
        self.request_timeout = request_timeout or self.REQUEST_TIMEOUT
        self.resource_timeout = resource_timeout or self.RESOURCE_TIMEOUT

        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._store = credential_store if credential_store is not None else MemoryCredentialStore()
        self._transport = transport or AiohttpTransport(
            request_timeout=self.request_timeout,
            resource_timeout=self.resource_timeout,
        )

        self._credentials: Optional[CredentialPair] = None
        self._refresh_lock = asyncio.Lock()
        self._online = True
        self._in_flight = 0

        self._load_credentials()

    @classmethod
    def from_config(
        cls,
        config: "APIConfiguration",
        credential_store: Optional[CredentialStore] = None,
        transport: Optional[Transport] = None,
    ) -> "APIClient":
        return cls(
            base_url=config.base_url,
            credential_store=credential_store,
            transport=transport,
            max_attempts=config.max_attempts,
            retry_delay=config.retry_delay,
            request_timeout=config.request_timeout,
            resource_timeout=config.resource_timeout,
        )

    # ------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------

    async def __aenter__(self) -> "APIClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.cleanup()

    async def initialize(self) -> None:
        if self.is_available():
            return
        self._set_state(ComponentState.INITIALIZING)
        try:
            await self._transport.open()
        except Exception as e:
            self._error = e
            self._set_state(ComponentState.ERROR)
            logger.error(f"APIClient initialization failed: {e}", exc_info=True)
            raise
        self._set_state(ComponentState.READY)
        logger.info("APIClient ready", extra={"base_url": self.base_url})

    async def cleanup(self) -> None:
        if self._state == ComponentState.TERMINATED:
            return
        self._set_state(ComponentState.TERMINATING)
        try:
            await self._transport.close()
        except Exception as e:
            logger.error(f"APIClient cleanup error: {e}", extra={"error_type": type(e).__name__})
        self._set_state(ComponentState.TERMINATED)

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        status.update(
            {
                "base_url": self.base_url,
                "is_authenticated": self.is_authenticated,
                "is_online": self.is_online,
                "in_flight": self._in_flight,
            }
        )
        return status

    # ------------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self._credentials is not None

    @property
    def credentials(self) -> Optional[CredentialPair]:
        return self._credentials

    def set_credentials(self, access: str, refresh: Optional[str] = None) -> None:
        """Adopt a new credential pair and mirror it to the credential store.

        Never raises. Persistence is best effort: a store failure is logged
        and the in-memory credentials stay in effect for this process.
        """
        self._credentials = CredentialPair(access, refresh)
        self._persist_credentials()
        logger.debug(
            "Credentials updated",
            extra={"access_token": mask_token(access), "has_refresh_token": refresh is not None},
        )

    def clear_credentials(self) -> None:
        """Forget both tokens; later calls are sent unauthenticated."""
        self._credentials = None
        self._persist_credentials()
        logger.info("Credentials cleared")

    def _load_credentials(self) -> None:
        try:
            access = self._store.get(ACCESS_TOKEN_ACCOUNT)
            refresh = self._store.get(REFRESH_TOKEN_ACCOUNT)
        except CredentialStoreError as e:
            logger.warning(f"Could not load stored credentials: {e}", extra={"error_code": e.error_code})
            return

        if access:
            self._credentials = CredentialPair(access, refresh)
            logger.debug("Restored stored credentials")

    def _persist_credentials(self) -> None:
        credentials = self._credentials
        try:
            if credentials is None:
                self._store.delete(ACCESS_TOKEN_ACCOUNT)
                self._store.delete(REFRESH_TOKEN_ACCOUNT)
                return

            self._store.set(ACCESS_TOKEN_ACCOUNT, credentials.access_token)
            if credentials.refresh_token:
                self._store.set(REFRESH_TOKEN_ACCOUNT, credentials.refresh_token)
            else:
                self._store.delete(REFRESH_TOKEN_ACCOUNT)
        except CredentialStoreError as e:
            logger.warning(f"Could not persist credentials: {e}", extra={"error_code": e.error_code})

    # ------------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------------

    @property
    def is_online(self) -> bool:
        return self._online

    @is_online.setter
    def is_online(self, value: bool) -> None:
        if value != self._online:
            logger.info("Connectivity changed", extra={"is_online": value})
        self._online = value

    @property
    def is_loading(self) -> bool:
        """True while at least one logical call is in flight."""
        return self._in_flight > 0

    # ------------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------------

    async def request(
        self,
        endpoint: Union[Endpoint, str],
        method: Union[HTTPMethod, str] = HTTPMethod.GET,
        body: Any = None,
        response_type: Optional[Callable[..., Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Perform one logical call.

        Args:
            endpoint: Endpoint (or path) joined with the base URL
            method: HTTP method
            body: JSON-serializable request body (dicts, lists, objects with
                to_dict(), dataclasses); None sends no body
            response_type: Class with from_dict() or callable applied to the
                decoded payload; None returns the parsed JSON
            headers: Extra headers layered over the defaults

        Returns:
            Any: Decoded response

        Raises:
            NoConnectionError: offline at call start (nothing is sent)
            InvalidURLError: endpoint does not resolve to an absolute URL
            EncodingError: body is not JSON serializable
            APIError: any other failure, see caresphere.core.exceptions
        """
        method = HTTPMethod(method)

        if not self._online:
            raise NoConnectionError()

        if isinstance(endpoint, str):
            endpoint = Endpoint(endpoint)
        url = endpoint.url_for(self.base_url)
        payload = encode_body(body)

        state = RetryState()
        self._in_flight += 1
        try:
            response = await self._send_with_retry(method, url, payload, headers or {}, state)
        finally:
            self._in_flight -= 1

        return decode_response(response.body, response_type, response.status)

    async def _send_with_retry(
        self,
        method: HTTPMethod,
        url: str,
        payload: Optional[bytes],
        headers: Dict[str, str],
        state: RetryState,
    ) -> TransportResponse:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        response = None
        async for attempt in retrying:
            with attempt:
                state.attempt_number = attempt.retry_state.attempt_number
                response = await self._attempt(method, url, payload, headers, state)
        return response

    async def _attempt(
        self,
        method: HTTPMethod,
        url: str,
        payload: Optional[bytes],
        headers: Dict[str, str],
        state: RetryState,
    ) -> TransportResponse:
        """One attempt, including the single refresh-and-resend on 401."""
        while True:
            access_token = self._credentials.access_token if self._credentials else None
            request = self._build_request(method, url, payload, headers, access_token)

            logger.debug(
                f"{method.value} {url}",
                extra={
                    "attempt": state.attempt_number,
                    "authenticated": access_token is not None,
                },
            )
            response = await self._send(request)

            if 200 <= response.status < 300:
                return response

            if response.status == 401:
                if self._can_refresh(state):
                    state.has_refreshed_once = True
                    if await self._refresh_credentials(access_token):
                        continue
                self.clear_credentials()
                raise UnauthorizedError(status_code=401)

            raise self._error_for_status(response)

    async def _send(self, request: OutboundRequest) -> TransportResponse:
        try:
            return await self._transport.send(request)
        except APIError:
            raise
        except Exception as e:
            raise UnknownAPIError(cause=e) from e

    def _build_request(
        self,
        method: HTTPMethod,
        url: str,
        payload: Optional[bytes],
        headers: Dict[str, str],
        access_token: Optional[str],
    ) -> OutboundRequest:
        request_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if access_token:
            request_headers["Authorization"] = f"Bearer {access_token}"
        request_headers.update(headers)
        return OutboundRequest(method=method.value, url=url, headers=request_headers, body=payload)

    def _can_refresh(self, state: RetryState) -> bool:
        return (
            not state.has_refreshed_once
            and self._credentials is not None
            and self._credentials.refresh_token is not None
        )

    @staticmethod
    def _error_for_status(response: TransportResponse) -> APIError:
        status = response.status
        if status == 403:
            return ForbiddenError(status_code=status)
        if status == 404:
            return NotFoundError(status_code=status)
        if status == 429:
            return RateLimitError(
                retry_after=_parse_retry_after(response.header("Retry-After")),
                status_code=status,
            )
        # 5xx comes back transient, everything else is terminal
        return ServerError(status, extract_error_message(response.body))

    # ------------------------------------------------------------------------
    # Token refresh
    # ------------------------------------------------------------------------

    async def _refresh_credentials(self, stale_token: Optional[str]) -> bool:
        """Refresh the access token, collapsing concurrent refreshes into one.

        Args:
            stale_token: Access token the failed request was sent with

        Returns:
            bool: True when a usable access token is now held
        """
        async with self._refresh_lock:
            current = self._credentials
            if current is not None and current.access_token != stale_token:
                logger.debug("Using access token refreshed by a concurrent call")
                return True
            if current is None or not current.refresh_token:
                return False

            try:
                tokens = await self._perform_refresh(current.refresh_token)
            except APIError as e:
                logger.warning(f"Token refresh failed: {e}", extra={"error_code": e.error_code})
                self.clear_credentials()
                return False

            self.set_credentials(tokens.access_token, tokens.refresh_token or current.refresh_token)
            logger.info("Access token refreshed")
            return True

    async def _perform_refresh(self, refresh_token: str) -> RefreshTokenResponse:
        """POST the refresh token, unauthenticated.

        Raises:
            APIError: non-2xx status, transport failure or undecodable body
        """
        request = OutboundRequest(
            method=HTTPMethod.POST.value,
            url=Endpoints.Auth.REFRESH.url_for(self.base_url),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            body=encode_json(RefreshTokenRequest(refresh_token)),
        )
        response = await self._send(request)

        if not 200 <= response.status < 300:
            if response.status == 401:
                raise UnauthorizedError(status_code=401)
            raise ServerError(response.status, extract_error_message(response.body))

        return decode_response(response.body, RefreshTokenResponse, response.status)

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} "
            f"base_url={self.base_url} "
            f"authenticated={self.is_authenticated} "
            f"state={self._state.value}>"
        )
