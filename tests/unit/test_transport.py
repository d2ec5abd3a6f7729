"""AiohttpTransport tests

HTTP is mocked with aioresponses.
"""

import asyncio

import aiohttp
import pytest
import pytest_asyncio
from aioresponses import aioresponses
from yarl import URL

from caresphere.core.api.client import APIClient
from caresphere.core.api.transport import AiohttpTransport, OutboundRequest, TransportResponse
from caresphere.core.exceptions import (
    InvalidURLError,
    NoConnectionError,
    RequestTimeoutError,
    ServerError,
    TransportError,
)

URL_MEMBERS = "https://api.example.com/members"


@pytest_asyncio.fixture
async def http_transport():
    transport = AiohttpTransport(request_timeout=5, resource_timeout=10)
    yield transport
    await transport.close()


# ============================================================================
# TransportResponse
# ============================================================================


@pytest.mark.unit
class TestTransportResponse:
    """Response value"""

    def test_header_lookup_is_case_insensitive(self):
        response = TransportResponse(status=429, headers={"Retry-After": "5"})

        assert response.header("retry-after") == "5"
        assert response.header("RETRY-AFTER") == "5"
        assert response.header("X-Missing") is None


# ============================================================================
# AiohttpTransport
# ============================================================================


@pytest.mark.unit
class TestAiohttpTransport:
    """aiohttp-backed transport"""

    def test_defaults(self):
        transport = AiohttpTransport()

        assert transport.request_timeout == 30.0
        assert transport.resource_timeout == 60.0
        assert transport.is_open is False

    @pytest.mark.asyncio
    async def test_session_lifecycle(self, http_transport):
        await http_transport.open()
        assert http_transport.is_open is True

        await http_transport.close()
        assert http_transport.is_open is False

    @pytest.mark.asyncio
    async def test_send(self, http_transport):
        with aioresponses() as mocked:
            mocked.post(URL_MEMBERS, status=201, payload={"id": "m-1"}, headers={"X-Request-Id": "r-1"})

            response = await http_transport.send(
                OutboundRequest(
                    method="POST",
                    url=URL_MEMBERS,
                    headers={"Content-Type": "application/json"},
                    body=b'{"firstName":"Ada"}',
                )
            )

            assert response.status == 201
            assert response.body == b'{"id": "m-1"}'
            assert response.header("x-request-id") == "r-1"

            call = mocked.requests[("POST", URL(URL_MEMBERS))][0]
            assert call.kwargs["data"] == b'{"firstName":"Ada"}'
            assert call.kwargs["headers"]["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_error_status_is_returned_not_raised(self, http_transport):
        with aioresponses() as mocked:
            mocked.get(URL_MEMBERS, status=503, body="unavailable")

            response = await http_transport.send(OutboundRequest(method="GET", url=URL_MEMBERS))

            assert response.status == 503
            assert response.body == b"unavailable"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exception, error_class, transient",
        [
            (asyncio.TimeoutError(), RequestTimeoutError, True),
            (aiohttp.ServerDisconnectedError(), NoConnectionError, True),
            (aiohttp.ClientOSError(), NoConnectionError, True),
            (aiohttp.ClientConnectionError("refused"), TransportError, True),
            (aiohttp.ClientPayloadError("truncated"), TransportError, False),
            (aiohttp.InvalidURL("https://"), InvalidURLError, False),
        ],
    )
    async def test_failure_mapping(self, http_transport, exception, error_class, transient):
        with aioresponses() as mocked:
            mocked.get(URL_MEMBERS, exception=exception)

            with pytest.raises(error_class) as exc_info:
                await http_transport.send(OutboundRequest(method="GET", url=URL_MEMBERS))

            assert exc_info.value.transient is transient
            assert exc_info.value.cause is exception


# ============================================================================
# APIClient over aiohttp
# ============================================================================


@pytest.mark.unit
class TestClientOverAiohttp:
    """APIClient end to end with the real transport"""

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        client = APIClient(base_url="https://api.example.com", retry_delay=0)

        with aioresponses() as mocked:
            mocked.get(URL_MEMBERS, status=502)
            mocked.get(URL_MEMBERS, exception=aiohttp.ServerDisconnectedError())
            mocked.get(URL_MEMBERS, status=200, payload={"success": True, "data": [{"id": "m-1"}]})

            async with client:
                result = await client.request("/members")

        assert result == [{"id": "m-1"}]

    @pytest.mark.asyncio
    async def test_server_error_after_exhausting_attempts(self):
        client = APIClient(base_url="https://api.example.com", retry_delay=0)

        with aioresponses() as mocked:
            for _ in range(3):
                mocked.get(URL_MEMBERS, status=500, payload={"message": "Database unavailable"})

            async with client:
                with pytest.raises(ServerError) as exc_info:
                    await client.request("/members")

        assert exc_info.value.status_code == 500
        assert exc_info.value.server_message == "Database unavailable"
