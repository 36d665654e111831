"""
Tests unitaires Network

Requêtes immuables, timeouts et transport httpx (httpx.MockTransport).
"""

import json

import httpx
import pytest

from pipeline_crm.network import (
    AUTHORIZATION_HEADER,
    HttpRequest,
    HttpResponse,
    HttpxTransport,
    InvalidTimeoutError,
    ITransport,
    TimeoutConfig,
    TransportError,
)

BASE_URL = "https://crm.test"


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))


# ══════════════════════════════════════════════════════════════════════════════
# TESTS TIMEOUTS
# ══════════════════════════════════════════════════════════════════════════════


class TestTimeoutConfig:
    """Limites des timeouts."""

    def test_defaults(self):
        config = TimeoutConfig()
        assert config.connection_timeout == 10.0
        assert config.request_timeout == 30.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"connection_timeout": 0},
            {"connection_timeout": 11},
            {"request_timeout": -1},
            {"request_timeout": 31},
        ],
    )
    def test_out_of_bounds_raises(self, kwargs):
        with pytest.raises(InvalidTimeoutError):
            TimeoutConfig(**kwargs)


# ══════════════════════════════════════════════════════════════════════════════
# TESTS REQUÊTE / RÉPONSE
# ══════════════════════════════════════════════════════════════════════════════


class TestHttpRequest:
    """Requête immuable."""

    def test_with_bearer_returns_copy(self):
        request = HttpRequest("GET", "/api/Leads")
        authorized = request.with_bearer("abc")

        assert request.headers == {}
        assert authorized.headers[AUTHORIZATION_HEADER] == "Bearer abc"
        assert authorized.bearer_token() == "abc"

    def test_with_header_replaces_case_insensitively(self):
        request = HttpRequest("GET", "/x", headers={"authorization": "Bearer old"})
        updated = request.with_bearer("new")

        assert updated.bearer_token() == "new"
        assert len(updated.headers) == 1

    def test_bearer_token_absent(self):
        assert HttpRequest("GET", "/x").bearer_token() is None
        assert HttpRequest("GET", "/x", headers={"Authorization": "Basic abc"}).bearer_token() is None

    def test_mark_retried(self):
        request = HttpRequest("GET", "/x")
        retried = request.mark_retried()
        assert request.retried is False
        assert retried.retried is True


class TestHttpResponse:
    """Réponse HTTP."""

    def test_status_helpers(self):
        assert HttpResponse(204).is_success is True
        assert HttpResponse(503).is_server_error is True
        assert HttpResponse(401).is_success is False

    def test_json(self):
        response = HttpResponse(200, b'{"isSuccess": true}')
        assert response.json() == {"isSuccess": True}

    def test_json_empty_body_raises(self):
        with pytest.raises(ValueError):
            HttpResponse(200).json()

    def test_json_invalid_raises(self):
        with pytest.raises(ValueError):
            HttpResponse(200, b"<html>").json()


# ══════════════════════════════════════════════════════════════════════════════
# TESTS TRANSPORT HTTPX
# ══════════════════════════════════════════════════════════════════════════════


class TestHttpxTransport:
    """Transport httpx."""

    def test_implements_interface(self):
        transport = HttpxTransport(BASE_URL, client=make_client(lambda r: httpx.Response(200)))
        assert isinstance(transport, ITransport)

    @pytest.mark.asyncio
    async def test_send_forwards_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"isSuccess": True})

        transport = HttpxTransport(BASE_URL, client=make_client(handler))
        request = HttpRequest("POST", "/api/Leads", params={"page": 1}, json={"name": "Acme"}).with_bearer("abc")

        response = await transport.send(request)

        assert response.status_code == 201
        assert response.json() == {"isSuccess": True}
        assert response.request is request
        assert seen["method"] == "POST"
        assert seen["url"] == "https://crm.test/api/Leads?page=1"
        assert seen["auth"] == "Bearer abc"
        assert seen["body"] == {"name": "Acme"}

    @pytest.mark.asyncio
    async def test_http_errors_are_responses(self):
        """401 et 5xx ne lèvent pas."""
        transport = HttpxTransport(BASE_URL, client=make_client(lambda r: httpx.Response(500)))
        response = await transport.send(HttpRequest("GET", "/api/Leads"))
        assert response.status_code == 500

    @pytest.mark.asyncio
    async def test_network_error_raises_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = HttpxTransport(BASE_URL, client=make_client(handler))

        with pytest.raises(TransportError) as exc_info:
            await transport.send(HttpRequest("GET", "/api/Leads"))

        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_aclose_keeps_injected_client_open(self):
        client = make_client(lambda r: httpx.Response(200))
        transport = HttpxTransport(BASE_URL, client=client)

        await transport.aclose()

        assert client.is_closed is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        async with HttpxTransport(BASE_URL, TimeoutConfig(5, 20)) as transport:
            assert transport.timeout_config.request_timeout == 20
        assert transport._client.is_closed is True
