"""
Network - HTTPX Transport

Transport HTTP asynchrone basé sur httpx.AsyncClient.
"""

from typing import Optional

import httpx

from .interfaces import HttpRequest, HttpResponse, ITransport, TimeoutConfig, TransportError


class HttpxTransport(ITransport):
    """
    Transport HTTP vers l'API CRM.

    Les codes HTTP (y compris 401/5xx) sont renvoyés comme réponses; seules
    les erreurs réseau lèvent TransportError.

    Example:
        async with HttpxTransport("https://crm.example.com") as transport:
            response = await transport.send(HttpRequest("GET", "/api/Leads"))
    """

    DEFAULT_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}

    def __init__(
        self,
        base_url: str,
        timeout_config: Optional[TimeoutConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Args:
            base_url: URL de base de l'API
            timeout_config: Timeouts connexion/requête
            client: Client httpx existant (tests: httpx.MockTransport)
        """
        self._timeouts = timeout_config or TimeoutConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=self.DEFAULT_HEADERS,
            timeout=httpx.Timeout(
                self._timeouts.request_timeout,
                connect=self._timeouts.connection_timeout,
            ),
        )

    @property
    def timeout_config(self) -> TimeoutConfig:
        return self._timeouts

    async def send(self, request: HttpRequest) -> HttpResponse:
        """
        Envoie la requête via httpx.

        Raises:
            TransportError: httpx.RequestError (connexion, timeout, protocole)
        """
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                params=request.params,
                json=request.json,
            )
        except httpx.RequestError as e:
            raise TransportError(
                f"{type(e).__name__} on {request.method} {request.url}: {e}", cause=e
            ) from e

        return HttpResponse(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
            request=request,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
