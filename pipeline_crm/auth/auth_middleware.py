"""
Auth - Authenticated Transport

Décorateur de transport qui:
    1. attache le Bearer courant à chaque requête sortante;
    2. sur 401, délègue la récupération au RefreshCoordinator;
    3. rejoue la requête d'origine une seule fois avec le token obtenu.

Un second 401 après rejeu est renvoyé tel quel à l'appelant.
"""

import uuid
from typing import Optional

from ..logging import StructuredLogger
from ..network.interfaces import CORRELATION_HEADER, HttpRequest, HttpResponse, ITransport
from .interfaces import IRefreshCoordinator, RefreshFailedError, SessionExpiredError
from .token_store import TokenStore

UNAUTHORIZED = 401


class AuthenticatedTransport(ITransport):
    """
    Transport avec injection du token et récupération transparente des 401.

    Example:
        transport = AuthenticatedTransport(HttpxTransport(url), store, coordinator)
        response = await transport.send(HttpRequest("GET", "/api/Leads"))
    """

    def __init__(
        self,
        inner: ITransport,
        token_store: TokenStore,
        coordinator: IRefreshCoordinator,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Args:
            inner: Transport réel
            token_store: Source de l'access token courant
            coordinator: Refresh single-flight
            logger: Logger structuré (optionnel)
        """
        self._inner = inner
        self._store = token_store
        self._coordinator = coordinator
        self._logger = logger or StructuredLogger("pipeline-crm.http")

    def authorize(self, request: HttpRequest) -> HttpRequest:
        """
        Phase requête: Bearer courant + identifiant de corrélation.

        Sans token stocké, la requête part sans Authorization (appel anonyme).
        """
        if request.header(CORRELATION_HEADER) is None:
            request = request.with_header(CORRELATION_HEADER, str(uuid.uuid4()))
        token = self._store.get_access_token()
        if token:
            request = request.with_bearer(token)
        return request

    async def send(self, request: HttpRequest) -> HttpResponse:
        """
        Envoie la requête, avec au plus un rejeu après 401.

        Raises:
            TransportError: Erreur réseau du transport réel
        """
        request = self.authorize(request)
        log = self._logger.with_context(request.header(CORRELATION_HEADER))

        response = await self._inner.send(request)
        if response.status_code != UNAUTHORIZED:
            return response

        if request.retried:
            log.warn("Unauthorized after retry, giving up", method=request.method, url=request.url)
            return response

        token = self._store.get_access_token()
        sent_with = request.bearer_token()
        if not self._store.has_tokens():
            # Session absente ou déjà effacée: rien à rafraîchir
            log.debug("Unauthorized without session, returning response", method=request.method, url=request.url)
            return response

        if token and token != sent_with:
            # Un refresh a abouti pendant que cette requête était en vol
            log.debug("Access token changed while in flight, replaying", method=request.method, url=request.url)
            return await self._inner.send(request.with_bearer(token).mark_retried())

        try:
            token = await self._coordinator.refresh()
        except SessionExpiredError:
            log.info("Session expired, returning original response", method=request.method, url=request.url)
            return response
        except RefreshFailedError as e:
            log.warn("Refresh failed, returning original response", method=request.method, url=request.url, error=str(e))
            return response

        log.debug("Replaying request after refresh", method=request.method, url=request.url)
        return await self._inner.send(request.with_bearer(token).mark_retried())

    async def aclose(self) -> None:
        await self._inner.aclose()
