"""
Auth - Refresh Coordinator

Refresh de token single-flight partagé par tous les appelants concurrents.

Règles:
    - Un seul appel /refresh-token en vol: le drapeau est levé AVANT le
      premier await, un second appelant ne peut pas s'intercaler.
    - Les appelants arrivés pendant un refresh attendent son résultat dans
      une file FIFO.
    - Quelle que soit l'issue, la file est vidée (résolue ou rejetée) puis
      le drapeau est baissé: aucune attente ne survit à son refresh.
    - L'expiration locale fait autorité pour forcer la déconnexion, sauf
      refus explicite du refresh token par le serveur.
"""

import asyncio
import inspect
from collections import deque
from typing import Any, Callable, Deque, Optional

from ..logging import StructuredLogger
from .auth_service import AuthService
from .interfaces import (
    IRefreshCoordinator,
    RefreshAttempt,
    RefreshFailedError,
    RefreshOutcome,
    SessionExpiredError,
)
from .token_store import TokenStore


class RefreshCoordinator(IRefreshCoordinator):
    """
    Coordinateur de refresh single-flight.

    État partagé: uniquement le drapeau "refresh en cours" et la file des
    attentes, portés par l'instance (un coordinateur par session).

    Example:
        coordinator = RefreshCoordinator(token_store, auth_service)
        coordinator.set_session_expired_handler(session.handle_session_expired)
        token = await coordinator.refresh()
    """

    def __init__(
        self,
        token_store: TokenStore,
        auth_service: AuthService,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Args:
            token_store: Persistance de session
            auth_service: Client des endpoints de session
            logger: Logger structuré (optionnel)
        """
        self._store = token_store
        self._auth = auth_service
        self._logger = logger or StructuredLogger("pipeline-crm.refresh")
        self._refreshing = False
        self._pending: Deque["asyncio.Future[str]"] = deque()
        self._on_session_expired: Optional[Callable[[], Any]] = None
        self._last_outcome: Optional[RefreshOutcome] = None
        self._refresh_count = 0

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def last_outcome(self) -> Optional[RefreshOutcome]:
        return self._last_outcome

    @property
    def refresh_count(self) -> int:
        """Nombre d'appels /refresh-token émis."""
        return self._refresh_count

    def set_session_expired_handler(self, handler: Optional[Callable[[], Any]]) -> None:
        """
        Définit le callback d'expiration définitive (sync ou async).

        Appelé une fois par refresh définitivement échoué, après effacement
        des tokens.
        """
        self._on_session_expired = handler

    async def refresh(self) -> str:
        """
        Obtient un access token à rejouer (single-flight).

        Returns:
            Nouveau token, ou token existant après un échec non définitif

        Raises:
            SessionExpiredError: Session irrécupérable, tokens effacés
            RefreshFailedError: Aucun token utilisable, session conservée
        """
        if self._refreshing:
            future: "asyncio.Future[str]" = asyncio.get_running_loop().create_future()
            self._pending.append(future)
            self._logger.debug("Refresh in flight, request queued", queue_size=len(self._pending))
            return await future

        # Levé avant tout await
        self._refreshing = True
        token: Optional[str] = None
        failure: Optional[BaseException] = None
        try:
            token = await self._run_refresh()
        except BaseException as e:
            failure = e
            raise
        finally:
            self._drain(token, failure)
            self._refreshing = False
        return token

    async def _run_refresh(self) -> str:
        refresh_token = self._store.get_refresh_token()
        if not refresh_token:
            self._last_outcome = RefreshOutcome.MISSING_TOKEN
            await self._expire_session("no refresh token")

        self._refresh_count += 1
        attempt = await self._auth.refresh_token(refresh_token)
        self._last_outcome = attempt.outcome

        if attempt.outcome == RefreshOutcome.SUCCESS:
            tokens = self._store.save_session(attempt.payload)
            self._logger.info(
                "Token refreshed",
                user_id=attempt.payload.user_id,
                expires_in=attempt.payload.expires_in,
            )
            return tokens.access_token

        if attempt.outcome == RefreshOutcome.REJECTED:
            await self._expire_session(f"refresh rejected (HTTP {attempt.status_code})")

        if self._store.is_expired():
            await self._expire_session(f"refresh {attempt.outcome.value} and access token expired")

        return self._fallback_to_existing(attempt)

    def _fallback_to_existing(self, attempt: RefreshAttempt) -> str:
        """
        Échec non définitif: on continue avec l'access token existant.

        Raises:
            RefreshFailedError: Aucun access token stocké
        """
        existing = self._store.get_access_token()
        if not existing:
            self._logger.warn(
                "Refresh failed and no access token to fall back to",
                outcome=attempt.outcome.value,
                status_code=attempt.status_code,
            )
            raise RefreshFailedError(attempt.message or "Refresh failed")

        self._logger.warn(
            "Refresh failed, continuing with existing access token",
            outcome=attempt.outcome.value,
            status_code=attempt.status_code,
            detail=attempt.message,
        )
        return existing

    async def _expire_session(self, reason: str) -> None:
        """
        Échec définitif: efface la session, notifie, lève SessionExpiredError.

        Raises:
            SessionExpiredError: Toujours
        """
        self._store.clear_all()
        self._logger.warn("Session expired, signing out", reason=reason)

        handler = self._on_session_expired
        if handler is not None:
            try:
                result = handler()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._logger.error("Session expired handler failed", error=str(e))

        raise SessionExpiredError(reason)

    def _drain(self, token: Optional[str], failure: Optional[BaseException]) -> None:
        """Résout (ou rejette) toutes les attentes, dans l'ordre d'arrivée."""
        if not self._pending:
            return

        if failure is not None and not isinstance(failure, Exception):
            # Annulation du refresh: les attentes sont rejetées avec une erreur
            # non définitive, la session n'est pas touchée.
            failure = RefreshFailedError("Refresh cancelled")

        count = len(self._pending)
        while self._pending:
            future = self._pending.popleft()
            if future.done():
                continue
            if failure is not None:
                future.set_exception(failure)
            else:
                future.set_result(token)

        self._logger.debug(
            "Refresh queue drained",
            queue_size=count,
            rejected=failure is not None,
        )
