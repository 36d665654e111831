"""
Auth - Session Manager

Session applicative du client CRM: état {user, is_authenticated, is_loading}
exposé au reste de l'application, avec cycle de vie:

    - initialize(): restaure la session persistée, au plus un refresh
    - vérification périodique de l'expiration (n'agit que si expiré)
    - logout(): effacement local garanti, notification serveur best-effort
    - stop(): annule la tâche périodique
"""

import asyncio
import inspect
from dataclasses import replace
from typing import Any, Callable, List, Optional

from ..api.envelope import AuthPayload
from ..logging import StructuredLogger
from .auth_service import AuthService
from .interfaces import (
    AuthState,
    IAuthSessionManager,
    RefreshFailedError,
    SessionExpiredError,
)
from .refresh_coordinator import RefreshCoordinator
from .token_store import TokenStore

Navigator = Callable[[str], Any]
StateListener = Callable[[AuthState], Any]


class AuthSessionManager(IAuthSessionManager):
    """
    Gestionnaire de la session utilisateur.

    S'enregistre auprès du coordinateur comme handler d'expiration
    définitive: la redirection vers la connexion a lieu une seule fois par
    expiration, quel que soit le nombre de requêtes en attente.

    Example:
        session = AuthSessionManager(auth_service, store, coordinator, navigator=router.push)
        async with session:
            await session.login("jane@example.com", "secret")
    """

    DEFAULT_CHECK_INTERVAL_SECONDS: float = 300.0
    DEFAULT_SIGN_IN_PATH: str = "/signin"
    DEFAULT_HOME_PATH: str = "/dashboard"

    def __init__(
        self,
        auth_service: AuthService,
        token_store: TokenStore,
        coordinator: RefreshCoordinator,
        navigator: Optional[Navigator] = None,
        check_interval_seconds: float = DEFAULT_CHECK_INTERVAL_SECONDS,
        sign_in_path: str = DEFAULT_SIGN_IN_PATH,
        home_path: str = DEFAULT_HOME_PATH,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Args:
            auth_service: Client des endpoints de session
            token_store: Persistance de session
            coordinator: Refresh single-flight partagé avec le transport
            navigator: Callable(path) pour les redirections (sync ou async)
            check_interval_seconds: Période de vérification de l'expiration
            sign_in_path: Page de connexion
            home_path: Page après login
            logger: Logger structuré (optionnel)

        Raises:
            ValueError: Période non positive
        """
        if check_interval_seconds <= 0:
            raise ValueError("check_interval_seconds must be positive")

        self._auth = auth_service
        self._store = token_store
        self._coordinator = coordinator
        self._navigator = navigator
        self._check_interval = check_interval_seconds
        self._sign_in_path = sign_in_path
        self._home_path = home_path
        self._logger = logger or StructuredLogger("pipeline-crm.session")

        self._state = AuthState()
        self._listeners: List[StateListener] = []
        self._monitor_task: Optional["asyncio.Task[None]"] = None

        self._coordinator.set_session_expired_handler(self.handle_session_expired)

    # ══════════════════════════════════════════════════════════════════════════
    # ÉTAT
    # ══════════════════════════════════════════════════════════════════════════

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def user(self):
        return self._state.user

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def check_interval_seconds(self) -> float:
        return self._check_interval

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Abonne un listener aux changements d'état.

        Returns:
            Fonction de désabonnement
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, **changes: Any) -> None:
        new_state = replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception as e:
                self._logger.error("State listener failed", error=str(e))

    # ══════════════════════════════════════════════════════════════════════════
    # CYCLE DE VIE
    # ══════════════════════════════════════════════════════════════════════════

    async def initialize(self) -> AuthState:
        """
        Restaure la session persistée.

        Cas:
            - aucun token → non authentifié
            - access token valide → authentifié
            - expiré (ou sans access token) avec refresh token → un refresh
            - expiré sans refresh token → non authentifié

        Returns:
            État final (is_loading=False)
        """
        self._set_state(is_loading=True)
        try:
            user = self._store.get_user()
            access_token = self._store.get_access_token()
            refresh_token = self._store.get_refresh_token()

            if not access_token and not refresh_token:
                self._set_state(user=None, is_authenticated=False)
            elif access_token and not self._store.is_expired():
                self._set_state(user=user, is_authenticated=True)
            elif refresh_token:
                self._set_state(user=user)
                await self.refresh_auth()
            else:
                self._set_state(user=None, is_authenticated=False)
        finally:
            self._set_state(is_loading=False)

        self._logger.info("Session initialized", authenticated=self._state.is_authenticated)
        return self._state

    async def login(self, email: str, password: str) -> AuthPayload:
        """
        Connexion puis redirection vers la page d'accueil.

        Raises:
            AuthenticationError: Identifiants refusés ou API indisponible
        """
        self._set_state(is_loading=True)
        try:
            payload = await self._auth.login(email, password)
            self._set_state(user=self._store.get_user(), is_authenticated=True)
        finally:
            self._set_state(is_loading=False)

        await self._navigate(self._home_path)
        return payload

    async def refresh_auth(self) -> bool:
        """
        Rafraîchit la session via le coordinateur (single-flight).

        Returns:
            True si la session reste utilisable
        """
        try:
            await self._coordinator.refresh()
        except SessionExpiredError:
            # État et redirection déjà traités par handle_session_expired
            return False
        except RefreshFailedError as e:
            has_token = self._store.get_access_token() is not None
            self._logger.warn("Session refresh failed", error=str(e), session_kept=has_token)
            self._set_state(is_authenticated=has_token)
            return has_token

        self._set_state(user=self._store.get_user() or self._state.user, is_authenticated=True)
        return True

    async def check_expiry(self) -> None:
        """
        Vérification périodique: n'agit que si l'access token est expiré.

        Refresh token présent → refresh; sinon → logout.
        """
        if not self._store.is_expired():
            return

        if self._store.get_refresh_token():
            self._logger.info("Access token expired, refreshing")
            await self.refresh_auth()
        elif self._state.is_authenticated or self._store.has_tokens():
            self._logger.info("Access token expired without refresh token, signing out")
            await self.logout()

    async def logout(self) -> None:
        """
        Déconnexion: notification serveur best-effort, puis effacement local,
        remise à zéro de l'état et redirection vers la connexion.
        """
        refresh_token = self._store.get_refresh_token()
        try:
            await self._auth.logout(refresh_token)
        except Exception as e:
            self._logger.warn("Logout notification failed", error=str(e))
        finally:
            self._store.clear_all()
            self._set_state(user=None, is_authenticated=False)

        self._logger.info("Signed out")
        await self._navigate(self._sign_in_path)

    async def handle_session_expired(self) -> None:
        """Handler d'expiration définitive (tokens déjà effacés)."""
        self._set_state(user=None, is_authenticated=False, is_loading=False)
        await self._navigate(self._sign_in_path)

    # ══════════════════════════════════════════════════════════════════════════
    # VÉRIFICATION PÉRIODIQUE
    # ══════════════════════════════════════════════════════════════════════════

    def start(self) -> None:
        """Démarre la vérification périodique (idempotent)."""
        if self._monitor_task is not None and not self._monitor_task.done():
            return
        self._monitor_task = asyncio.get_running_loop().create_task(self._monitor_expiry())

    @property
    def is_monitoring(self) -> bool:
        return self._monitor_task is not None and not self._monitor_task.done()

    async def stop(self) -> None:
        """Annule la vérification périodique."""
        task = self._monitor_task
        self._monitor_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _monitor_expiry(self) -> None:
        """Vérifie une première fois au démarrage, puis à chaque intervalle."""
        while True:
            if self._state.is_authenticated:
                try:
                    await self.check_expiry()
                except Exception as e:
                    self._logger.error("Expiry check failed", error=str(e))
            await asyncio.sleep(self._check_interval)

    async def _navigate(self, path: str) -> None:
        if self._navigator is None:
            self._logger.debug("No navigator configured", path=path)
            return
        result = self._navigator(path)
        if inspect.isawaitable(result):
            await result

    async def __aenter__(self) -> "AuthSessionManager":
        await self.initialize()
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
