"""
Auth - Auth Service

Appels aux endpoints de session (/login, /refresh-token, /logout).

Utilise le transport brut: un 401 sur /login signifie "identifiants
refusés", jamais "token à rafraîchir".
"""

from dataclasses import dataclass
from typing import Optional

from ..api.envelope import (
    NETWORK_FAILURE_MESSAGE,
    PARSE_FAILURE_MESSAGE,
    AuthPayload,
    parse_envelope,
)
from ..logging import StructuredLogger
from ..network.interfaces import HttpRequest, ITransport, TransportError
from .interfaces import (
    AuthenticationError,
    RefreshAttempt,
    RefreshOutcome,
    UserProfile,
)
from .token_store import TokenStore

# Statuts par lesquels /refresh-token refuse explicitement le refresh token
REJECTION_STATUSES = frozenset({400, 401, 403})


@dataclass(frozen=True)
class AuthEndpoints:
    """Chemins des endpoints de session."""

    login_path: str = "/api/Auth/login"
    refresh_path: str = "/api/Auth/refresh-token"
    logout_path: str = "/api/Auth/logout"


class AuthService:
    """
    Client des endpoints de session.

    Example:
        service = AuthService(transport, token_store)
        payload = await service.login("jane@example.com", "secret")
        service.is_authenticated()  # True
    """

    def __init__(
        self,
        transport: ITransport,
        token_store: TokenStore,
        endpoints: Optional[AuthEndpoints] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Args:
            transport: Transport brut (sans injection de Bearer)
            token_store: Persistance de session
            endpoints: Chemins des endpoints de session
            logger: Logger structuré (optionnel)
        """
        self._transport = transport
        self._store = token_store
        self._endpoints = endpoints or AuthEndpoints()
        self._logger = logger or StructuredLogger("pipeline-crm.auth")

    @property
    def endpoints(self) -> AuthEndpoints:
        return self._endpoints

    async def login(self, email: str, password: str) -> AuthPayload:
        """
        Connexion et persistance de la session.

        Args:
            email: Email de connexion
            password: Mot de passe

        Returns:
            AuthPayload avec tokens et profil

        Raises:
            AuthenticationError: Identifiants refusés, réseau, réponse illisible
        """
        if not email or not password:
            raise AuthenticationError("Email and password are required")

        request = HttpRequest(
            "POST",
            self._endpoints.login_path,
            json={"email": email, "password": password},
        )
        try:
            response = await self._transport.send(request)
        except TransportError as e:
            self._logger.warn("Login failed: network error", error=str(e))
            raise AuthenticationError(NETWORK_FAILURE_MESSAGE) from e

        envelope = parse_envelope(response)
        if envelope is None:
            raise AuthenticationError(
                PARSE_FAILURE_MESSAGE if response.is_success else f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if not response.is_success or not envelope.is_success:
            message = envelope.first_error() or "Login failed"
            self._logger.info("Login refused", status_code=response.status_code, email=email)
            raise AuthenticationError(message, envelope.errors, response.status_code)

        try:
            payload = AuthPayload.model_validate(envelope.data or {})
        except ValueError as e:
            raise AuthenticationError(PARSE_FAILURE_MESSAGE, status_code=response.status_code) from e

        if not payload.has_tokens():
            raise AuthenticationError("Login response did not include tokens", status_code=response.status_code)

        self._store.save_session(payload)
        self._logger.info("Login succeeded", user_id=payload.user_id, expires_in=payload.expires_in)
        return payload

    async def refresh_token(self, refresh_token: str) -> RefreshAttempt:
        """
        Échange le refresh token contre une nouvelle paire.

        Ne lève jamais et ne persiste rien: le résultat est classifié pour le
        RefreshCoordinator.

        Classification:
            - SUCCESS: 2xx, isSuccess, token et refreshToken présents
            - TRANSIENT: 5xx ou erreur réseau
            - REJECTED: 400/401/403
            - MALFORMED: tout le reste (corps illisible, tokens absents...)

        Args:
            refresh_token: Refresh token courant

        Returns:
            RefreshAttempt
        """
        if not refresh_token:
            return RefreshAttempt(RefreshOutcome.MISSING_TOKEN, message="No refresh token")

        request = HttpRequest(
            "POST",
            self._endpoints.refresh_path,
            json={"refreshToken": refresh_token},
        )
        try:
            response = await self._transport.send(request)
        except TransportError as e:
            return RefreshAttempt(RefreshOutcome.TRANSIENT, message=str(e))

        status = response.status_code
        if response.is_server_error:
            return RefreshAttempt(RefreshOutcome.TRANSIENT, status_code=status, message=f"HTTP {status}")

        envelope = parse_envelope(response)
        message = envelope.first_error() if envelope else PARSE_FAILURE_MESSAGE

        if status in REJECTION_STATUSES:
            return RefreshAttempt(RefreshOutcome.REJECTED, status_code=status, message=message)

        if envelope is None or not response.is_success or not envelope.is_success:
            return RefreshAttempt(RefreshOutcome.MALFORMED, status_code=status, message=message)

        try:
            payload = AuthPayload.model_validate(envelope.data or {})
        except ValueError:
            return RefreshAttempt(RefreshOutcome.MALFORMED, status_code=status, message=PARSE_FAILURE_MESSAGE)

        if not payload.has_tokens():
            return RefreshAttempt(
                RefreshOutcome.MALFORMED,
                status_code=status,
                message="Refresh response did not include tokens",
            )

        return RefreshAttempt(RefreshOutcome.SUCCESS, payload=payload, status_code=status)

    async def logout(self, refresh_token: Optional[str]) -> Optional[bool]:
        """
        Notifie le serveur (best-effort) puis efface la session locale.

        Ne lève jamais: l'effacement local a lieu quel que soit le résultat.

        Returns:
            "data" de l'enveloppe, ou None si l'appel a échoué
        """
        result: Optional[bool] = None
        try:
            if refresh_token:
                response = await self._transport.send(
                    HttpRequest("POST", self._endpoints.logout_path, json={"refreshToken": refresh_token})
                )
                envelope = parse_envelope(response)
                if envelope is not None and response.is_success:
                    result = bool(envelope.data)
                else:
                    self._logger.warn("Logout notification refused", status_code=response.status_code)
        except TransportError as e:
            self._logger.warn("Logout notification failed, clearing session locally", error=str(e))
        finally:
            self._store.clear_all()
        return result

    def get_current_user(self) -> Optional[UserProfile]:
        return self._store.get_user()

    def is_authenticated(self) -> bool:
        """Access et refresh tokens présents et access token non expiré."""
        return bool(
            self._store.get_access_token()
            and self._store.get_refresh_token()
            and not self._store.is_expired()
        )
