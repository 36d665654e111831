"""
Auth - Interfaces

Contrats pour la persistance de session, le refresh single-flight et la
session applicative.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from ..api.envelope import AuthPayload

# Clés persistées (stockage durable côté client)
ACCESS_TOKEN_KEY = "auth_token"
REFRESH_TOKEN_KEY = "refresh_token"
USER_KEY = "user_data"
TOKEN_EXPIRY_KEY = "token_expiry"

SESSION_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY, TOKEN_EXPIRY_KEY)


# ══════════════════════════════════════════════════════════════════════════════
# TYPES
# ══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class UserProfile:
    """
    Profil utilisateur issu du dernier login ou refresh réussi.

    Attributes:
        email: Email de connexion
        user_id: Identifiant utilisateur côté API
        first_name: Prénom (optionnel)
        last_name: Nom (optionnel)
    """

    email: str
    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else self.email

    def to_dict(self) -> Dict[str, Any]:
        """Format persisté (clés camelCase, comme le payload serveur)."""
        return {
            "email": self.email,
            "userId": self.user_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserProfile":
        return cls(
            email=str(data.get("email") or ""),
            user_id=str(data.get("userId") or data.get("user_id") or ""),
            first_name=data.get("firstName") or data.get("first_name"),
            last_name=data.get("lastName") or data.get("last_name"),
        )

    @classmethod
    def from_payload(cls, payload: AuthPayload) -> "UserProfile":
        return cls(
            email=payload.email,
            user_id=payload.user_id,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )


@dataclass(frozen=True)
class SessionTokens:
    """
    Paire de tokens de session.

    Attributes:
        access_token: Credential court envoyé à chaque requête
        refresh_token: Credential long échangé contre un nouvel access token
        expires_at: Expiration de l'access token (epoch millis)
    """

    access_token: str
    refresh_token: str
    expires_at: int


@dataclass(frozen=True)
class AuthState:
    """État de session exposé au reste de l'application."""

    user: Optional[UserProfile] = None
    is_authenticated: bool = False
    is_loading: bool = True


class RefreshOutcome(Enum):
    """Issue d'un appel /refresh-token."""

    SUCCESS = "success"  # nouveaux tokens
    TRANSIENT = "transient"  # 5xx ou réseau: définitif si expiré
    REJECTED = "rejected"  # refresh token refusé: définitif
    MALFORMED = "malformed"  # réponse inexploitable: définitif si expiré
    MISSING_TOKEN = "missing_token"  # aucun refresh token stocké


@dataclass(frozen=True)
class RefreshAttempt:
    """Résultat classifié d'un appel /refresh-token."""

    outcome: RefreshOutcome
    payload: Optional[AuthPayload] = None
    status_code: int = 0
    message: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════════
# EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════════════


class AuthenticationError(Exception):
    """Échec de login (identifiants refusés, réseau, réponse illisible)."""

    def __init__(self, message: str, errors: Iterable[str] = (), status_code: int = 0) -> None:
        self.message = message
        self.errors = list(errors)
        self.status_code = status_code
        super().__init__(message)


class RefreshFailedError(Exception):
    """Le refresh n'a produit aucun token utilisable (session conservée)."""

    pass


class SessionExpiredError(RefreshFailedError):
    """Session irrécupérable: tokens effacés, retour à la connexion."""

    pass


class StorageError(Exception):
    """Erreur d'écriture du stockage durable."""

    pass


# ══════════════════════════════════════════════════════════════════════════════
# INTERFACES
# ══════════════════════════════════════════════════════════════════════════════


class ITokenStorage(ABC):
    """
    Stockage clé/valeur durable côté client.

    set_many et delete_many sont atomiques du point de vue de l'appelant.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Valeur stockée, ou None."""
        pass

    @abstractmethod
    def set_many(self, values: Mapping[str, str]) -> None:
        """Écrit plusieurs clés en une opération."""
        pass

    @abstractmethod
    def delete_many(self, keys: Iterable[str]) -> None:
        """Supprime plusieurs clés en une opération."""
        pass

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def delete(self, key: str) -> None:
        self.delete_many([key])


class IRefreshCoordinator(ABC):
    """Refresh single-flight partagé par tous les appelants concurrents."""

    @abstractmethod
    async def refresh(self) -> str:
        """
        Obtient un access token à rejouer.

        Un seul appel /refresh-token est en vol à la fois; les appelants
        arrivés pendant ce refresh attendent son résultat (FIFO).

        Returns:
            Access token (nouveau, ou existant si le refresh a échoué
            de façon transitoire)

        Raises:
            SessionExpiredError: Session irrécupérable (tokens effacés)
            RefreshFailedError: Aucun token utilisable, session conservée
        """
        pass

    @abstractmethod
    def set_session_expired_handler(self, handler: Optional[Callable[[], Any]]) -> None:
        """Définit le callback appelé une fois par expiration définitive."""
        pass


class IAuthSessionManager(ABC):
    """Session applicative: {user, is_authenticated, is_loading}."""

    @abstractmethod
    async def initialize(self) -> AuthState:
        """Restaure la session persistée (au plus un refresh)."""
        pass

    @abstractmethod
    async def login(self, email: str, password: str) -> AuthPayload:
        """Connexion avec identifiants."""
        pass

    @abstractmethod
    async def logout(self) -> None:
        """Déconnexion locale garantie, notification serveur best-effort."""
        pass

    @abstractmethod
    async def check_expiry(self) -> None:
        """Vérification périodique: n'agit que si le token est expiré."""
        pass

    @property
    @abstractmethod
    def state(self) -> AuthState:
        """État courant."""
        pass
