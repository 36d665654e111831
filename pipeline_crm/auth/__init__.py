"""
Auth

Session du client CRM:
- Stockage durable (mémoire, fichier JSON, fichier chiffré)
- Token Store (tokens, expiration, profil)
- Endpoints de session (login, refresh-token, logout)
- Refresh single-flight avec file d'attente FIFO
- Transport authentifié (Bearer + rejeu unique après 401)
- Session applicative (init, vérification périodique, logout)
"""

from .interfaces import (
    # Constants
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_KEY,
    TOKEN_EXPIRY_KEY,
    SESSION_KEYS,
    # Data classes
    UserProfile,
    SessionTokens,
    AuthState,
    RefreshAttempt,
    # Enums
    RefreshOutcome,
    # Interfaces
    ITokenStorage,
    IRefreshCoordinator,
    IAuthSessionManager,
    # Exceptions
    AuthenticationError,
    RefreshFailedError,
    SessionExpiredError,
    StorageError,
)
from .storage import MemoryStorage, JsonFileStorage, EncryptedFileStorage
from .token_store import TokenStore
from .auth_service import AuthService, AuthEndpoints
from .refresh_coordinator import RefreshCoordinator
from .auth_middleware import AuthenticatedTransport
from .session_manager import AuthSessionManager

__all__ = [
    # Constants
    "ACCESS_TOKEN_KEY",
    "REFRESH_TOKEN_KEY",
    "USER_KEY",
    "TOKEN_EXPIRY_KEY",
    "SESSION_KEYS",
    # Data classes
    "UserProfile",
    "SessionTokens",
    "AuthState",
    "RefreshAttempt",
    "AuthEndpoints",
    # Enums
    "RefreshOutcome",
    # Interfaces
    "ITokenStorage",
    "IRefreshCoordinator",
    "IAuthSessionManager",
    # Implementations
    "MemoryStorage",
    "JsonFileStorage",
    "EncryptedFileStorage",
    "TokenStore",
    "AuthService",
    "RefreshCoordinator",
    "AuthenticatedTransport",
    "AuthSessionManager",
    # Exceptions
    "AuthenticationError",
    "RefreshFailedError",
    "SessionExpiredError",
    "StorageError",
]
