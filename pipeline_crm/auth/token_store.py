"""
Auth - Token Store

Source unique de vérité pour la persistance de session: access token,
refresh token, expiration (epoch millis) et profil utilisateur.

Pas de logique métier: lecture, écriture, effacement, et le prédicat
is_expired().
"""

import json
import time
from typing import Callable, Dict, Optional

import jwt

from ..api.envelope import AuthPayload
from .interfaces import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    SESSION_KEYS,
    TOKEN_EXPIRY_KEY,
    USER_KEY,
    ITokenStorage,
    SessionTokens,
    UserProfile,
)


class TokenStore:
    """
    Persistance de la session sur un ITokenStorage.

    Example:
        store = TokenStore(MemoryStorage())
        store.save_session(payload)
        store.is_expired()  # False tant que expiresIn n'est pas écoulé
    """

    def __init__(self, storage: ITokenStorage, clock: Callable[[], float] = time.time) -> None:
        """
        Args:
            storage: Backend de stockage durable
            clock: Horloge en secondes epoch (injectable pour tests)
        """
        self._storage = storage
        self._clock = clock

    @property
    def storage(self) -> ITokenStorage:
        return self._storage

    def now_millis(self) -> int:
        return int(self._clock() * 1000)

    # ── Access / refresh tokens ──────────────────────────────────────────────

    def get_access_token(self) -> Optional[str]:
        return self._storage.get(ACCESS_TOKEN_KEY) or None

    def set_access_token(self, token: str) -> None:
        self._storage.set(ACCESS_TOKEN_KEY, token)

    def get_refresh_token(self) -> Optional[str]:
        return self._storage.get(REFRESH_TOKEN_KEY) or None

    def set_refresh_token(self, refresh_token: str) -> None:
        self._storage.set(REFRESH_TOKEN_KEY, refresh_token)

    def has_tokens(self) -> bool:
        return bool(self.get_access_token() or self.get_refresh_token())

    # ── Profil ───────────────────────────────────────────────────────────────

    def get_user(self) -> Optional[UserProfile]:
        raw = self._storage.get(USER_KEY)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        return UserProfile.from_dict(data)

    def set_user(self, user: UserProfile) -> None:
        self._storage.set(USER_KEY, json.dumps(user.to_dict()))

    # ── Expiration ───────────────────────────────────────────────────────────

    def set_token_expiry(self, expires_in: int) -> None:
        """
        Enregistre l'expiration à partir d'une durée serveur.

        Args:
            expires_in: Durée de validité en secondes ("expiresIn")
        """
        self._storage.set(TOKEN_EXPIRY_KEY, str(self._expiry_from(expires_in)))

    def get_token_expiry(self) -> Optional[int]:
        """Expiration en epoch millis, ou None si absente/illisible."""
        raw = self._storage.get(TOKEN_EXPIRY_KEY)
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def is_expired(self) -> bool:
        """True si aucune expiration enregistrée ou si elle est atteinte."""
        expiry = self.get_token_expiry()
        if expiry is None:
            return True
        return self.now_millis() >= expiry

    def seconds_until_expiry(self) -> Optional[float]:
        expiry = self.get_token_expiry()
        if expiry is None:
            return None
        return (expiry - self.now_millis()) / 1000.0

    # ── Session complète ─────────────────────────────────────────────────────

    def get_tokens(self) -> Optional[SessionTokens]:
        access_token = self.get_access_token()
        refresh_token = self.get_refresh_token()
        expiry = self.get_token_expiry()
        if not access_token or not refresh_token or expiry is None:
            return None
        return SessionTokens(access_token=access_token, refresh_token=refresh_token, expires_at=expiry)

    def save_session(self, payload: AuthPayload) -> SessionTokens:
        """
        Persiste tokens, expiration et profil en une écriture.

        Si le serveur n'envoie pas expiresIn, l'expiration est lue dans le
        claim "exp" de l'access token; à défaut le token est considéré
        comme déjà expiré.

        Args:
            payload: Réponse login/refresh avec les deux tokens

        Returns:
            SessionTokens persistés

        Raises:
            ValueError: payload sans access ou refresh token
        """
        if not payload.has_tokens():
            raise ValueError("payload must carry both token and refreshToken")

        if payload.expires_in and payload.expires_in > 0:
            expires_at = self._expiry_from(payload.expires_in)
        else:
            expires_at = self._expiry_from_jwt(payload.token)

        values: Dict[str, str] = {
            ACCESS_TOKEN_KEY: payload.token,
            REFRESH_TOKEN_KEY: payload.refresh_token,
            TOKEN_EXPIRY_KEY: str(expires_at),
            USER_KEY: json.dumps(UserProfile.from_payload(payload).to_dict()),
        }
        self._storage.set_many(values)

        return SessionTokens(
            access_token=payload.token,
            refresh_token=payload.refresh_token,
            expires_at=expires_at,
        )

    def clear_all(self) -> None:
        """Efface les quatre clés en une opération."""
        self._storage.delete_many(SESSION_KEYS)

    def _expiry_from(self, expires_in: int) -> int:
        return self.now_millis() + int(expires_in) * 1000

    def _expiry_from_jwt(self, token: str) -> int:
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            return self.now_millis()
        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            return self.now_millis()
        return int(exp * 1000)
