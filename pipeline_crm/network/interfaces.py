"""
Network - Interfaces

Contrat de transport HTTP: send(request) -> response.

Les requêtes sont immuables: l'ajout d'un en-tête ou le marquage "retried"
produit une nouvelle instance, ce qui permet de rejouer une requête sans
effet de bord sur l'original.
"""

import json as jsonlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

AUTHORIZATION_HEADER = "Authorization"
CORRELATION_HEADER = "X-Correlation-ID"


class InvalidTimeoutError(Exception):
    """Configuration timeout invalide."""

    pass


class TransportError(Exception):
    """Échec réseau (connexion perdue, timeout) - aucune réponse HTTP."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)


@dataclass
class TimeoutConfig:
    """
    Configuration des timeouts.

    Limites:
        connection_timeout: max 10s
        request_timeout: max 30s
    """

    connection_timeout: float = 10.0
    request_timeout: float = 30.0

    MAX_CONNECTION_TIMEOUT = 10.0
    MAX_REQUEST_TIMEOUT = 30.0

    def __post_init__(self) -> None:
        """Validation des contraintes."""
        if self.connection_timeout <= 0:
            raise InvalidTimeoutError("connection_timeout must be positive")
        if self.connection_timeout > self.MAX_CONNECTION_TIMEOUT:
            raise InvalidTimeoutError(
                f"connection_timeout ({self.connection_timeout}s) exceeds "
                f"maximum ({self.MAX_CONNECTION_TIMEOUT}s)"
            )
        if self.request_timeout <= 0:
            raise InvalidTimeoutError("request_timeout must be positive")
        if self.request_timeout > self.MAX_REQUEST_TIMEOUT:
            raise InvalidTimeoutError(
                f"request_timeout ({self.request_timeout}s) exceeds "
                f"maximum ({self.MAX_REQUEST_TIMEOUT}s)"
            )


def _find_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


@dataclass(frozen=True)
class HttpRequest:
    """
    Requête HTTP sortante.

    Attributes:
        method: Verbe HTTP
        url: Chemin relatif à la base URL, ou URL absolue
        headers: En-têtes
        params: Paramètres de query string
        json: Corps JSON
        retried: True si déjà rejouée après un 401 (un seul rejeu autorisé)
    """

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    retried: bool = False

    def with_header(self, name: str, value: str) -> "HttpRequest":
        """Retourne une copie avec l'en-tête (remplacé s'il existe)."""
        headers = {k: v for k, v in self.headers.items() if k.lower() != name.lower()}
        headers[name] = value
        return replace(self, headers=headers)

    def with_bearer(self, token: str) -> "HttpRequest":
        """Retourne une copie portant le credential Bearer."""
        return self.with_header(AUTHORIZATION_HEADER, f"Bearer {token}")

    def bearer_token(self) -> Optional[str]:
        """Token Bearer porté par la requête, ou None."""
        value = _find_header(self.headers, AUTHORIZATION_HEADER)
        if not value or not value.lower().startswith("bearer "):
            return None
        return value[len("Bearer "):].strip() or None

    def header(self, name: str) -> Optional[str]:
        return _find_header(self.headers, name)

    def mark_retried(self) -> "HttpRequest":
        return replace(self, retried=True)


@dataclass
class HttpResponse:
    """Réponse HTTP reçue (tous codes de statut confondus)."""

    status_code: int
    content: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    request: Optional[HttpRequest] = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """
        Décode le corps JSON.

        Raises:
            ValueError: Corps vide ou JSON invalide
        """
        if not self.content:
            raise ValueError("Empty response body")
        return jsonlib.loads(self.content)


class ITransport(ABC):
    """Interface transport HTTP."""

    @abstractmethod
    async def send(self, request: HttpRequest) -> HttpResponse:
        """
        Envoie une requête.

        Ne lève jamais sur un code de statut HTTP: 4xx/5xx sont des réponses.

        Raises:
            TransportError: Aucune réponse (réseau, timeout)
        """
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Libère les ressources (connexions)."""
        pass
