"""
Network

Transport HTTP du client CRM:
- Contrat send(request) -> response (ITransport)
- Requêtes immuables (rejeu sans effet de bord)
- Timeouts connexion 10s / requête 30s max
- Erreurs réseau → TransportError, codes HTTP → réponses
"""

from .interfaces import (
    # Constants
    AUTHORIZATION_HEADER,
    CORRELATION_HEADER,
    # Data classes
    HttpRequest,
    HttpResponse,
    TimeoutConfig,
    # Interfaces
    ITransport,
    # Exceptions
    TransportError,
    InvalidTimeoutError,
)
from .transport import HttpxTransport

__all__ = [
    "AUTHORIZATION_HEADER",
    "CORRELATION_HEADER",
    "HttpRequest",
    "HttpResponse",
    "TimeoutConfig",
    "ITransport",
    "HttpxTransport",
    "TransportError",
    "InvalidTimeoutError",
]
