"""
API

Appels métier du CRM:
- Enveloppe {isSuccess, message, data, errors[], responseCode} décodée en Ok | Err
- Client REST générique
- Ressources du pipeline (leads, qualifications, opportunités, propositions,
  contrats, factures, activations, renouvellements, analytics)
"""

from .envelope import (
    # Wire models
    ApiEnvelope,
    AuthPayload,
    # Result type
    Ok,
    Err,
    Result,
    ErrorKind,
    # Functions
    decode_envelope,
    parse_envelope,
    network_error,
    kind_for_status,
)
from .client import ApiClient
from .resources import ResourceClient, AnalyticsClient, CrmClient

__all__ = [
    "ApiEnvelope",
    "AuthPayload",
    "Ok",
    "Err",
    "Result",
    "ErrorKind",
    "decode_envelope",
    "parse_envelope",
    "network_error",
    "kind_for_status",
    "ApiClient",
    "ResourceClient",
    "AnalyticsClient",
    "CrmClient",
]
