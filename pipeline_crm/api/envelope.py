"""
API - Envelope

Décodage unique de l'enveloppe de réponse commune à tous les endpoints:

    {isSuccess, message, data, errors[], responseCode}

en un résultat discriminé Ok | Err. Un corps illisible produit un Err(PARSE)
plutôt qu'une exception.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..network.interfaces import HttpResponse, TransportError

T = TypeVar("T")

PARSE_FAILURE_MESSAGE = "Failed to parse response"
NETWORK_FAILURE_MESSAGE = "Network error. Please check your connection."


# ══════════════════════════════════════════════════════════════════════════════
# WIRE MODELS
# ══════════════════════════════════════════════════════════════════════════════


class ApiEnvelope(BaseModel):
    """Enveloppe de réponse commune."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_success: bool = Field(False, alias="isSuccess")
    message: Optional[str] = None
    data: Any = None
    errors: List[str] = Field(default_factory=list)
    response_code: int = Field(0, alias="responseCode")

    @field_validator("errors", mode="before")
    @classmethod
    def _normalize_errors(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(item) for item in v]

    @field_validator("response_code", mode="before")
    @classmethod
    def _normalize_code(cls, v: Any) -> int:
        return 0 if v is None else v

    def first_error(self) -> Optional[str]:
        return self.message or (self.errors[0] if self.errors else None)


class AuthPayload(BaseModel):
    """
    Données de session renvoyées par /login et /refresh-token.

    token et refreshToken peuvent être null côté serveur: has_tokens()
    distingue une réponse exploitable d'une réponse mal formée.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    token: Optional[str] = None
    refresh_token: Optional[str] = Field(None, alias="refreshToken")
    expires_in: int = Field(0, alias="expiresIn")
    email: str = ""
    user_id: str = Field("", alias="userId")
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("expires_in", mode="before")
    @classmethod
    def _coerce_expires_in(cls, v: Any) -> int:
        return 0 if v is None else v

    def has_tokens(self) -> bool:
        return bool(self.token) and bool(self.refresh_token)


# ══════════════════════════════════════════════════════════════════════════════
# RESULT TYPE
# ══════════════════════════════════════════════════════════════════════════════


class ErrorKind(Enum):
    """Catégorie d'échec d'un appel."""

    UNAUTHORIZED = "unauthorized"  # 401 non récupéré
    BUSINESS = "business"  # autre 4xx, ou isSuccess=false
    SERVER = "server"  # 5xx
    NETWORK = "network"  # aucune réponse
    PARSE = "parse"  # JSON ou enveloppe illisible


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Appel réussi."""

    value: T
    message: Optional[str] = None
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Appel échoué, prêt à être affiché (toast) par l'appelant."""

    kind: ErrorKind
    message: str
    errors: Tuple[str, ...] = ()
    status_code: int = 0

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[Any], Err]


def kind_for_status(status_code: int) -> ErrorKind:
    """Catégorie d'erreur associée à un code HTTP non-2xx."""
    if status_code == 401:
        return ErrorKind.UNAUTHORIZED
    if status_code >= 500:
        return ErrorKind.SERVER
    return ErrorKind.BUSINESS


def network_error(error: TransportError) -> Err:
    """Convertit une erreur réseau en Err(NETWORK)."""
    return Err(
        kind=ErrorKind.NETWORK,
        message=NETWORK_FAILURE_MESSAGE,
        errors=(str(error),),
    )


def _parse_failure(response: HttpResponse) -> Err:
    if response.is_success:
        return Err(
            kind=ErrorKind.PARSE,
            message=PARSE_FAILURE_MESSAGE,
            errors=(PARSE_FAILURE_MESSAGE,),
            status_code=response.status_code,
        )
    message = f"HTTP {response.status_code}"
    return Err(
        kind=kind_for_status(response.status_code),
        message=message,
        errors=(message,),
        status_code=response.status_code,
    )


def parse_envelope(response: HttpResponse) -> Optional[ApiEnvelope]:
    """
    Décode l'enveloppe brute.

    Returns:
        ApiEnvelope, ou None si le corps n'est pas une enveloppe JSON
    """
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    try:
        return ApiEnvelope.model_validate(body)
    except ValidationError:
        return None


def decode_envelope(
    response: HttpResponse,
    model: Optional[Type[BaseModel]] = None,
) -> Result:
    """
    Décode une réponse HTTP en Ok | Err.

    Args:
        response: Réponse HTTP
        model: Modèle pydantic pour valider "data" (optionnel)

    Returns:
        Ok(data) si HTTP 2xx et isSuccess, Err sinon
    """
    envelope = parse_envelope(response)
    if envelope is None:
        return _parse_failure(response)

    if not response.is_success or not envelope.is_success:
        kind = ErrorKind.BUSINESS if response.is_success else kind_for_status(response.status_code)
        message = envelope.first_error() or f"HTTP {response.status_code}"
        return Err(
            kind=kind,
            message=message,
            errors=tuple(envelope.errors),
            status_code=response.status_code,
        )

    value: Any = envelope.data
    if model is not None:
        try:
            value = model.model_validate(envelope.data)
        except ValidationError:
            return _parse_failure(response)

    return Ok(value=value, message=envelope.message, status_code=response.status_code)
