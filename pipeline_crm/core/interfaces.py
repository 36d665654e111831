"""
Core - Interfaces
Réglages du client CRM et contrats de chargement / validation.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


# ══════════════════════════════════════════════════════════════════════════════
# TYPES
# ══════════════════════════════════════════════════════════════════════════════


class ValidationSeverity(Enum):
    BLOCKING = "blocking"
    WARNING = "warning"
    INFO = "info"


class ValidationError(BaseModel):
    """Erreur de validation d'un réglage."""

    rule_id: str
    message: str
    location: str
    value: Optional[str] = None
    severity: ValidationSeverity = ValidationSeverity.BLOCKING


class ValidationResult(BaseModel):
    """Résultat de validation des réglages."""

    valid: bool
    errors: list[ValidationError] = []
    warnings: list[ValidationError] = []
    checked_at: datetime


class ClientSettings(BaseModel):
    """Réglages du client CRM."""

    api_base_url: str = "https://democrm-rsqo.onrender.com"
    login_path: str = "/api/Auth/login"
    refresh_path: str = "/api/Auth/refresh-token"
    logout_path: str = "/api/Auth/logout"
    sign_in_path: str = "/signin"
    home_path: str = "/dashboard"
    expiry_check_interval_seconds: float = 300.0
    connection_timeout: float = 10.0
    request_timeout: float = 30.0
    storage_path: Optional[str] = None
    storage_encryption_key: Optional[str] = None
    log_level: str = "INFO"
    client_id: str = "pipeline-crm"


# ══════════════════════════════════════════════════════════════════════════════
# INTERFACES
# ══════════════════════════════════════════════════════════════════════════════


class IConfigLoader(ABC):
    """Charge les réglages depuis un fichier et l'environnement."""

    @abstractmethod
    def load(self, name: str = "client") -> ClientSettings:
        """
        Charge les réglages.

        Args:
            name: Nom du fichier (sans extension)

        Returns:
            Réglages validés par le modèle

        Raises:
            ConfigIntegrityError: Fichier illisible ou réglages invalides
        """
        pass


class IConfigValidator(ABC):
    """Valide les réglages (toutes les erreurs, pas fail-fast)."""

    @abstractmethod
    def validate(self, settings: ClientSettings) -> ValidationResult:
        pass

    @abstractmethod
    def validate_rule(self, rule_id: str, settings: ClientSettings) -> Optional[ValidationError]:
        pass
