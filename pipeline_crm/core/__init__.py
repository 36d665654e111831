"""
Core

Réglages du client CRM:
- Modèle ClientSettings (pydantic)
- Chargement YAML + surcharges d'environnement
- Validation (toutes les erreurs, pas fail-fast)
"""

from .interfaces import (
    # Enums
    ValidationSeverity,
    # Models
    ClientSettings,
    ValidationError,
    ValidationResult,
    # Interfaces
    IConfigLoader,
    IConfigValidator,
)
from .config_loader import ConfigLoader, ConfigIntegrityError, ENV_OVERRIDES
from .config_validator import ConfigValidator, upgraded_base_url, is_local_host

__all__ = [
    # Enums
    "ValidationSeverity",
    # Models
    "ClientSettings",
    "ValidationError",
    "ValidationResult",
    # Interfaces
    "IConfigLoader",
    "IConfigValidator",
    # Implementations
    "ConfigLoader",
    "ConfigValidator",
    "upgraded_base_url",
    "is_local_host",
    "ENV_OVERRIDES",
    # Exceptions
    "ConfigIntegrityError",
]
