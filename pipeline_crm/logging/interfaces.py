"""
Logging - Interfaces

Interfaces pour le logging structuré du client CRM.

Règles:
    - Format JSON structuré, une ligne par entrée
    - Champs obligatoires: timestamp, level, correlation_id, client_id, message
    - Timestamp ISO 8601 UTC avec millisecondes
    - Niveaux: DEBUG, INFO, WARN, ERROR, CRITICAL
    - Tokens, mots de passe et en-têtes Authorization jamais en clair
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class LogLevel(Enum):
    """
    Niveaux de log standard.

    Ordre de sévérité: DEBUG < INFO < WARN < ERROR < CRITICAL
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def get_priority(cls, level: "LogLevel") -> int:
        """Retourne la priorité du niveau (plus haut = plus sévère)."""
        priorities = {
            cls.DEBUG: 0,
            cls.INFO: 1,
            cls.WARN: 2,
            cls.ERROR: 3,
            cls.CRITICAL: 4,
        }
        return priorities.get(level, 0)

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        """
        Convertit un nom de niveau (insensible à la casse).

        Accepte aussi "WARNING" comme alias de WARN.

        Raises:
            ValueError: Nom inconnu
        """
        normalized = (name or "").strip().upper()
        if normalized == "WARNING":
            normalized = "WARN"
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown log level: {name}")


@dataclass
class LogEntry:
    """Entrée de log avec champs obligatoires."""

    timestamp: str  # ISO 8601 UTC
    level: LogLevel
    correlation_id: str
    client_id: str
    message: str
    extra: Dict[str, Any] = field(default_factory=dict)
    logger_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convertit en dictionnaire."""
        result = {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "correlation_id": self.correlation_id,
            "client_id": self.client_id,
            "message": self.message,
        }
        if self.logger_name:
            result["logger"] = self.logger_name
        if self.extra:
            result["extra"] = self.extra
        return result

    def to_json(self) -> str:
        """Convertit en JSON structuré."""
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


@dataclass
class LogConfig:
    """Configuration du logger structuré."""

    min_level: LogLevel = LogLevel.INFO
    include_extra: bool = True
    mask_sensitive: bool = True
    default_client_id: Optional[str] = "pipeline-crm"
    default_correlation_id: Optional[str] = None


class IStructuredLogger(ABC):
    """Interface logger structuré."""

    @abstractmethod
    def log(
        self,
        level: LogLevel,
        message: str,
        correlation_id: Optional[str] = None,
        client_id: Optional[str] = None,
        **extra: Any,
    ) -> Optional[LogEntry]:
        """
        Log structuré JSON.

        Args:
            level: Niveau de log
            message: Message à logger
            correlation_id: ID de corrélation (généré si absent)
            client_id: ID du client (optionnel si default défini)
            **extra: Données supplémentaires

        Returns:
            LogEntry créé ou None si filtré par niveau
        """
        pass

    @abstractmethod
    def debug(self, message: str, **extra: Any) -> Optional[LogEntry]:
        """Log niveau DEBUG."""
        pass

    @abstractmethod
    def info(self, message: str, **extra: Any) -> Optional[LogEntry]:
        """Log niveau INFO."""
        pass

    @abstractmethod
    def warn(self, message: str, **extra: Any) -> Optional[LogEntry]:
        """Log niveau WARN."""
        pass

    @abstractmethod
    def error(self, message: str, **extra: Any) -> Optional[LogEntry]:
        """Log niveau ERROR."""
        pass

    @abstractmethod
    def critical(self, message: str, **extra: Any) -> Optional[LogEntry]:
        """Log niveau CRITICAL."""
        pass

    @abstractmethod
    def get_entries(self) -> List[LogEntry]:
        """Retourne les entrées de log capturées (pour tests)."""
        pass


class ISensitiveMasker(ABC):
    """Interface masquage des secrets de session."""

    SENSITIVE_PATTERNS: List[str] = [
        "password",
        "passwd",
        "token",
        "access_token",
        "refresh_token",
        "refreshtoken",
        "secret",
        "api_key",
        "apikey",
        "credential",
        "authorization",
        "bearer",
        "jwt",
        "cookie",
        "encryption_key",
    ]

    MASK_VALUE: str = "***MASKED***"

    @abstractmethod
    def mask(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Masque les données sensibles dans un dictionnaire.

        Args:
            data: Dictionnaire à masquer

        Returns:
            Copie avec données sensibles masquées
        """
        pass

    @abstractmethod
    def is_sensitive_key(self, key: str) -> bool:
        """Vérifie si une clé contient un pattern sensible."""
        pass

    @abstractmethod
    def add_pattern(self, pattern: str) -> None:
        """Ajoute un pattern sensible personnalisé."""
        pass
