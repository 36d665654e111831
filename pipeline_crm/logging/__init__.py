"""
Logging

Logs JSON structurés du client CRM:
- Champs obligatoires: timestamp, level, correlation_id, client_id, message
- Timestamp ISO 8601 UTC
- Tokens et mots de passe masqués
"""

from .interfaces import (
    # Enums
    LogLevel,
    # Dataclasses
    LogEntry,
    LogConfig,
    # Interfaces
    IStructuredLogger,
    ISensitiveMasker,
)
from .sensitive_masker import SensitiveMasker
from .structured_logger import (
    StructuredLogger,
    ContextualLogger,
    stderr_handler,
    # Exceptions
    MissingRequiredFieldError,
)

__all__ = [
    # Enums
    "LogLevel",
    # Dataclasses
    "LogEntry",
    "LogConfig",
    # Interfaces
    "IStructuredLogger",
    "ISensitiveMasker",
    # Implementations
    "SensitiveMasker",
    "StructuredLogger",
    "ContextualLogger",
    "stderr_handler",
    # Exceptions
    "MissingRequiredFieldError",
]
