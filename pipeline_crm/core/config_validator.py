"""
Core - Config Validator
Valide les réglages du client avant câblage.
"""

import ipaddress
from datetime import datetime
from typing import Callable, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from ..logging import LogLevel
from ..network.interfaces import TimeoutConfig
from .interfaces import (
    ClientSettings,
    IConfigValidator,
    ValidationError,
    ValidationResult,
    ValidationSeverity,
)

MIN_CHECK_INTERVAL_SECONDS = 60.0
LOCAL_HOSTNAMES = ("localhost",)


def is_local_host(host: str) -> bool:
    """True pour localhost, *.local et les adresses privées / loopback."""
    if not host:
        return False
    host = host.lower()
    if host in LOCAL_HOSTNAMES or host.endswith(".localhost") or host.endswith(".local"):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_loopback or address.is_private


def upgraded_base_url(url: str) -> str:
    """
    Passe une URL http d'un hôte public en https.

    Les hôtes locaux et les URL déjà https sont renvoyés tels quels.
    """
    parts = urlsplit(url)
    if parts.scheme != "http" or is_local_host(parts.hostname or ""):
        return url
    return urlunsplit(("https",) + tuple(parts)[1:])


class ConfigValidator(IConfigValidator):
    """Validation des réglages du client."""

    def __init__(self):
        self._validators: Dict[str, Callable[[ClientSettings], Optional[ValidationError]]] = {
            "CFG_001": self._validate_base_url,
            "CFG_002": self._validate_paths,
            "CFG_003": self._validate_check_interval,
            "CFG_004": self._validate_timeouts,
            "CFG_005": self._validate_log_level,
            "CFG_006": self._validate_transport_security,
        }

    def validate(self, settings: ClientSettings) -> ValidationResult:
        """
        Valide les réglages contre toutes les règles.
        Retourne TOUTES les erreurs (pas fail-fast).
        """
        errors = []
        warnings = []

        for rule_id in self._validators:
            error = self.validate_rule(rule_id, settings)
            if error:
                if error.severity == ValidationSeverity.BLOCKING:
                    errors.append(error)
                elif error.severity == ValidationSeverity.WARNING:
                    warnings.append(error)

        return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings, checked_at=datetime.now())

    def validate_rule(self, rule_id: str, settings: ClientSettings) -> Optional[ValidationError]:
        """Valide UNE règle spécifique."""
        if rule_id not in self._validators:
            return ValidationError(
                rule_id=rule_id,
                message=f"Règle inconnue: {rule_id}",
                location="settings",
                severity=ValidationSeverity.BLOCKING,
            )

        return self._validators[rule_id](settings)

    def _validate_base_url(self, settings: ClientSettings) -> Optional[ValidationError]:
        """CFG_001: URL de base http(s) avec hôte."""
        parts = urlsplit(settings.api_base_url)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            return ValidationError(
                rule_id="CFG_001",
                message="api_base_url doit être une URL http(s) absolue",
                location="api_base_url",
                value=settings.api_base_url,
            )
        return None

    def _validate_paths(self, settings: ClientSettings) -> Optional[ValidationError]:
        """CFG_002: Chemins relatifs à la racine."""
        for field in ("login_path", "refresh_path", "logout_path", "sign_in_path", "home_path"):
            value = getattr(settings, field)
            if not value.startswith("/"):
                return ValidationError(
                    rule_id="CFG_002",
                    message=f"{field} doit commencer par '/'",
                    location=field,
                    value=value,
                )
        return None

    def _validate_check_interval(self, settings: ClientSettings) -> Optional[ValidationError]:
        """CFG_003: Vérification d'expiration à gros grain (>= 60s)."""
        if settings.expiry_check_interval_seconds < MIN_CHECK_INTERVAL_SECONDS:
            return ValidationError(
                rule_id="CFG_003",
                message=f"expiry_check_interval_seconds doit être >= {MIN_CHECK_INTERVAL_SECONDS:g}s",
                location="expiry_check_interval_seconds",
                value=str(settings.expiry_check_interval_seconds),
            )
        return None

    def _validate_timeouts(self, settings: ClientSettings) -> Optional[ValidationError]:
        """CFG_004: Timeouts dans les limites du transport."""
        checks = (
            ("connection_timeout", settings.connection_timeout, TimeoutConfig.MAX_CONNECTION_TIMEOUT),
            ("request_timeout", settings.request_timeout, TimeoutConfig.MAX_REQUEST_TIMEOUT),
        )
        for field, value, maximum in checks:
            if value <= 0 or value > maximum:
                return ValidationError(
                    rule_id="CFG_004",
                    message=f"{field} doit être dans ]0, {maximum:g}]",
                    location=field,
                    value=str(value),
                )
        return None

    def _validate_log_level(self, settings: ClientSettings) -> Optional[ValidationError]:
        """CFG_005: Niveau de log connu."""
        try:
            LogLevel.from_name(settings.log_level)
        except ValueError:
            return ValidationError(
                rule_id="CFG_005",
                message="log_level inconnu",
                location="log_level",
                value=settings.log_level,
            )
        return None

    def _validate_transport_security(self, settings: ClientSettings) -> Optional[ValidationError]:
        """CFG_006: http en clair vers un hôte public (avertissement)."""
        parts = urlsplit(settings.api_base_url)
        if parts.scheme == "http" and parts.hostname and not is_local_host(parts.hostname):
            return ValidationError(
                rule_id="CFG_006",
                message="Hôte public en http: utiliser https",
                location="api_base_url",
                value=settings.api_base_url,
                severity=ValidationSeverity.WARNING,
            )
        return None
