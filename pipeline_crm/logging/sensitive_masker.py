"""
Logging - Sensitive Masker

Masquage des secrets de session avant écriture des logs.
"""

import re
from typing import Any, Dict, List, Optional

from .interfaces import ISensitiveMasker

# "Bearer eyJ..." dans une valeur libre (message d'erreur, URL, etc.)
_BEARER_RE = re.compile(r"(?i)bearer\s+[A-Za-z0-9\-._~+/]+=*")


class SensitiveMasker(ISensitiveMasker):
    """
    Masquage récursif des données sensibles.

    Les clés contenant un pattern sensible (token, password, authorization...)
    voient leur valeur remplacée. Les valeurs string contenant un en-tête
    "Bearer <token>" sont nettoyées même sous une clé anodine.

    Example:
        masker = SensitiveMasker()
        masker.mask({"refreshToken": "abc", "email": "a@b.c"})
        # {"refreshToken": "***MASKED***", "email": "a@b.c"}
    """

    def __init__(self, additional_patterns: Optional[List[str]] = None) -> None:
        """
        Args:
            additional_patterns: Patterns supplémentaires à masquer
        """
        self._patterns: List[str] = [p.lower() for p in self.SENSITIVE_PATTERNS]
        for pattern in additional_patterns or []:
            if pattern and pattern.lower() not in self._patterns:
                self._patterns.append(pattern.lower())

    @property
    def patterns(self) -> List[str]:
        """Retourne les patterns sensibles configurés."""
        return list(self._patterns)

    def mask(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Masque récursivement toutes les données sensibles.

        Comportement:
            - Clés contenant un pattern sensible → valeur masquée
            - Valeurs dict → récursion
            - Valeurs list → masque chaque élément
            - Valeurs str → suppression des "Bearer <token>"

        Args:
            data: Dictionnaire à masquer

        Returns:
            Copie avec données sensibles masquées
        """
        if not isinstance(data, dict):
            return data

        result: Dict[str, Any] = {}
        for key, value in data.items():
            if self.is_sensitive_key(str(key)):
                result[key] = self.MASK_VALUE
            else:
                result[key] = self._mask_value(value)
        return result

    def _mask_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.mask(value)
        if isinstance(value, (list, tuple)):
            return [self._mask_value(item) for item in value]
        if isinstance(value, str):
            return self.scrub(value)
        return value

    def scrub(self, text: str) -> str:
        """
        Retire les credentials "Bearer <token>" d'un texte libre.

        Args:
            text: Texte à nettoyer

        Returns:
            Texte sans token
        """
        return _BEARER_RE.sub(f"Bearer {self.MASK_VALUE}", text)

    def is_sensitive_key(self, key: str) -> bool:
        """
        Vérifie si clé contient un pattern sensible (insensible à la casse).

        Args:
            key: Nom de la clé à vérifier

        Returns:
            True si clé contient pattern sensible
        """
        if not key:
            return False

        key_lower = key.lower()
        return any(pattern in key_lower for pattern in self._patterns)

    def add_pattern(self, pattern: str) -> None:
        """
        Ajoute pattern sensible personnalisé.

        Raises:
            ValueError: Si pattern vide
        """
        if not pattern or not pattern.strip():
            raise ValueError("Pattern cannot be empty")

        pattern_lower = pattern.lower().strip()
        if pattern_lower not in self._patterns:
            self._patterns.append(pattern_lower)
