"""
Core - Config Loader
Charge les réglages du client depuis un fichier YAML puis l'environnement.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from .interfaces import ClientSettings, IConfigLoader


class ConfigIntegrityError(Exception):
    """Erreur d'intégrité de configuration."""

    pass


# Variable d'environnement → champ de ClientSettings
ENV_OVERRIDES: Dict[str, str] = {
    "CRM_API_BASE_URL": "api_base_url",
    "CRM_STORAGE_PATH": "storage_path",
    "CRM_STORAGE_KEY": "storage_encryption_key",
    "CRM_LOG_LEVEL": "log_level",
}


class ConfigLoader(IConfigLoader):
    """
    Chargement des réglages depuis fichiers YAML.

    Un fichier absent n'est pas une erreur: les valeurs par défaut et
    l'environnement s'appliquent.

    Example:
        settings = ConfigLoader("config").load("client")
    """

    def __init__(self, configs_path: str = "config", environ: Optional[Mapping[str, str]] = None):
        self.configs_path = Path(configs_path)
        self._environ = os.environ if environ is None else environ

    def load(self, name: str = "client") -> ClientSettings:
        """
        Charge les réglages.

        Args:
            name: Nom du fichier (sans extension)

        Returns:
            Réglages du client

        Raises:
            ConfigIntegrityError: YAML invalide, structure non-objet ou
                valeurs refusées par le modèle
        """
        config_file = self.configs_path / f"{name}.yaml"
        data: Dict[str, Any] = {}

        if config_file.exists():
            data = self._read_yaml(config_file)

        data.update(self._env_overrides())

        try:
            return ClientSettings(**data)
        except PydanticValidationError as e:
            raise ConfigIntegrityError(f"Réglages invalides: {e}")

    def _read_yaml(self, config_file: Path) -> Dict[str, Any]:
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigIntegrityError(f"Erreur de parsing YAML: {e}")
        except OSError as e:
            raise ConfigIntegrityError(f"Erreur de lecture fichier: {e}")

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigIntegrityError("Configuration doit être un objet YAML")

        # Section "client" optionnelle
        section = config.get("client", config)
        if not isinstance(section, dict):
            raise ConfigIntegrityError("client doit être un objet YAML")

        unknown = set(section) - set(ClientSettings.model_fields)
        if unknown:
            raise ConfigIntegrityError(f"Champs inconnus: {', '.join(sorted(unknown))}")

        return dict(section)

    def _env_overrides(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for env_name, field in ENV_OVERRIDES.items():
            value = self._environ.get(env_name)
            if value:
                overrides[field] = value
        return overrides
