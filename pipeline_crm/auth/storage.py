"""
Auth - Token Storage

Backends de stockage durable pour la session:
- MemoryStorage: en mémoire, par instance (tests, scripts courts)
- JsonFileStorage: document JSON sur disque, écriture atomique
- EncryptedFileStorage: idem, chiffré avec Fernet (cryptography)
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from ..logging import StructuredLogger
from .interfaces import ITokenStorage, StorageError


class MemoryStorage(ITokenStorage):
    """Stockage en mémoire (perdu à la fin du processus)."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_many(self, values: Mapping[str, str]) -> None:
        self._data.update(values)

    def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> Dict[str, str]:
        """Copie du contenu (tests)."""
        return dict(self._data)


class JsonFileStorage(ITokenStorage):
    """
    Stockage dans un fichier JSON.

    Chaque écriture réécrit le document complet dans un fichier temporaire
    puis le renomme (os.replace): un lecteur voit l'ancien ou le nouveau
    document, jamais un état intermédiaire. Le fichier est créé en 0600.

    Un document illisible est traité comme vide (session perdue, pas crash).
    """

    def __init__(self, path: Union[str, Path], logger: Optional[StructuredLogger] = None) -> None:
        """
        Args:
            path: Chemin du fichier de session
            logger: Logger structuré (optionnel)
        """
        self._path = Path(path).expanduser()
        self._logger = logger or StructuredLogger("pipeline-crm.storage")

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_many(self, values: Mapping[str, str]) -> None:
        data = self._read()
        data.update(values)
        self._write(data)

    def delete_many(self, keys: Iterable[str]) -> None:
        data = self._read()
        for key in keys:
            data.pop(key, None)
        self._write(data)

    def _encode(self, data: Dict[str, str]) -> bytes:
        return json.dumps(data, ensure_ascii=False).encode("utf-8")

    def _decode(self, raw: bytes) -> Dict[str, str]:
        return json.loads(raw.decode("utf-8"))

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_bytes()
        except OSError as e:
            raise StorageError(f"Lecture impossible: {self._path}: {e}") from e
        if not raw:
            return {}
        try:
            data = self._decode(raw)
        except (ValueError, InvalidToken):
            self._logger.warn("Session file unreadable, treating as empty", path=str(self._path))
            return {}
        if not isinstance(data, dict):
            self._logger.warn("Session file is not an object, treating as empty", path=str(self._path))
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, data: Dict[str, str]) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".session-", dir=str(directory))
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(self._encode(data))
                os.chmod(tmp_path, 0o600)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Écriture impossible: {self._path}: {e}") from e


class EncryptedFileStorage(JsonFileStorage):
    """
    Stockage fichier chiffré (Fernet: AES-128-CBC + HMAC-SHA256).

    Un document qui ne se déchiffre pas (clé changée, fichier altéré) est
    traité comme vide.

    Example:
        key = EncryptedFileStorage.generate_key()
        storage = EncryptedFileStorage("~/.pipeline-crm/session.bin", key)
    """

    def __init__(
        self,
        path: Union[str, Path],
        key: Union[str, bytes],
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Args:
            path: Chemin du fichier de session
            key: Clé Fernet (32 octets urlsafe-base64)
            logger: Logger structuré (optionnel)

        Raises:
            StorageError: Clé invalide
        """
        super().__init__(path, logger=logger)
        try:
            self._fernet = Fernet(key)
        except (ValueError, TypeError) as e:
            raise StorageError(f"Clé de chiffrement invalide: {e}") from e

    @staticmethod
    def generate_key() -> str:
        """Génère une nouvelle clé Fernet."""
        return Fernet.generate_key().decode("ascii")

    def _encode(self, data: Dict[str, str]) -> bytes:
        return self._fernet.encrypt(super()._encode(data))

    def _decode(self, raw: bytes) -> Dict[str, str]:
        return super()._decode(self._fernet.decrypt(raw))
