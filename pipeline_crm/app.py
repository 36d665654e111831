"""
Application

Câblage du client CRM: transport → stockage → Token Store → Auth Service →
Refresh Coordinator → transport authentifié → API → session.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from .api import ApiClient, CrmClient
from .auth import (
    AuthEndpoints,
    AuthenticatedTransport,
    AuthService,
    AuthSessionManager,
    EncryptedFileStorage,
    ITokenStorage,
    JsonFileStorage,
    MemoryStorage,
    RefreshCoordinator,
    TokenStore,
)
from .auth.session_manager import Navigator
from .core import ClientSettings, ConfigIntegrityError, ConfigValidator, upgraded_base_url
from .logging import LogConfig, LogLevel, StructuredLogger, stderr_handler
from .network import HttpxTransport, ITransport, TimeoutConfig


@dataclass
class CrmApplication:
    """Composants câblés du client CRM."""

    settings: ClientSettings
    logger: StructuredLogger
    transport: ITransport
    token_store: TokenStore
    auth_service: AuthService
    coordinator: RefreshCoordinator
    http: AuthenticatedTransport
    api: ApiClient
    crm: CrmClient
    session: AuthSessionManager

    async def aclose(self) -> None:
        """Arrête la vérification périodique puis ferme le transport."""
        await self.session.stop()
        await self.http.aclose()


def build_storage(settings: ClientSettings, logger: Optional[StructuredLogger] = None) -> ITokenStorage:
    """
    Choisit le stockage de session.

    Clé de chiffrement → fichier chiffré; chemin seul → fichier JSON;
    sinon → mémoire.

    Raises:
        ConfigIntegrityError: Clé de chiffrement sans chemin
    """
    if settings.storage_encryption_key:
        if not settings.storage_path:
            raise ConfigIntegrityError("storage_encryption_key requiert storage_path")
        return EncryptedFileStorage(settings.storage_path, settings.storage_encryption_key, logger=logger)
    if settings.storage_path:
        return JsonFileStorage(settings.storage_path, logger=logger)
    return MemoryStorage()


def create_application(
    settings: Optional[ClientSettings] = None,
    storage: Optional[ITokenStorage] = None,
    transport: Optional[ITransport] = None,
    navigator: Optional[Navigator] = None,
    output_handler: Optional[Callable[[str], None]] = None,
) -> CrmApplication:
    """
    Construit le client CRM.

    Args:
        settings: Réglages (défauts si None)
        storage: Stockage imposé (sinon déduit des réglages)
        transport: Transport brut imposé (sinon httpx)
        navigator: Callable(path) pour les redirections
        output_handler: Sortie des logs JSON (stderr par défaut)

    Returns:
        Application câblée

    Raises:
        ConfigIntegrityError: Réglages invalides
    """
    settings = settings or ClientSettings()

    result = ConfigValidator().validate(settings)
    if not result.valid:
        details = "; ".join(f"{e.rule_id} {e.location}: {e.message}" for e in result.errors)
        raise ConfigIntegrityError(f"Réglages invalides: {details}")

    log_config = LogConfig(
        min_level=LogLevel.from_name(settings.log_level),
        default_client_id=settings.client_id,
    )
    logger = StructuredLogger("pipeline-crm", config=log_config, output_handler=output_handler or stderr_handler)

    for warning in result.warnings:
        logger.warn(warning.message, rule_id=warning.rule_id, location=warning.location)

    if transport is None:
        base_url = upgraded_base_url(settings.api_base_url)
        transport = HttpxTransport(
            base_url,
            TimeoutConfig(
                connection_timeout=settings.connection_timeout,
                request_timeout=settings.request_timeout,
            ),
        )

    token_store = TokenStore(storage if storage is not None else build_storage(settings, logger.child("storage")))
    auth_service = AuthService(
        transport,
        token_store,
        endpoints=AuthEndpoints(
            login_path=settings.login_path,
            refresh_path=settings.refresh_path,
            logout_path=settings.logout_path,
        ),
        logger=logger.child("auth"),
    )
    coordinator = RefreshCoordinator(token_store, auth_service, logger=logger.child("refresh"))
    http = AuthenticatedTransport(transport, token_store, coordinator, logger=logger.child("http"))
    api = ApiClient(http, logger=logger.child("api"))
    session = AuthSessionManager(
        auth_service,
        token_store,
        coordinator,
        navigator=navigator,
        check_interval_seconds=settings.expiry_check_interval_seconds,
        sign_in_path=settings.sign_in_path,
        home_path=settings.home_path,
        logger=logger.child("session"),
    )

    return CrmApplication(
        settings=settings,
        logger=logger,
        transport=transport,
        token_store=token_store,
        auth_service=auth_service,
        coordinator=coordinator,
        http=http,
        api=api,
        crm=CrmClient(api),
        session=session,
    )
