"""Application composition

Builds the process-wide APIClient once at startup so it can be handed to every
service, instead of services reaching for a shared global.

Usage:
    config = ConfigManager()
    await config.initialize()
    client = create_api_client(config)   # also configures logging
    async with client:
        auth = create_auth_service(client)
        await auth.load_current_user()
"""

import logging
from pathlib import Path
from typing import Optional

from caresphere.configuration.config_manager import ConfigManager
from caresphere.configuration.settings import KEYCHAIN_SERVICE
from caresphere.core.api.client import APIClient
from caresphere.core.api.transport import Transport
from caresphere.core.exceptions import ConfigurationError
from caresphere.infrastructure.credential_manager import (
    CredentialStore,
    MemoryCredentialStore,
    YAMLCredentialStore,
)
from caresphere.services.auth_service import AuthenticationService
from caresphere.utils.logger_manager import LoggerManager

logger = logging.getLogger(__name__)


def configure_logging(config: ConfigManager) -> LoggerManager:
    """Install the package log handlers from the ``logging`` section."""
    return LoggerManager.from_config(config)


def create_credential_store(config: ConfigManager) -> CredentialStore:
    """Credential store selected by ``credentials.backend``.

    Raises:
        ConfigurationError: unknown backend
    """
    backend = config.get("credentials.backend", "yaml")
    if backend == "memory":
        return MemoryCredentialStore()
    if backend == "yaml":
        path = config.get("credentials.path")
        return YAMLCredentialStore(
            path=Path(path).expanduser() if path else None,
            service=config.get("credentials.service", KEYCHAIN_SERVICE),
        )
    raise ConfigurationError(f"Unknown credential backend: {backend}")


def create_api_client(
    config: Optional[ConfigManager] = None,
    credential_store: Optional[CredentialStore] = None,
    transport: Optional[Transport] = None,
) -> APIClient:
    """Build the APIClient from configuration.

    Args:
        config: Loaded ConfigManager; a default one is loaded when omitted
        credential_store: Overrides the configured credential backend
        transport: Overrides the aiohttp transport (tests)

    Returns:
        APIClient: Not yet initialized; use it as an async context manager

    Logging is configured from the same ConfigManager on the way.
    """
    if config is None:
        config = ConfigManager()
        config.load()
    configure_logging(config)

    api_config = config.get_api_configuration()
    if credential_store is None:
        credential_store = create_credential_store(config)

    client = APIClient.from_config(api_config, credential_store=credential_store, transport=transport)
    logger.info(
        "API client created",
        extra={"base_url": api_config.base_url, "authenticated": client.is_authenticated},
    )
    return client


def create_auth_service(client: APIClient) -> AuthenticationService:
    return AuthenticationService(client)
