"""Configuration manager

Loads the YAML configuration file, merges it over the built-in defaults and
applies environment overrides. Values are resolved in this order (later wins):

    1. defaults (settings.py)
    2. config file (user_settings/config.yaml or CARESPHERE_CONFIG_PATH)
    3. .env file (loaded with python-dotenv, never overriding the process env)
    4. process environment: API_BASE_URL and CARESPHERE_<SECTION>__<KEY>

Nested keys in environment overrides are separated by a double underscore:
CARESPHERE_API__MAX_ATTEMPTS=5 sets ``api.max_attempts``.
"""

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import yaml
from dotenv import load_dotenv

from caresphere.configuration.settings import (
    DEFAULT_API_BASE_URL,
    DEFAULT_CONFIG_PATH,
    DEFAULT_ENV_FILE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RESOURCE_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    ENV_API_BASE_URL,
    ENV_CONFIG_PATH,
    ENV_ENV_FILE,
    ENV_PREFIX,
    KEYCHAIN_SERVICE,
    LOG_LEVELS,
)
from caresphere.core.base import CareSphereComponent, ComponentState
from caresphere.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Separator for nested keys in CARESPHERE_* overrides
ENV_NESTING = "__"

CREDENTIAL_BACKENDS = ["yaml", "memory"]


# ============================================================================
# API configuration
# ============================================================================


@dataclass(frozen=True)
class APIConfiguration:
    """Immutable network settings handed to APIClient at construction."""

    base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    resource_timeout: float = DEFAULT_RESOURCE_TIMEOUT
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY

    def __post_init__(self):
        errors = self.validate()
        if errors:
            raise ConfigurationError(
                f"Invalid API configuration: {'; '.join(errors)}",
                details={"errors": errors},
            )

    def validate(self) -> List[str]:
        return _validate_api_section(
            {
                "base_url": self.base_url,
                "request_timeout": self.request_timeout,
                "resource_timeout": self.resource_timeout,
                "max_attempts": self.max_attempts,
                "retry_delay": self.retry_delay,
            }
        )

    @classmethod
    def from_env(cls) -> "APIConfiguration":
        """Build from the process environment, falling back to defaults.

        Only API_BASE_URL is read; use ConfigManager for file and
        CARESPHERE_* overrides.

        Raises:
            ConfigurationError: API_BASE_URL is not an http(s) URL
        """
        return cls(base_url=os.getenv(ENV_API_BASE_URL) or DEFAULT_API_BASE_URL)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "APIConfiguration":
        try:
            return cls(
                base_url=str(data.get("base_url", DEFAULT_API_BASE_URL)),
                request_timeout=float(data.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)),
                resource_timeout=float(data.get("resource_timeout", DEFAULT_RESOURCE_TIMEOUT)),
                max_attempts=int(data.get("max_attempts", DEFAULT_MAX_ATTEMPTS)),
                retry_delay=float(data.get("retry_delay", DEFAULT_RETRY_DELAY)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid API configuration: {e}", cause=e) from e


def _validate_api_section(api: Dict[str, Any]) -> List[str]:
    errors = []

    base_url = api.get("base_url")
    parts = urlsplit(base_url) if isinstance(base_url, str) else None
    if parts is None or parts.scheme not in ("http", "https") or not parts.netloc:
        errors.append(f"Invalid base URL: {base_url}")

    for key in ("request_timeout", "resource_timeout"):
        value = api.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            errors.append(f"Invalid {key}: {value} (must be > 0)")

    attempts = api.get("max_attempts")
    if isinstance(attempts, bool) or not isinstance(attempts, int) or attempts < 1:
        errors.append(f"Invalid max_attempts: {attempts} (must be >= 1)")

    delay = api.get("retry_delay")
    if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
        errors.append(f"Invalid retry_delay: {delay} (must be >= 0)")

    return errors


# ============================================================================
# ConfigManager
# ============================================================================


class ConfigManager(CareSphereComponent):
    """Configuration manager

    Attributes:
        config_path: Path of the YAML configuration file
        env_file: Path of the .env file
    """

    def __init__(self, config_path: Optional[Path] = None, env_file: Optional[Path] = None):
        super().__init__()

        if config_path is None:
            env_path = os.getenv(ENV_CONFIG_PATH)
            config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH
        if env_file is None:
            env_path = os.getenv(ENV_ENV_FILE)
            env_file = Path(env_path) if env_path else DEFAULT_ENV_FILE

        self.config_path = Path(config_path)
        self.env_file = Path(env_file)
        self._config: Dict[str, Any] = {}
        self._defaults = self._get_default_config()

        logger.info(f"ConfigManager created with path: {self.config_path}")

    async def initialize(self) -> None:
        """Load, override and validate the configuration.

        Raises:
            ConfigurationError: the file is unreadable or a value is invalid
        """
        if self.is_available():
            return
        self._set_state(ComponentState.INITIALIZING)

        try:
            self.load()
        except ConfigurationError as e:
            self._error = e
            self._set_state(ComponentState.ERROR)
            raise

        self._set_state(ComponentState.READY)
        logger.info("ConfigManager initialization completed")

    def load(self) -> Dict[str, Any]:
        """Synchronous counterpart of initialize() for scripts and tests.

        Returns:
            Dict[str, Any]: Resolved configuration (deep copy)
        """
        self._config = self.load_config(self.config_path)
        self._load_env_file()
        self._apply_env_overrides()

        errors = self.validate_config(self._config)
        if errors:
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(errors)}",
                config_file=str(self.config_path),
                details={"errors": errors},
            )
        return self.get_all()

    async def cleanup(self) -> None:
        self._set_state(ComponentState.TERMINATING)
        self._set_state(ComponentState.TERMINATED)
        logger.info("ConfigManager cleanup completed")

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        status.update(
            {
                "config_path": str(self.config_path),
                "config_loaded": bool(self._config),
            }
        )
        return status

    # ------------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a value by dotted key, e.g. ``"api.base_url"``."""
        value = self._config
        for k in key.split("."):
            if not isinstance(value, dict) or value.get(k) is None:
                return default
            value = value[k]
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a value by dotted key, creating intermediate sections."""
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        logger.debug(f"Configuration updated: {key}")

    def get_all(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)

    def get_api_configuration(self) -> APIConfiguration:
        """Build the APIClient configuration from the ``api`` section.

        Raises:
            ConfigurationError: a value in the section is invalid
        """
        if not self._config:
            self.load()
        return APIConfiguration.from_dict(self._config.get("api", {}))

    # ------------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------------

    def load_config(self, config_path: Path) -> Dict[str, Any]:
        """Read ``config_path`` and merge it over the defaults.

        A missing file is not an error; the defaults are returned.

        Raises:
            ConfigurationError: the file is unreadable or not a YAML mapping
        """
        logger.debug(f"Loading config from: {config_path}")

        if not config_path.exists():
            logger.info(f"Config file not found: {config_path}, using defaults")
            return copy.deepcopy(self._defaults)

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML config file: {e}", config_file=str(config_path), cause=e
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to load config file: {e}", config_file=str(config_path), cause=e
            ) from e

        if not isinstance(config, dict):
            raise ConfigurationError(
                "Config file must contain a mapping", config_file=str(config_path)
            )

        logger.info(f"Configuration loaded from {config_path}")
        return self._deep_merge(copy.deepcopy(self._defaults), config)

    def save_config(self, config: Dict[str, Any], config_path: Optional[Path] = None) -> None:
        """Write ``config`` as YAML.

        Raises:
            ConfigurationError: the file could not be written (E0003)
        """
        config_path = config_path or self.config_path
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(config, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
        except OSError as e:
            raise ConfigurationError(
                f"Failed to save config file: {e}",
                config_file=str(config_path),
                error_code="E0003",
                cause=e,
            ) from e

        logger.info(f"Configuration saved to {config_path}")

    # ------------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------------

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        """Validate a configuration dict.

        Returns:
            List[str]: Error messages (empty when valid)
        """
        errors = []

        api = config.get("api")
        if not isinstance(api, dict):
            errors.append("Missing required section: api")
        else:
            errors.extend(_validate_api_section(api))

        credentials = config.get("credentials", {})
        backend = credentials.get("backend") if isinstance(credentials, dict) else None
        if backend not in CREDENTIAL_BACKENDS:
            errors.append(f"Invalid credentials.backend: {backend}")

        logging_section = config.get("logging", {})
        level = logging_section.get("level") if isinstance(logging_section, dict) else None
        if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
            errors.append(f"Invalid logging.level: {level}")
        log_dir = logging_section.get("dir") if isinstance(logging_section, dict) else None
        if log_dir is not None and not isinstance(log_dir, str):
            errors.append(f"Invalid logging.dir: {log_dir}")

        return errors

    # ------------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------------

    def _load_env_file(self) -> None:
        if self.env_file.exists():
            # existing process variables take precedence over the file
            load_dotenv(self.env_file, override=False)
            logger.debug(f"Loaded environment file: {self.env_file}")

    def _apply_env_overrides(self) -> None:
        base_url = os.getenv(ENV_API_BASE_URL)
        if base_url:
            self.set("api.base_url", base_url)
            logger.debug(f"Environment override: api.base_url = {base_url}")

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX) or ENV_NESTING not in env_key:
                continue
            config_key = env_key[len(ENV_PREFIX) :].lower().replace(ENV_NESTING, ".")
            self.set(config_key, self._parse_env_value(env_value))
            logger.debug(f"Environment override: {config_key}")

    def _parse_env_value(self, value: str) -> Any:
        lowered = value.lower()
        if lowered in ("true", "yes"):
            return True
        if lowered in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            return value

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _get_default_config(self) -> Dict[str, Any]:
        return {
            "api": {
                "base_url": DEFAULT_API_BASE_URL,
                "request_timeout": DEFAULT_REQUEST_TIMEOUT,
                "resource_timeout": DEFAULT_RESOURCE_TIMEOUT,
                "max_attempts": DEFAULT_MAX_ATTEMPTS,
                "retry_delay": DEFAULT_RETRY_DELAY,
            },
            "credentials": {
                "backend": "yaml",
                "path": None,
                "service": KEYCHAIN_SERVICE,
            },
            "logging": {"level": DEFAULT_LOG_LEVEL, "dir": None},
        }

    def __repr__(self) -> str:
        return (
            f"ConfigManager(config_path={self.config_path}, "
            f"state={self._state.value}, sections={list(self._config.keys())})"
        )
