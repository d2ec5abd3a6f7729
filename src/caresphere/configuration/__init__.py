"""
CareSphere Configuration Package

ConfigManager for file and environment configuration, and the settings
module holding constants and defaults.
"""

from caresphere.configuration.config_manager import APIConfiguration, ConfigManager
from caresphere.configuration.settings import (
    CREDENTIALS_PATH,
    DEFAULT_API_BASE_URL,
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RESOURCE_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    LOGS_DIR,
    PROJECT_ROOT,
    USER_SETTINGS_DIR,
    VERSION,
)

__all__ = [
    # classes
    "ConfigManager",
    "APIConfiguration",
    # version
    "VERSION",
    # paths
    "PROJECT_ROOT",
    "USER_SETTINGS_DIR",
    "LOGS_DIR",
    "DEFAULT_CONFIG_PATH",
    "CREDENTIALS_PATH",
    # defaults
    "DEFAULT_API_BASE_URL",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_RESOURCE_TIMEOUT",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_LOG_LEVEL",
]
