"""
CareSphere settings and constants

Constants, path definitions and environment variable names shared across the
package. Runtime values are resolved by ConfigManager; the values here are
the defaults it falls back to.
"""

from pathlib import Path

# ============================================================================
# Version
# ============================================================================

VERSION = "0.1.0"
AUTHOR = "CareSphere"

# ============================================================================
# Paths
# ============================================================================

# settings.py is three levels below the project root (src/caresphere/configuration)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

USER_SETTINGS_DIR = PROJECT_ROOT / "user_settings"
LOGS_DIR = PROJECT_ROOT / "logs"

DEFAULT_CONFIG_PATH = USER_SETTINGS_DIR / "config.yaml"
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"

# Durable token storage (keychain equivalent)
CREDENTIALS_DIR = Path.home() / ".caresphere"
CREDENTIALS_PATH = CREDENTIALS_DIR / "credentials.yaml"

# ============================================================================
# Environment variable names
# ============================================================================

ENV_PREFIX = "CARESPHERE_"
ENV_API_BASE_URL = "API_BASE_URL"
ENV_CONFIG_PATH = "CARESPHERE_CONFIG_PATH"
ENV_ENV_FILE = "CARESPHERE_ENV_FILE"
ENV_CREDENTIALS_PATH = "CARESPHERE_CREDENTIALS_PATH"
ENV_LOG_LEVEL = "CARESPHERE_LOG_LEVEL"
ENV_LOG_DIR = "CARESPHERE_LOG_DIR"
ENV_RUNTIME = "CARESPHERE_ENV"

# ============================================================================
# Network defaults
# ============================================================================

DEFAULT_API_BASE_URL = "https://caresphere.ekddigital.com"

# Per-request (idle) and per-resource (total) timeouts in seconds
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_RESOURCE_TIMEOUT = 60.0

# Total attempts per logical call, including the first
DEFAULT_MAX_ATTEMPTS = 3
# Fixed delay between attempts in seconds
DEFAULT_RETRY_DELAY = 1.0

USER_AGENT = f"CareSphere/{VERSION}"

# ============================================================================
# Credentials
# ============================================================================

KEYCHAIN_SERVICE = "CareSphereAuth"
ACCESS_TOKEN_ACCOUNT = "accessToken"
REFRESH_TOKEN_ACCOUNT = "refreshToken"

# ============================================================================
# Logging
# ============================================================================

DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# ============================================================================
# File permissions (POSIX)
# ============================================================================

SENSITIVE_FILE_PERMISSIONS = 0o600
SENSITIVE_DIR_PERMISSIONS = 0o700
