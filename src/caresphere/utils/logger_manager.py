"""
Logging setup for the CareSphere package

Installs handlers on the ``caresphere`` logger once per process. Modules keep
logging through ``logging.getLogger(__name__)`` and inherit them:

    console            level from CARESPHERE_LOG_LEVEL, else ``logging.level``
    caresphere.log     every record, one JSON object per line
    errors.log         ERROR and above, JSON

Bearer tokens are masked before any handler sees a record.

Environment variables:
    CARESPHERE_ENV: development / test / production (picks the defaults)
    CARESPHERE_LOG_LEVEL: console level, wins over the config file
    CARESPHERE_LOG_DIR: directory for the log files
"""

import json
import logging
import logging.handlers
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from caresphere.configuration.settings import (
    CREDENTIALS_DIR,
    ENV_LOG_DIR,
    ENV_LOG_LEVEL,
    ENV_RUNTIME,
    LOG_LEVELS,
    LOGS_DIR,
)
from caresphere.core.exceptions import CareSphereError
from caresphere.infrastructure.credential_manager import mask_token

ROOT_LOGGER_NAME = "caresphere"

LOG_FILE_NAME = "caresphere.log"
ERROR_LOG_FILE_NAME = "errors.log"
MAX_LOG_BYTES = 10_485_760  # 10MB
LOG_BACKUP_COUNT = 5

DEFAULT_LEVEL_BY_ENV = {
    "production": "WARNING",
    "test": "INFO",
    "development": "DEBUG",
}

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT_BRIEF = "%(levelname)s - %(message)s"


# ============================================================================
# Token redaction
# ============================================================================

_BEARER = re.compile(r"(Bearer\s+)(\S+)")

# extra={...} keys whose values are raw tokens
TOKEN_FIELDS = frozenset({"access_token", "refresh_token", "accessToken", "refreshToken"})


def redact_bearer(text: str) -> str:
    """Replace every ``Bearer <token>`` in ``text`` with its masked form."""
    return _BEARER.sub(lambda m: m.group(1) + mask_token(m.group(2)), text)


class TokenRedactionFilter(logging.Filter):
    """Masks tokens in the message and in token-named ``extra`` fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        # each handler runs the filter; a record is masked once
        if getattr(record, "_tokens_redacted", False):
            return True
        record._tokens_redacted = True

        message = record.getMessage()
        redacted = redact_bearer(message)
        if redacted != message:
            record.msg = redacted
            record.args = None

        for field_name in TOKEN_FIELDS & record.__dict__.keys():
            value = getattr(record, field_name)
            if isinstance(value, str):
                setattr(record, field_name, mask_token(value))
        return True


# ============================================================================
# LoggerManager
# ============================================================================


class LoggerManager:
    """
    Process-wide logging configuration (singleton)

    The first construction installs the handlers; later constructions return
    the same instance untouched. Use ``from_config`` to apply a loaded
    configuration, which also re-applies the level on an existing instance.

    Attributes:
        env: Runtime environment name
        log_dir: Directory receiving the log files
        log_level: Console log level name
        debug_mode: Forces DEBUG and the detailed console format
    """

    _instance: Optional["LoggerManager"] = None
    _initialized: bool = False

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        log_level: Optional[str] = None,
        debug_mode: bool = False,
    ):
        if LoggerManager._initialized:
            return

        self.env = os.getenv(ENV_RUNTIME, "development")
        self.debug_mode = debug_mode
        self.log_dir = Path(log_dir) if log_dir else self._default_log_dir()
        self.log_level = self._resolve_level(log_level)

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._console_handler = self._install_handlers()

        LoggerManager._initialized = True
        self.get_logger(__name__).info(
            "Logging configured",
            extra={"env": self.env, "log_dir": str(self.log_dir), "log_level": self.log_level},
        )

    @classmethod
    def from_config(cls, config) -> "LoggerManager":
        """
        Apply the ``logging`` section of a loaded ConfigManager

        Args:
            config: ConfigManager providing ``logging.level`` and ``logging.dir``

        Returns:
            LoggerManager: the process instance
        """
        level = config.get("logging.level")
        if cls._initialized:
            cls._instance.set_level(level)
            return cls._instance

        log_dir = config.get("logging.dir")
        return cls(log_dir=Path(log_dir).expanduser() if log_dir else None, log_level=level)

    def set_level(self, level: Optional[str]) -> None:
        """Change the console level. CARESPHERE_LOG_LEVEL still takes precedence."""
        self.log_level = self._resolve_level(level)
        self._console_handler.setLevel(self.log_level)

    def _resolve_level(self, requested: Optional[str]) -> str:
        if self.debug_mode:
            return "DEBUG"
        level = os.getenv(ENV_LOG_LEVEL) or requested or DEFAULT_LEVEL_BY_ENV.get(self.env, "INFO")
        level = level.upper()
        return level if level in LOG_LEVELS else "INFO"

    def _default_log_dir(self) -> Path:
        if env_dir := os.getenv(ENV_LOG_DIR):
            return Path(env_dir)
        if self.env == "production":
            return CREDENTIALS_DIR / "logs"
        if self.env == "test":
            return Path(tempfile.gettempdir()) / "caresphere_test_logs"
        return LOGS_DIR

    # ------------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------------

    def _install_handlers(self) -> logging.Handler:
        """Replace the package handlers; returns the console handler."""
        package_logger = logging.getLogger(ROOT_LOGGER_NAME)
        package_logger.setLevel(logging.DEBUG)
        _detach_handlers(package_logger)

        console = logging.StreamHandler()
        console.setLevel(self.log_level)
        verbose = self.env == "development" or self.debug_mode
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT if verbose else CONSOLE_FORMAT_BRIEF))

        handlers = [
            console,
            self._rotating_handler(LOG_FILE_NAME, logging.DEBUG),
            self._rotating_handler(ERROR_LOG_FILE_NAME, logging.ERROR),
        ]
        redaction = TokenRedactionFilter()
        for handler in handlers:
            handler.addFilter(redaction)
            package_logger.addHandler(handler)
        return console

    def _rotating_handler(self, file_name: str, level: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            self.log_dir / file_name,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(JSONLogFormatter())
        return handler

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Logger inside the ``caresphere`` hierarchy (the prefix is added when missing)."""
        if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
            name = f"{ROOT_LOGGER_NAME}.{name}"
        return logging.getLogger(name)

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton and detach its handlers (tests)."""
        _detach_handlers(logging.getLogger(ROOT_LOGGER_NAME))
        cls._instance = None
        cls._initialized = False


def _detach_handlers(target: logging.Logger) -> None:
    for handler in list(target.handlers):
        target.removeHandler(handler)
        handler.close()


# ============================================================================
# JSON formatting
# ============================================================================

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class JSONLogFormatter(logging.Formatter):
    """One JSON object per record, ``extra`` fields included.

    CareSphereError exceptions are written through ``to_dict()`` so the
    error code and details land in the log as fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        )

        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            if isinstance(error, CareSphereError):
                entry["exception"] = error.to_dict()
            else:
                entry["exception"] = {"type": type(error).__name__, "message": str(error)}
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)
