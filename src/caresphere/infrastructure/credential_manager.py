"""Secure storage for authentication tokens

The API client treats credential storage as an opaque key-value store with
get/set/delete by string key. Two implementations are provided:

    MemoryCredentialStore: process-local, for tests and previews
    YAMLCredentialStore:   durable YAML file readable only by the owner,
                           the keychain equivalent on desktop platforms

Stores serialize their own reads and writes.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import yaml

from caresphere.configuration.settings import (
    CREDENTIALS_PATH,
    ENV_CREDENTIALS_PATH,
    KEYCHAIN_SERVICE,
    SENSITIVE_DIR_PERMISSIONS,
    SENSITIVE_FILE_PERMISSIONS,
)
from caresphere.core.exceptions import CredentialStoreError

logger = logging.getLogger(__name__)


class CredentialStore(ABC):
    """Key-value store for credential strings."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None.

        Raises:
            CredentialStoreError: the backing storage could not be read
        """

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Raises:
            CredentialStoreError: the backing storage could not be written
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; deleting a missing key is not an error.

        Raises:
            CredentialStoreError: the backing storage could not be written
        """


class MemoryCredentialStore(CredentialStore):
    """In-memory store. Nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def __len__(self) -> int:
        return len(self._values)


class YAMLCredentialStore(CredentialStore):
    """Durable store backed by a YAML file.

    Values are grouped under a service name, so several applications can share
    one file:

        CareSphereAuth:
          accessToken: "..."
          refreshToken: "..."

    The file is written atomically with owner-only permissions.

    Attributes:
        path: Location of the YAML file
        service: Section of the file holding this store's keys
    """

    def __init__(self, path: Optional[Path] = None, service: str = KEYCHAIN_SERVICE):
        if path is None:
            env_path = os.getenv(ENV_CREDENTIALS_PATH)
            path = Path(env_path).expanduser() if env_path else CREDENTIALS_PATH
        self.path = Path(path)
        self.service = service
        self._lock = threading.Lock()
        logger.debug(f"YAMLCredentialStore using {self.path} [{self.service}]")

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read().get(self.service, {}).get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            section = data.setdefault(self.service, {})
            section[key] = value
            self._write(data, key)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            section = data.get(self.service, {})
            if key not in section:
                return
            del section[key]
            if not section:
                data.pop(self.service, None)
            self._write(data, key)

    def _read(self) -> Dict[str, Dict[str, str]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise CredentialStoreError(
                f"Invalid YAML format in {self.path}: {e}", cause=e
            ) from e
        except OSError as e:
            raise CredentialStoreError(f"Failed to read {self.path}: {e}", cause=e) from e

        if not isinstance(data, dict):
            raise CredentialStoreError(f"Unexpected credential file layout in {self.path}")
        section = data.get(self.service)
        if section is not None and not isinstance(section, dict):
            raise CredentialStoreError(
                f"Unexpected credential file layout in {self.path}: {self.service}"
            )
        return data

    def _write(self, data: Dict[str, Dict[str, str]], key: str) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True, mode=SENSITIVE_DIR_PERMISSIONS)
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, SENSITIVE_FILE_PERMISSIONS)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True)
            os.replace(tmp_path, self.path)
        except (OSError, yaml.YAMLError) as e:
            tmp_path.unlink(missing_ok=True)
            raise CredentialStoreError(
                f"Failed to write {self.path}: {e}", key=key, cause=e
            ) from e


def mask_token(token: Optional[str]) -> str:
    """Mask a token for log output.

    Examples:
        >>> mask_token("eyJhbGciOiJIUzI1NiJ9.payload.signature")
        'eyJh...ture'
        >>> mask_token("short")
        '***'
    """
    if not token or len(token) < 8:
        return "***"

    visible_chars = 2 if len(token) < 20 else 4
    return f"{token[:visible_chars]}...{token[-visible_chars:]}"


__all__ = [
    "CredentialStore",
    "MemoryCredentialStore",
    "YAMLCredentialStore",
    "mask_token",
]
