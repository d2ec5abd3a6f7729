"""pytest shared configuration"""

import logging
import os
from pathlib import Path

import pytest

from caresphere.core.api.client import APIClient
from caresphere.infrastructure.credential_manager import MemoryCredentialStore
from tests.mocks import BASE_URL, MockTransport


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Verbose logging for the package, quiet for third parties."""
    logging.basicConfig(
        level=logging.DEBUG, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)


# =============================================================================
# Environment
# =============================================================================


@pytest.fixture
def clean_environment(monkeypatch):
    """Remove every CARESPHERE_* variable and API_BASE_URL for one test."""
    for key in list(os.environ):
        if key.startswith("CARESPHERE_") or key == "API_BASE_URL":
            monkeypatch.delenv(key, raising=False)
    yield


# =============================================================================
# API client
# =============================================================================


@pytest.fixture
def credential_store() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def client(credential_store, transport) -> APIClient:
    """APIClient on a MockTransport, with no delay between attempts."""
    return APIClient(
        base_url=BASE_URL,
        credential_store=credential_store,
        transport=transport,
        retry_delay=0,
    )


@pytest.fixture
def tmp_config_dir(tmp_path) -> Path:
    config_dir = tmp_path / "user_settings"
    config_dir.mkdir()
    return config_dir


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: unit tests")
    config.addinivalue_line("markers", "integration: integration tests")
    config.addinivalue_line("markers", "slow: slow tests")


# =============================================================================
# Payloads
# =============================================================================


@pytest.fixture
def user_payload() -> dict:
    """User as serialized by the backend."""
    return {
        "id": "u-1",
        "email": "a@b.com",
        "firstName": "Ada",
        "lastName": "Byron",
        "role": "admin",
        "organizationId": "org-1",
        "isActive": True,
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-02T12:30:00.250Z",
        "lastLoginAt": None,
    }
