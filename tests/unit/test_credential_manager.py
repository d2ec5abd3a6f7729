"""Credential store unit tests"""

import os
import stat
import sys

import pytest
import yaml

from caresphere.core.exceptions import CredentialStoreError
from caresphere.infrastructure.credential_manager import (
    MemoryCredentialStore,
    YAMLCredentialStore,
    mask_token,
)

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def credentials_path(tmp_path):
    return tmp_path / "caresphere" / "credentials.yaml"


@pytest.fixture
def yaml_store(credentials_path):
    return YAMLCredentialStore(path=credentials_path)


# ============================================================================
# MemoryCredentialStore
# ============================================================================


@pytest.mark.unit
class TestMemoryCredentialStore:
    """In-memory store"""

    def test_get_set_delete(self):
        store = MemoryCredentialStore()

        assert store.get("accessToken") is None
        store.set("accessToken", "T1")
        assert store.get("accessToken") == "T1"
        store.delete("accessToken")
        assert store.get("accessToken") is None

    def test_delete_missing_key(self):
        MemoryCredentialStore().delete("missing")

    def test_initial_values_are_copied(self):
        initial = {"accessToken": "T1"}
        store = MemoryCredentialStore(initial)
        store.set("accessToken", "T2")

        assert initial["accessToken"] == "T1"
        assert len(store) == 1


# ============================================================================
# YAMLCredentialStore
# ============================================================================


@pytest.mark.unit
class TestYAMLCredentialStore:
    """File-backed store"""

    def test_missing_file_reads_as_empty(self, yaml_store):
        assert yaml_store.get("accessToken") is None

    def test_set_creates_file_under_service(self, yaml_store, credentials_path):
        yaml_store.set("accessToken", "T1")
        yaml_store.set("refreshToken", "R1")

        data = yaml.safe_load(credentials_path.read_text(encoding="utf-8"))
        assert data == {"CareSphereAuth": {"accessToken": "T1", "refreshToken": "R1"}}

    def test_values_survive_a_new_instance(self, yaml_store, credentials_path):
        yaml_store.set("accessToken", "T1")

        assert YAMLCredentialStore(path=credentials_path).get("accessToken") == "T1"

    def test_delete(self, yaml_store, credentials_path):
        yaml_store.set("accessToken", "T1")
        yaml_store.set("refreshToken", "R1")

        yaml_store.delete("accessToken")
        assert yaml_store.get("accessToken") is None
        assert yaml_store.get("refreshToken") == "R1"

        yaml_store.delete("refreshToken")
        assert yaml.safe_load(credentials_path.read_text(encoding="utf-8")) == {}

    def test_delete_missing_key_does_not_create_file(self, yaml_store, credentials_path):
        yaml_store.delete("accessToken")
        assert not credentials_path.exists()

    def test_services_are_isolated(self, credentials_path):
        auth = YAMLCredentialStore(path=credentials_path)
        other = YAMLCredentialStore(path=credentials_path, service="Other")

        auth.set("accessToken", "T1")
        other.set("accessToken", "X1")

        assert auth.get("accessToken") == "T1"
        assert other.get("accessToken") == "X1"

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_owner_only(self, yaml_store, credentials_path):
        yaml_store.set("accessToken", "T1")

        mode = stat.S_IMODE(os.stat(credentials_path).st_mode)
        assert mode == 0o600

    def test_no_temporary_file_left(self, yaml_store, credentials_path):
        yaml_store.set("accessToken", "T1")
        assert [p.name for p in credentials_path.parent.iterdir()] == ["credentials.yaml"]

    def test_invalid_yaml(self, yaml_store, credentials_path):
        credentials_path.parent.mkdir(parents=True)
        credentials_path.write_text("key: [unclosed", encoding="utf-8")

        with pytest.raises(CredentialStoreError) as exc_info:
            yaml_store.get("accessToken")
        assert exc_info.value.error_code == "E5101"

    def test_unexpected_layout(self, yaml_store, credentials_path):
        credentials_path.parent.mkdir(parents=True)
        credentials_path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(CredentialStoreError):
            yaml_store.get("accessToken")

    def test_non_string_value_ignored(self, yaml_store, credentials_path):
        credentials_path.parent.mkdir(parents=True)
        credentials_path.write_text("CareSphereAuth:\n  accessToken: 123\n", encoding="utf-8")

        assert yaml_store.get("accessToken") is None

    def test_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "env-credentials.yaml"
        monkeypatch.setenv("CARESPHERE_CREDENTIALS_PATH", str(path))

        assert YAMLCredentialStore().path == path

    def test_write_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        store = YAMLCredentialStore(path=blocker / "credentials.yaml")

        with pytest.raises(CredentialStoreError) as exc_info:
            store.set("accessToken", "T1")
        assert exc_info.value.details["key"] == "accessToken"

    def test_failed_replace_removes_temporary_file(self, yaml_store, credentials_path, monkeypatch):
        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)

        with pytest.raises(CredentialStoreError):
            yaml_store.set("accessToken", "T1")
        assert list(credentials_path.parent.iterdir()) == []


# ============================================================================
# mask_token
# ============================================================================


@pytest.mark.unit
class TestMaskToken:
    """Token masking for logs"""

    @pytest.mark.parametrize(
        "token, expected",
        [
            ("eyJhbGciOiJIUzI1NiJ9.payload.signature", "eyJh...ture"),
            ("abcdefghij", "ab...ij"),
            ("short", "***"),
            ("", "***"),
            (None, "***"),
        ],
    )
    def test_mask_token(self, token, expected):
        assert mask_token(token) == expected
