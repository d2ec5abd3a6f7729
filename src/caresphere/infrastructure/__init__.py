"""
CareSphere Infrastructure Package

Durable storage for authentication tokens.
"""

from caresphere.infrastructure.credential_manager import (
    CredentialStore,
    MemoryCredentialStore,
    YAMLCredentialStore,
    mask_token,
)

__all__ = [
    "CredentialStore",
    "MemoryCredentialStore",
    "YAMLCredentialStore",
    "mask_token",
]
