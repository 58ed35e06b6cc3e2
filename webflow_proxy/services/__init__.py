"""Service layer exports."""

from .clusters import ClusterService
from .credential_manager import CredentialManager
from .token_cipher import TokenCipherService

__all__ = [
    "ClusterService",
    "CredentialManager",
    "TokenCipherService",
]
