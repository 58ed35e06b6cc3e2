"""Public schema exports."""

from .auth import AuthorizationResult, AuthorizationStart, CredentialStatus
from .cluster import (
    ClusterCreateRequest,
    ClusterDeleteRequest,
    ClusterListResponse,
    ClusterUpdateRequest,
)

__all__ = [
    "AuthorizationResult",
    "AuthorizationStart",
    "ClusterCreateRequest",
    "ClusterDeleteRequest",
    "ClusterListResponse",
    "ClusterUpdateRequest",
    "CredentialStatus",
]
