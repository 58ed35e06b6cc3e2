"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_cluster_service,
    get_credential_manager,
    get_oauth_state_encoder,
    get_sqlite_store,
    get_token_cipher_service,
    get_webflow_cms_client,
    get_webflow_oauth_client,
)
from .config import get_app_settings

__all__ = [
    "get_app_settings",
    "get_cluster_service",
    "get_credential_manager",
    "get_oauth_state_encoder",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_webflow_cms_client",
    "get_webflow_oauth_client",
]
