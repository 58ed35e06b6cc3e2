"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Everything holding state (the credential manager above all) is cached so the
process builds it once and every request shares the same instance.
"""

from datetime import timedelta
from functools import lru_cache

from webflow_proxy.clients import (
    OAuthStateEncoder,
    SQLiteStore,
    WebflowCMSClient,
    WebflowOAuthClient,
)
from webflow_proxy.core.config import get_settings
from webflow_proxy.services import ClusterService, CredentialManager, TokenCipherService


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder derived from the Webflow client secret."""
    settings = _settings()
    return OAuthStateEncoder(secret_key=settings.webflow.client_secret)


@lru_cache()
def get_webflow_oauth_client() -> WebflowOAuthClient:
    """Create a singleton Webflow OAuth client."""
    settings = _settings()
    return WebflowOAuthClient(settings.webflow, settings.oauth)


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide the shared credential store."""
    settings = _settings()
    return SQLiteStore(settings.storage.db_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.webflow.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_credential_manager() -> CredentialManager:
    """Provide the process-wide credential manager."""
    settings = _settings()
    return CredentialManager(
        store=get_sqlite_store(),
        oauth_client=get_webflow_oauth_client(),
        token_cipher=get_token_cipher_service(),
        credential_key=settings.oauth.credential_key,
        refresh_skew=timedelta(seconds=settings.oauth.refresh_skew_seconds),
    )


@lru_cache()
def get_webflow_cms_client() -> WebflowCMSClient:
    """Provide the CMS client bound to the shared credential manager."""
    settings = _settings()
    return WebflowCMSClient(get_credential_manager(), settings.webflow)


def get_cluster_service() -> ClusterService:
    """Build a cluster service over the configured collection."""
    return ClusterService(get_webflow_cms_client())


__all__ = [
    "get_cluster_service",
    "get_credential_manager",
    "get_oauth_state_encoder",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_webflow_cms_client",
    "get_webflow_oauth_client",
]
