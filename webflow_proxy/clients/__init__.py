"""Expose constructed client wrappers."""

from .sqlite_store import SQLiteStore
from .webflow_auth import OAuthStateEncoder, WebflowOAuthClient
from .webflow_cms import WebflowCMSClient

__all__ = [
    "OAuthStateEncoder",
    "SQLiteStore",
    "WebflowCMSClient",
    "WebflowOAuthClient",
]
