"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the credential manager
and the operations scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _split_csv(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


class WebflowSettings(BaseSettings):
    """Configuration required for interacting with Webflow."""

    model_config = SettingsConfigDict(extra="ignore")

    client_id: str = Field(..., validation_alias="WEBFLOW_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="WEBFLOW_CLIENT_SECRET")
    redirect_uri: Optional[AnyHttpUrl] = Field(
        None,
        validation_alias="WEBFLOW_REDIRECT_URI",
        description="Callback registered with the Webflow app; omitted when only one is registered.",
    )
    collection_id: str = Field(..., validation_alias="COLLECTION_ID")
    api_base_url: str = Field(
        "https://api.webflow.com/v2", validation_alias="WEBFLOW_API_BASE_URL"
    )
    authorize_url: str = Field(
        "https://webflow.com/oauth/authorize", validation_alias="WEBFLOW_AUTHORIZE_URL"
    )
    token_url: str = Field(
        "https://api.webflow.com/oauth/access_token",
        validation_alias="WEBFLOW_TOKEN_URL",
    )
    request_timeout_seconds: float = Field(10.0, validation_alias="WEBFLOW_REQUEST_TIMEOUT")


class OAuthSettings(BaseSettings):
    """OAuth flow and credential lifecycle configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("cms:read", "cms:write", "sites:read"),
        validation_alias="OAUTH_SCOPES",
    )
    refresh_skew_seconds: int = Field(
        300,
        validation_alias="OAUTH_REFRESH_SKEW",
        description=(
            "Tokens this close to expiry are refreshed before use; capped at half"
            " the token lifetime."
        ),
    )
    credential_key: str = Field("webflow:oauth", validation_alias="OAUTH_CREDENTIAL_KEY")

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        return _split_csv(value)


class StorageSettings(BaseSettings):
    """Location of the persisted credential record."""

    model_config = SettingsConfigDict(extra="ignore")

    db_path: str = Field("data/credentials.db", validation_alias="CREDENTIAL_DB_PATH")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    port: int = Field(3004, validation_alias="PORT")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users back to the front-end.",
    )
    cors_allow_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        ("*",), validation_alias="CORS_ALLOW_ORIGINS"
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    webflow: WebflowSettings = Field(default_factory=WebflowSettings)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        return _split_csv(value)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "SecuritySettings",
    "StorageSettings",
    "WebflowSettings",
    "get_settings",
]
