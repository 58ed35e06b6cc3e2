"""Schemas related to the OAuth handshake and credential status."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from webflow_proxy.models.credentials import CredentialState


class AuthorizationStart(BaseModel):
    """Consent URL handed to API clients that do not follow redirects."""

    authorization_url: str
    state: str


class AuthorizationResult(BaseModel):
    """Returned once the authorization code has been exchanged."""

    status: str = "connected"
    expires_at: Optional[datetime] = None
    redirect_to: Optional[str] = None


class CredentialStatus(BaseModel):
    state: CredentialState
    expires_at: Optional[datetime] = None
    has_refresh_token: bool = Field(
        False, description="Whether the credential can be renewed without user interaction."
    )


__all__ = ["AuthorizationResult", "AuthorizationStart", "CredentialStatus"]
