"""
Webflow OAuth utilities.

These helpers build the consent URL and talk to the Webflow token endpoint.
They never retry: a failed exchange or refresh surfaces as a typed error and
the caller decides what to do next.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from hashlib import sha256
from typing import Any, Dict
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException, status
from pydantic import ValidationError

from webflow_proxy.core.config import OAuthSettings, WebflowSettings
from webflow_proxy.core.errors import UpstreamAuthError, UpstreamUnavailableError
from webflow_proxy.models.credentials import TokenGrant

logger = logging.getLogger(__name__)

# Statuses below 500 that say "try later" rather than "bad credential".
_RETRYABLE_STATUSES = frozenset({408, 429})


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed OAuth state.",
            ) from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OAuth state signature.",
            )
        return json.loads(serialized)


class WebflowOAuthClient:
    """Build Webflow authorization URLs and call the token endpoint."""

    def __init__(
        self,
        webflow_settings: WebflowSettings,
        oauth_settings: OAuthSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._webflow = webflow_settings
        self._oauth = oauth_settings
        self._transport = transport

    def build_authorization_url(self, state: str | None = None) -> str:
        """Construct the Webflow consent URL."""
        params = {
            "response_type": "code",
            "client_id": self._webflow.client_id,
            "scope": " ".join(self._oauth.scopes),
        }
        if self._webflow.redirect_uri:
            params["redirect_uri"] = str(self._webflow.redirect_uri)
        if state:
            params["state"] = state
        return f"{self._webflow.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange a one-time authorization code for a token grant."""
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self._webflow.client_id,
            "client_secret": self._webflow.client_secret,
        }
        if self._webflow.redirect_uri:
            payload["redirect_uri"] = str(self._webflow.redirect_uri)
        return await self._request_token(payload)

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Mint a new access token from a stored refresh token."""
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self._webflow.client_id,
            "client_secret": self._webflow.client_secret,
        }
        return await self._request_token(payload)

    async def _request_token(self, payload: Dict[str, str]) -> TokenGrant:
        grant_type = payload["grant_type"]
        try:
            async with httpx.AsyncClient(
                timeout=self._webflow.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self._webflow.token_url, data=payload)
        except httpx.HTTPError as exc:
            logger.warning("Token endpoint unreachable during %s: %s", grant_type, exc)
            raise UpstreamUnavailableError(
                f"Token endpoint unreachable: {exc.__class__.__name__}"
            ) from exc

        if response.status_code >= 500 or response.status_code in _RETRYABLE_STATUSES:
            raise UpstreamUnavailableError(
                f"Token endpoint returned {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        if not response.is_success:
            logger.warning(
                "Token endpoint rejected %s with status %s",
                grant_type,
                response.status_code,
            )
            raise UpstreamAuthError(response.status_code, response.text)

        try:
            return TokenGrant.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise UpstreamAuthError(
                response.status_code,
                response.text,
                "Incomplete token payload returned from Webflow.",
            ) from exc


__all__ = ["OAuthStateEncoder", "WebflowOAuthClient"]
