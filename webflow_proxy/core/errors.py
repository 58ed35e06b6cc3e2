"""Typed errors raised by the credential lifecycle and the CMS clients."""

from __future__ import annotations


class CredentialError(Exception):
    """Base class for failures obtaining or using the Webflow credential."""


class MissingAuthorizationCodeError(CredentialError):
    """Raised when the OAuth callback arrives without an authorization code."""


class UpstreamAuthError(CredentialError):
    """Raised when the token endpoint rejects an exchange or refresh."""

    def __init__(self, status_code: int, body: str, message: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"Token endpoint returned {status_code}: {body}")


class UpstreamUnavailableError(CredentialError):
    """Raised on network failures, timeouts or 5xx responses; safe to retry."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class ReauthorizationRequiredError(CredentialError):
    """Raised when no usable credential exists and none can be minted automatically."""


class StorageUnavailableError(CredentialError):
    """Raised when the persistent credential store cannot be read or written."""


class WebflowAPIError(Exception):
    """Raised when a CMS call fails for reasons other than authorization."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Webflow API returned {status_code}: {body}")


__all__ = [
    "CredentialError",
    "MissingAuthorizationCodeError",
    "ReauthorizationRequiredError",
    "StorageUnavailableError",
    "UpstreamAuthError",
    "UpstreamUnavailableError",
    "WebflowAPIError",
]
