"""
Domain models for the persisted OAuth credential.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialState(str, Enum):
    """Lifecycle states of the singleton credential record."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZED = "authorized"
    EXPIRED = "expired"


class TokenGrant(BaseModel):
    """Successful response from the token endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None


class CredentialRecord(BaseModel):
    """The access/refresh token pair the proxy uses for every CMS call."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    invalidated: bool = Field(
        False,
        description="Set once upstream rejected the token or its refresh.",
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_grant(
        cls, grant: TokenGrant, *, now: datetime, created_at: datetime | None = None
    ) -> "CredentialRecord":
        expires_at = None
        if grant.expires_in is not None:
            expires_at = now + timedelta(seconds=grant.expires_in)
        return cls(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=expires_at,
            created_at=created_at or now,
            updated_at=now,
        )

    def state(self, *, now: datetime, skew: timedelta) -> CredentialState:
        """Classify the record; records without an expiry only expire on rejection.

        The refresh margin never exceeds half the token's lifetime, so a short-lived
        grant is usable right after it is stored.
        """
        if self.invalidated:
            return CredentialState.EXPIRED
        if self.expires_at is None:
            return CredentialState.AUTHORIZED
        lifetime = max(self.expires_at - self.updated_at, timedelta(0))
        margin = min(skew, lifetime / 2)
        if now > self.expires_at - margin:
            return CredentialState.EXPIRED
        return CredentialState.AUTHORIZED


__all__ = ["CredentialRecord", "CredentialState", "TokenGrant"]
