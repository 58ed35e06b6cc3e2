"""
Lifecycle management for the Webflow OAuth credential.

The manager is the only writer of the persisted credential record. It hands
out a usable access token, refreshes it when the local expiry check or an
upstream rejection says it is stale, and makes sure concurrent callers share a
single refresh instead of each spending the refresh token.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Protocol

from pydantic import ValidationError

from webflow_proxy.core.errors import (
    MissingAuthorizationCodeError,
    ReauthorizationRequiredError,
    UpstreamAuthError,
)
from webflow_proxy.models.credentials import CredentialRecord, CredentialState, TokenGrant
from webflow_proxy.services.token_cipher import TokenCipherService, TokenDecryptionError

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """Key-value persistence; implementations raise ``StorageUnavailableError``."""

    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def set(self, key: str, value: Dict[str, Any]) -> None: ...


class TokenEndpointClient(Protocol):
    async def exchange_authorization_code(self, code: str) -> TokenGrant: ...

    async def refresh_token(self, refresh_token: str) -> TokenGrant: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialManager:
    """Acquires, persists and refreshes the account-wide Webflow credential."""

    DEFAULT_CREDENTIAL_KEY = "webflow:oauth"

    def __init__(
        self,
        *,
        store: CredentialStore,
        oauth_client: TokenEndpointClient,
        token_cipher: TokenCipherService,
        credential_key: str = DEFAULT_CREDENTIAL_KEY,
        refresh_skew: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._cipher = token_cipher
        self._key = credential_key
        self._skew = refresh_skew
        self._clock = clock
        # Serializes read-modify-write of the record.
        self._lock = asyncio.Lock()
        self._inflight: dict[str, asyncio.Task[CredentialRecord]] = {}

    async def get_valid_token(self) -> str:
        """Return a usable access token, refreshing it first when stale."""
        record = await self._load()
        if record is None:
            raise ReauthorizationRequiredError(
                "Webflow is not authorized. Complete the OAuth flow to connect the account."
            )
        if record.state(now=self._clock(), skew=self._skew) is CredentialState.AUTHORIZED:
            return record.access_token
        if not record.refresh_token:
            raise ReauthorizationRequiredError(
                "Webflow access token is no longer valid and no refresh token is stored. "
                "Re-authorize the app."
            )
        refreshed = await self._refresh_single_flight()
        return refreshed.access_token

    async def complete_authorization(self, code: str | None) -> CredentialRecord:
        """Exchange a one-time authorization code and persist the resulting record."""
        if not code or not code.strip():
            raise MissingAuthorizationCodeError("Authorization code is missing.")

        issued_at = self._clock()
        # A rejected code leaves the stored record untouched.
        grant = await self._oauth.exchange_authorization_code(code)
        record = CredentialRecord.from_grant(grant, now=issued_at)
        async with self._lock:
            await self._save(record)
        logger.info(
            "Webflow access token received and stored (expires_at=%s, refreshable=%s).",
            record.expires_at.isoformat() if record.expires_at else "never",
            record.refresh_token is not None,
        )
        return record

    async def handle_upstream_auth_failure(self, rejected_token: str | None = None) -> None:
        """
        Mark the stored credential expired after the CMS rejected it.

        When ``rejected_token`` is given and a newer token has already replaced
        it, nothing happens: the caller simply raced a refresh that succeeded.
        """
        async with self._lock:
            record = await self._load()
            if record is None or record.invalidated:
                return
            if rejected_token is not None and rejected_token != record.access_token:
                return
            await self._save(
                record.model_copy(update={"invalidated": True, "updated_at": self._clock()})
            )
        logger.warning("Webflow rejected the stored access token; credential marked expired.")

    async def state(self) -> CredentialState:
        record = await self._load()
        if record is None:
            return CredentialState.UNAUTHENTICATED
        return record.state(now=self._clock(), skew=self._skew)

    async def current_record(self) -> CredentialRecord | None:
        return await self._load()

    async def _refresh_single_flight(self) -> CredentialRecord:
        task = self._inflight.get(self._key)
        if task is None:
            task = asyncio.create_task(self._refresh())
            self._inflight[self._key] = task
            task.add_done_callback(self._clear_inflight)
        # Shielded so one cancelled waiter does not abort the refresh for the rest.
        return await asyncio.shield(task)

    def _clear_inflight(self, task: "asyncio.Task[CredentialRecord]") -> None:
        if self._inflight.get(self._key) is task:
            del self._inflight[self._key]
        if not task.cancelled():
            task.exception()

    async def _refresh(self) -> CredentialRecord:
        async with self._lock:
            record = await self._load()
            if record is None:
                raise ReauthorizationRequiredError(
                    "Webflow credential disappeared from storage; re-authorize the app."
                )
            refreshed_at = self._clock()
            if record.state(now=refreshed_at, skew=self._skew) is CredentialState.AUTHORIZED:
                # Replaced by a refresh or authorization that finished first.
                return record
            if not record.refresh_token:
                raise ReauthorizationRequiredError(
                    "Webflow access token is no longer valid and no refresh token is stored. "
                    "Re-authorize the app."
                )

            try:
                grant = await self._oauth.refresh_token(record.refresh_token)
            except UpstreamAuthError as exc:
                logger.warning(
                    "Webflow refused the stored refresh token (status=%s); "
                    "re-authorization required.",
                    exc.status_code,
                )
                await self._save(
                    record.model_copy(
                        update={
                            "invalidated": True,
                            "refresh_token": None,
                            "updated_at": refreshed_at,
                        }
                    )
                )
                raise ReauthorizationRequiredError(
                    "Webflow rejected the stored refresh token. Re-authorize the app."
                ) from exc

            refreshed = CredentialRecord.from_grant(
                grant, now=refreshed_at, created_at=record.created_at
            )
            await self._save(refreshed)
        logger.info("Webflow access token refreshed.")
        return refreshed

    async def _load(self) -> CredentialRecord | None:
        data = await asyncio.to_thread(self._store.get, self._key)
        if data is None:
            return None
        try:
            return CredentialRecord(
                access_token=self._cipher.decrypt(data["access_token_encrypted"]),
                refresh_token=self._cipher.decrypt_optional(data.get("refresh_token_encrypted")),
                expires_at=data.get("expires_at"),
                invalidated=data.get("invalidated", False),
                created_at=data["created_at"],
                updated_at=data["updated_at"],
            )
        except (
            KeyError, TypeError, AttributeError, ValidationError, TokenDecryptionError
        ) as exc:
            logger.error("Stored Webflow credential is unreadable: %s", exc.__class__.__name__)
            raise ReauthorizationRequiredError(
                "Stored Webflow credential is unreadable. Re-authorize the app."
            ) from exc

    async def _save(self, record: CredentialRecord) -> None:
        value = {
            "access_token_encrypted": self._cipher.encrypt(record.access_token),
            "refresh_token_encrypted": self._cipher.encrypt_optional(record.refresh_token),
            "expires_at": record.expires_at.isoformat() if record.expires_at else None,
            "invalidated": record.invalidated,
            "created_at": record.created_at.isoformat(),
            "updated_at": record.updated_at.isoformat(),
        }
        await asyncio.to_thread(self._store.set, self._key, value)


__all__ = ["CredentialManager", "CredentialStore", "TokenEndpointClient"]
