"""Webflow CMS collection client authorized through the credential manager."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, TYPE_CHECKING

import httpx
from fastapi import status

from webflow_proxy.core.config import WebflowSettings
from webflow_proxy.core.errors import UpstreamUnavailableError, WebflowAPIError

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from webflow_proxy.services.credential_manager import CredentialManager

logger = logging.getLogger(__name__)


class WebflowCMSClient:
    """Read and write items of the configured Webflow collection."""

    PAGE_SIZE = 100

    def __init__(
        self,
        credential_manager: "CredentialManager",
        webflow_settings: WebflowSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._credentials = credential_manager
        self._webflow = webflow_settings
        self._transport = transport

    @property
    def _items_path(self) -> str:
        return f"/collections/{self._webflow.collection_id}/items"

    async def list_items(self) -> List[Dict[str, Any]]:
        """Return every item in the collection, following offset pagination."""
        items: List[Dict[str, Any]] = []
        offset = 0
        while True:
            response = await self._request(
                "GET",
                self._items_path,
                params={"offset": offset, "limit": self.PAGE_SIZE},
            )
            payload = response.json()
            page = payload.get("items", [])
            items.extend(page)
            total = payload.get("pagination", {}).get("total", len(items))
            offset += len(page)
            if not page or offset >= total:
                return items

    async def get_item(self, item_id: str) -> Dict[str, Any]:
        response = await self._request("GET", f"{self._items_path}/{item_id}")
        return response.json()

    async def create_item(self, field_data: Dict[str, Any]) -> Dict[str, Any]:
        body = {"isArchived": False, "isDraft": False, "fieldData": field_data}
        response = await self._request("POST", self._items_path, json=body)
        return response.json()

    async def update_item(self, item_id: str, field_data: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "PATCH", f"{self._items_path}/{item_id}", json={"fieldData": field_data}
        )
        return response.json()

    async def delete_item(self, item_id: str) -> None:
        await self._request("DELETE", f"{self._items_path}/{item_id}")

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        token = await self._credentials.get_valid_token()
        response = await self._send(method, path, token, **kwargs)
        if response.status_code == status.HTTP_401_UNAUTHORIZED:
            logger.info("Webflow returned 401 for %s %s; refreshing credential once.", method, path)
            await self._credentials.handle_upstream_auth_failure(token)
            token = await self._credentials.get_valid_token()
            response = await self._send(method, path, token, **kwargs)
            if response.status_code == status.HTTP_401_UNAUTHORIZED:
                await self._credentials.handle_upstream_auth_failure(token)

        if not response.is_success:
            raise WebflowAPIError(response.status_code, response.text)
        return response

    async def _send(self, method: str, path: str, token: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}", "accept": "application/json"}
        try:
            async with httpx.AsyncClient(
                base_url=self._webflow.api_base_url,
                timeout=self._webflow.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                return await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(
                f"Webflow API unreachable: {exc.__class__.__name__}"
            ) from exc


__all__ = ["WebflowCMSClient"]
