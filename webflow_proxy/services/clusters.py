"""Per-user views over the cluster collection, keyed by ``firebase-uid``."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import HTTPException, status

from webflow_proxy.clients.webflow_cms import WebflowCMSClient
from webflow_proxy.core.errors import WebflowAPIError

logger = logging.getLogger(__name__)

OWNER_FIELD = "firebase-uid"


class ClusterService:
    """Enforces that users only see and change the clusters they created."""

    def __init__(self, cms_client: WebflowCMSClient) -> None:
        self._cms = cms_client

    async def create_cluster(self, *, uid: str, field_data: Dict[str, Any]) -> Dict[str, Any]:
        data = {**field_data, OWNER_FIELD: uid}
        item = await self._cms.create_item(data)
        logger.info("Created cluster %s for uid %s", item.get("id"), uid)
        return item

    async def list_clusters(self, *, uid: str) -> List[Dict[str, Any]]:
        items = await self._cms.list_items()
        return [item for item in items if _owner_of(item) == uid]

    async def update_cluster(
        self, *, uid: str, item_id: str, field_data: Dict[str, Any]
    ) -> Dict[str, Any]:
        await self._owned_item(uid=uid, item_id=item_id)
        # Ownership cannot be reassigned through an update.
        data = {key: value for key, value in field_data.items() if key != OWNER_FIELD}
        return await self._cms.update_item(item_id, data)

    async def delete_cluster(self, *, uid: str, item_id: str) -> None:
        await self._owned_item(uid=uid, item_id=item_id)
        await self._cms.delete_item(item_id)
        logger.info("Deleted cluster %s for uid %s", item_id, uid)

    async def _owned_item(self, *, uid: str, item_id: str) -> Dict[str, Any]:
        try:
            item = await self._cms.get_item(item_id)
        except WebflowAPIError as exc:
            if exc.status_code == status.HTTP_404_NOT_FOUND:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Cluster not found.",
                ) from exc
            raise
        if _owner_of(item) != uid:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Cluster belongs to another user.",
            )
        return item


def _owner_of(item: Dict[str, Any]) -> Any:
    return (item.get("fieldData") or {}).get(OWNER_FIELD)


__all__ = ["ClusterService", "OWNER_FIELD"]
