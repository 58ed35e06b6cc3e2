"""Request and response models for the cluster endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ClusterCreateRequest(BaseModel):
    uid: str = Field(..., min_length=1, description="Firebase uid of the owner.")
    field_data: Dict[str, Any] = Field(..., alias="fieldData")

    model_config = ConfigDict(populate_by_name=True)


class ClusterUpdateRequest(BaseModel):
    uid: str = Field(..., min_length=1)
    item_id: str = Field(..., alias="itemId", min_length=1)
    field_data: Dict[str, Any] = Field(..., alias="fieldData")

    model_config = ConfigDict(populate_by_name=True)


class ClusterDeleteRequest(BaseModel):
    uid: str = Field(..., min_length=1)
    item_id: str = Field(..., alias="itemId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class ClusterListResponse(BaseModel):
    items: List[Dict[str, Any]]


__all__ = [
    "ClusterCreateRequest",
    "ClusterDeleteRequest",
    "ClusterListResponse",
    "ClusterUpdateRequest",
]
