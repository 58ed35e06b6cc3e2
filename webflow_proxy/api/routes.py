"""
FastAPI routes for the Webflow proxy.

``auth_router`` carries the OAuth handshake at the paths registered with the
Webflow app; ``router`` carries the JSON API consumed by the frontend.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from http import HTTPStatus
from typing import Annotated, Any
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from webflow_proxy.core.errors import UpstreamAuthError
from webflow_proxy.dependencies import (
    get_app_settings,
    get_cluster_service,
    get_credential_manager,
    get_oauth_state_encoder,
    get_webflow_oauth_client,
)
from webflow_proxy.schemas import (
    AuthorizationResult,
    AuthorizationStart,
    ClusterCreateRequest,
    ClusterDeleteRequest,
    ClusterListResponse,
    ClusterUpdateRequest,
    CredentialStatus,
)

router = APIRouter()
auth_router = APIRouter()
logger = logging.getLogger(__name__)

_SUCCESS_PAGE = (
    "<h1>Authentication Successful!</h1>"
    "<p>Your application is now connected to your Webflow site. "
    "You can close this window.</p>"
)


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


def _is_frontend_url(url: str | None, frontend_base_url: Any) -> bool:
    """Only URLs on the configured frontend origin are valid post-login targets."""
    if not url or not frontend_base_url:
        return False
    target = urlsplit(url)
    frontend = urlsplit(str(frontend_base_url))
    return (target.scheme.lower(), target.netloc.lower()) == (
        frontend.scheme.lower(),
        frontend.netloc.lower(),
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@auth_router.get("/auth/authorize", status_code=HTTPStatus.OK, response_model=None)
async def start_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_webflow_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    settings: Annotated[Any, Depends(get_app_settings)],
    redirect_to: str | None = Query(
        default=None,
        description="Optional URL to redirect back to on successful authentication.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Webflow consent screen.",
    ),
) -> AuthorizationStart | RedirectResponse:
    """Kick off the OAuth flow by generating a state token and authorization URL."""
    if redirect_to and not _is_frontend_url(redirect_to, settings.frontend_base_url):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="redirect_to must point at the configured frontend origin.",
        )
    state = state_encoder.encode(
        {
            "nonce": uuid.uuid4().hex,
            "redirect_to": redirect_to,
            "issued_at": datetime.now(timezone.utc).isoformat(),
        }
    )
    authorization_url = oauth_client.build_authorization_url(state=state)

    if redirect or _wants_html(request):
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)
    return AuthorizationStart(authorization_url=authorization_url, state=state)


def _verify_state(state_encoder: Any, state: str, ttl_seconds: int) -> dict:
    state_data = state_encoder.decode(state)
    issued_at_raw = state_data.get("issued_at")
    if not issued_at_raw:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Missing issued_at in state token.",
        )
    try:
        issued_at = datetime.fromisoformat(issued_at_raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Invalid issued_at in state token.",
        ) from exc
    if issued_at.tzinfo is None:
        issued_at = issued_at.replace(tzinfo=timezone.utc)

    if datetime.now(timezone.utc) - issued_at > timedelta(seconds=ttl_seconds):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="OAuth state token has expired."
        )
    return state_data


@auth_router.get("/auth/callback", status_code=HTTPStatus.OK)
async def handle_oauth_callback(
    request: Request,
    manager: Annotated[Any, Depends(get_credential_manager)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    settings: Annotated[Any, Depends(get_app_settings)],
    code: str | None = Query(default=None, description="Authorization code returned by Webflow."),
    state: str | None = Query(default=None, description="OAuth state token, when one was issued."),
    error: str | None = Query(default=None, description="Error reported by the consent screen."),
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    """Complete the OAuth exchange and persist the credential."""
    if error:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Authorization was not granted: {error}.",
        )

    state_data: dict = {}
    if state:
        state_data = _verify_state(state_encoder, state, settings.oauth.state_ttl_seconds)

    try:
        record = await manager.complete_authorization(code)
    except UpstreamAuthError as exc:
        logger.error("OAuth callback exchange failed with upstream status %s", exc.status_code)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc

    redirect_to = state_data.get("redirect_to")
    if not _is_frontend_url(redirect_to, settings.frontend_base_url):
        redirect_to = None
    result = AuthorizationResult(expires_at=record.expires_at, redirect_to=redirect_to)
    redirect_target = result.redirect_to or settings.frontend_base_url
    wants_html = _wants_html(request)

    if redirect_target and (redirect or wants_html):
        return RedirectResponse(url=str(redirect_target), status_code=HTTPStatus.TEMPORARY_REDIRECT)
    if wants_html:
        return HTMLResponse(content=_SUCCESS_PAGE)
    return JSONResponse(content=result.model_dump(mode="json"))


@auth_router.get("/auth/status", response_model=CredentialStatus)
async def credential_status(
    manager: Annotated[Any, Depends(get_credential_manager)],
) -> CredentialStatus:
    """Report whether the proxy currently holds a usable Webflow credential."""
    state = await manager.state()
    record = await manager.current_record()
    return CredentialStatus(
        state=state,
        expires_at=record.expires_at if record else None,
        has_refresh_token=bool(record and record.refresh_token),
    )


@router.post("/create-cluster", status_code=HTTPStatus.OK)
async def create_cluster(
    payload: ClusterCreateRequest,
    service: Annotated[Any, Depends(get_cluster_service)],
) -> dict:
    item = await service.create_cluster(uid=payload.uid, field_data=payload.field_data)
    return {"success": True, "item": item}


@router.get("/get-my-clusters", response_model=ClusterListResponse)
async def get_my_clusters(
    service: Annotated[Any, Depends(get_cluster_service)],
    uid: str = Query(..., min_length=1, description="Firebase uid of the requesting user."),
) -> ClusterListResponse:
    return ClusterListResponse(items=await service.list_clusters(uid=uid))


@router.patch("/update-cluster")
async def update_cluster(
    payload: ClusterUpdateRequest,
    service: Annotated[Any, Depends(get_cluster_service)],
) -> dict:
    item = await service.update_cluster(
        uid=payload.uid, item_id=payload.item_id, field_data=payload.field_data
    )
    return {"success": True, "item": item}


@router.delete("/delete-cluster")
async def delete_cluster(
    payload: ClusterDeleteRequest,
    service: Annotated[Any, Depends(get_cluster_service)],
) -> dict:
    await service.delete_cluster(uid=payload.uid, item_id=payload.item_id)
    return {"success": True}


__all__ = ["auth_router", "router"]
