"""
FastAPI application entrypoint for the Webflow proxy.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from webflow_proxy.api.routes import auth_router, router as api_router
from webflow_proxy.core.config import get_settings
from webflow_proxy.core.errors import (
    MissingAuthorizationCodeError,
    ReauthorizationRequiredError,
    StorageUnavailableError,
    UpstreamAuthError,
    UpstreamUnavailableError,
    WebflowAPIError,
)
from webflow_proxy.core.logging import configure_logging

logger = logging.getLogger(__name__)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ReauthorizationRequiredError)
    async def _reauthorization_required(
        request: Request, exc: ReauthorizationRequiredError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=HTTPStatus.UNAUTHORIZED,
            content={
                "error": "reauthorization_required",
                "detail": str(exc),
                "authorize_url": "/auth/authorize",
            },
        )

    @app.exception_handler(MissingAuthorizationCodeError)
    async def _missing_code(
        request: Request, exc: MissingAuthorizationCodeError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=HTTPStatus.BAD_REQUEST,
            content={"error": "missing_authorization_code", "detail": str(exc)},
        )

    @app.exception_handler(UpstreamAuthError)
    async def _upstream_auth(request: Request, exc: UpstreamAuthError) -> JSONResponse:
        return JSONResponse(
            status_code=HTTPStatus.BAD_GATEWAY,
            content={
                "error": "upstream_auth_error",
                "detail": "Webflow rejected the token request.",
                "upstream_status": exc.status_code,
            },
        )

    @app.exception_handler(UpstreamUnavailableError)
    async def _upstream_unavailable(
        request: Request, exc: UpstreamUnavailableError
    ) -> JSONResponse:
        logger.warning("Upstream unavailable on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            content={"error": "upstream_unavailable", "detail": "Webflow is unreachable; retry later."},
        )

    @app.exception_handler(StorageUnavailableError)
    async def _storage_unavailable(
        request: Request, exc: StorageUnavailableError
    ) -> JSONResponse:
        logger.error("Credential storage unavailable: %s", exc)
        return JSONResponse(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            content={"error": "storage_unavailable", "detail": "Credential storage is unavailable."},
        )

    @app.exception_handler(WebflowAPIError)
    async def _webflow_api(request: Request, exc: WebflowAPIError) -> JSONResponse:
        status_code = exc.status_code if 400 <= exc.status_code < 500 else HTTPStatus.BAD_GATEWAY
        logger.error("Webflow API error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": "webflow_api_error", "upstream_status": exc.status_code},
        )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Webflow CMS Proxy",
        version="0.1.0",
        description="Proxy between the frontend and Webflow CMS with managed OAuth credentials.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app)

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        return {"status": "ok"}

    app.include_router(auth_router)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
