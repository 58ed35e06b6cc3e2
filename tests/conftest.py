"""Pytest configuration and fakes shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for rootdir-relative imports
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
import copy
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from webflow_proxy.clients.webflow_cms import WebflowCMSClient
from webflow_proxy.core.config import WebflowSettings
from webflow_proxy.models.credentials import TokenGrant
from webflow_proxy.services.credential_manager import CredentialManager
from webflow_proxy.services.token_cipher import TokenCipherService


class FrozenClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeStore:
    def __init__(self) -> None:
        self.data: dict[str, dict] = {}
        self.writes = 0

    def get(self, key: str) -> dict | None:
        return copy.deepcopy(self.data.get(key))

    def set(self, key: str, value: dict) -> None:
        self.data[key] = copy.deepcopy(value)
        self.writes += 1


class StubTokenEndpoint:
    """Scripted token endpoint; results may be grants or exceptions to raise."""

    def __init__(self) -> None:
        self.exchange_results: list = []
        self.refresh_results: list = []
        self.codes: list[str] = []
        self.refresh_tokens: list[str] = []
        self.refresh_delay = 0.0

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        self.codes.append(code)
        return self._next(self.exchange_results)

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        self.refresh_tokens.append(refresh_token)
        if self.refresh_delay:
            await asyncio.sleep(self.refresh_delay)
        return self._next(self.refresh_results)

    @staticmethod
    def _next(results: list) -> TokenGrant:
        if not results:
            raise AssertionError("No token endpoint result configured")
        result = results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def token_endpoint() -> StubTokenEndpoint:
    return StubTokenEndpoint()


@pytest.fixture
def cipher() -> TokenCipherService:
    return TokenCipherService(secret="unit-test-secret")


@pytest.fixture
def manager(store, token_endpoint, cipher, clock) -> CredentialManager:
    return CredentialManager(
        store=store,
        oauth_client=token_endpoint,
        token_cipher=cipher,
        credential_key="webflow:oauth",
        refresh_skew=timedelta(minutes=5),
        clock=clock,
    )


class FakeWebflowCollection:
    """In-memory stand-in for the Webflow collection items API."""

    def __init__(self, collection_id: str = "test-collection") -> None:
        self.prefix = f"/v2/collections/{collection_id}/items"
        self.items: dict[str, dict] = {}
        self.valid_tokens: set[str] = set()
        self.requests: list[httpx.Request] = []
        self._next_id = 1

    def seed(self, uid: str, **field_data) -> dict:
        item_id = f"item-{self._next_id}"
        self._next_id += 1
        item = {"id": item_id, "fieldData": {**field_data, "firebase-uid": uid}}
        self.items[item_id] = item
        return item

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        token = request.headers.get("authorization", "").removeprefix("Bearer ")
        if token not in self.valid_tokens:
            return httpx.Response(401, json={"code": "not_authorized"})

        path = request.url.path
        if not path.startswith(self.prefix):
            return httpx.Response(404, json={"code": "resource_not_found"})
        item_id = path[len(self.prefix):].strip("/")

        if not item_id and request.method == "GET":
            offset = int(request.url.params.get("offset", 0))
            limit = int(request.url.params.get("limit", 100))
            everything = list(self.items.values())
            return httpx.Response(
                200,
                json={
                    "items": everything[offset:offset + limit],
                    "pagination": {"offset": offset, "limit": limit, "total": len(everything)},
                },
            )
        if not item_id and request.method == "POST":
            body = json.loads(request.content)
            item = self.seed(body["fieldData"]["firebase-uid"])
            item["fieldData"].update(body["fieldData"])
            return httpx.Response(200, json=item)

        if item_id not in self.items:
            return httpx.Response(404, json={"code": "resource_not_found"})
        if request.method == "GET":
            return httpx.Response(200, json=self.items[item_id])
        if request.method == "PATCH":
            body = json.loads(request.content)
            self.items[item_id]["fieldData"].update(body["fieldData"])
            return httpx.Response(200, json=self.items[item_id])
        if request.method == "DELETE":
            del self.items[item_id]
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture
def webflow() -> FakeWebflowCollection:
    return FakeWebflowCollection()


@pytest.fixture
def webflow_settings() -> WebflowSettings:
    return WebflowSettings(
        WEBFLOW_CLIENT_ID="client",
        WEBFLOW_CLIENT_SECRET="secret",
        COLLECTION_ID="test-collection",
        WEBFLOW_API_BASE_URL="https://api.webflow.test/v2",
    )


@pytest.fixture
def cms_client(manager, webflow, webflow_settings) -> WebflowCMSClient:
    return WebflowCMSClient(
        manager, webflow_settings, transport=httpx.MockTransport(webflow.handler)
    )
