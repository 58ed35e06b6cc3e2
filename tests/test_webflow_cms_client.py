from __future__ import annotations

import pytest

from webflow_proxy.core.errors import ReauthorizationRequiredError, WebflowAPIError
from webflow_proxy.models.credentials import CredentialState, TokenGrant


async def _connect(manager, token_endpoint, webflow, access: str = "T1", refresh: str | None = "R1") -> None:
    token_endpoint.exchange_results.append(
        TokenGrant(access_token=access, refresh_token=refresh, expires_in=3600)
    )
    await manager.complete_authorization("code")
    webflow.valid_tokens.add(access)


@pytest.mark.asyncio
async def test_requests_carry_bearer_token(cms_client, manager, token_endpoint, webflow) -> None:
    await _connect(manager, token_endpoint, webflow)
    webflow.seed("user-1", name="Alpha")

    items = await cms_client.list_items()

    assert [item["fieldData"]["name"] for item in items] == ["Alpha"]
    assert webflow.requests[0].headers["authorization"] == "Bearer T1"


@pytest.mark.asyncio
async def test_list_items_follows_pagination(cms_client, manager, token_endpoint, webflow) -> None:
    await _connect(manager, token_endpoint, webflow)
    for index in range(5):
        webflow.seed("user-1", name=f"cluster-{index}")
    cms_client.PAGE_SIZE = 2

    items = await cms_client.list_items()

    assert len(items) == 5
    offsets = [request.url.params["offset"] for request in webflow.requests]
    assert offsets == ["0", "2", "4"]


@pytest.mark.asyncio
async def test_revoked_token_is_refreshed_and_request_retried_once(
    cms_client, manager, token_endpoint, webflow
) -> None:
    await _connect(manager, token_endpoint, webflow)
    webflow.seed("user-1", name="Alpha")
    webflow.valid_tokens.discard("T1")
    webflow.valid_tokens.add("T2")
    token_endpoint.refresh_results.append(
        TokenGrant(access_token="T2", refresh_token="R2", expires_in=3600)
    )

    items = await cms_client.list_items()

    assert len(items) == 1
    assert token_endpoint.refresh_tokens == ["R1"]
    assert [request.headers["authorization"] for request in webflow.requests] == [
        "Bearer T1",
        "Bearer T2",
    ]
    assert await manager.state() is CredentialState.AUTHORIZED


@pytest.mark.asyncio
async def test_second_rejection_is_not_retried_again(
    cms_client, manager, token_endpoint, webflow
) -> None:
    await _connect(manager, token_endpoint, webflow)
    webflow.valid_tokens.clear()
    token_endpoint.refresh_results.append(
        TokenGrant(access_token="T2", refresh_token="R2", expires_in=3600)
    )

    with pytest.raises(WebflowAPIError) as excinfo:
        await cms_client.list_items()

    assert excinfo.value.status_code == 401
    assert len(webflow.requests) == 2
    assert await manager.state() is CredentialState.EXPIRED


@pytest.mark.asyncio
async def test_revoked_token_without_refresh_requires_reauthorization(
    cms_client, manager, token_endpoint, webflow
) -> None:
    await _connect(manager, token_endpoint, webflow, refresh=None)
    webflow.valid_tokens.clear()

    with pytest.raises(ReauthorizationRequiredError):
        await cms_client.get_item("item-1")

    assert token_endpoint.refresh_tokens == []


@pytest.mark.asyncio
async def test_missing_item_raises_api_error(cms_client, manager, token_endpoint, webflow) -> None:
    await _connect(manager, token_endpoint, webflow)

    with pytest.raises(WebflowAPIError) as excinfo:
        await cms_client.get_item("does-not-exist")

    assert excinfo.value.status_code == 404
