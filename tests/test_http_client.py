# mypy: ignore-errors
import httpx
import pytest
from fastapi import HTTPException
from jose import jwt

from app.core.auth import identity_from_token
from app.core.http_client import ApiError, BackendClient


def recording_client(responses, seen):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return responses.pop(0)

    http = httpx.AsyncClient(
        base_url="http://backend.test/api/v1",
        transport=httpx.MockTransport(handler),
    )
    return http


@pytest.mark.asyncio
async def test_token_and_cookies_are_forwarded() -> None:
    seen = []
    http = recording_client([httpx.Response(200, json={"ok": True})], seen)
    client = BackendClient(http, token="abc", cookies={"jwt": "abc", "theme": "dark"})

    assert await client.request("cart") == {"ok": True}

    request = seen[0]
    assert request.url.path == "/api/v1/cart"
    assert request.headers["Authorization"] == "Bearer abc"
    assert request.headers["Cookie"] == "jwt=abc; theme=dark"


@pytest.mark.asyncio
async def test_no_content_is_none() -> None:
    http = recording_client([httpx.Response(204)], [])
    assert await BackendClient(http).request("/cart", "DELETE") is None


@pytest.mark.asyncio
async def test_error_carries_backend_message_and_status() -> None:
    http = recording_client(
        [httpx.Response(404, json={"message": "Item not found in cart"})], []
    )
    with pytest.raises(ApiError) as exc:
        await BackendClient(http).request("/cart/items/p1", "PATCH", {"quantity": 2})

    assert exc.value.status_code == 404
    assert exc.value.message == "Item not found in cart"


@pytest.mark.asyncio
async def test_error_without_message_uses_default() -> None:
    http = recording_client([httpx.Response(500, json={})], [])
    with pytest.raises(ApiError) as exc:
        await BackendClient(http).request("/cart")
    assert exc.value.message == "Something went wrong"


@pytest.mark.asyncio
async def test_transport_errors_become_api_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    http = httpx.AsyncClient(
        base_url="http://backend.test", transport=httpx.MockTransport(handler)
    )
    with pytest.raises(ApiError) as exc:
        await BackendClient(http).request("/cart")

    assert exc.value.status_code is None
    assert isinstance(exc.value.__cause__, httpx.ConnectError)


def test_identity_from_token() -> None:
    token = jwt.encode({"id": "u1", "email": "a@example.com"}, "k", algorithm="HS256")

    identity = identity_from_token("sid", token, {"sid": "sid", "jwt": token})

    assert identity.is_authenticated
    assert identity.user_id == "u1"
    assert "sid" not in identity.cookies

    assert not identity_from_token("sid", None).is_authenticated


def test_malformed_token_is_401() -> None:
    with pytest.raises(HTTPException) as exc:
        identity_from_token("sid", "not-a-jwt")
    assert exc.value.status_code == 401
