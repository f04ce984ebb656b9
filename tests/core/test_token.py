from __future__ import annotations

import httpx
import pytest

from container_log_stream.core.config import StreamConfig
from container_log_stream.core.errors import AuthError
from container_log_stream.core.token import TokenProvider


def _provider(handler) -> TokenProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TokenProvider(StreamConfig(api_base_url="http://api.test"), client=client)


@pytest.mark.asyncio
async def test_fetch_returns_and_holds_token() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"token": "abc.def.ghi"})

    provider = _provider(handler)
    token = await provider.fetch()

    assert token.value == "abc.def.ghi"
    assert provider.token == token
    assert seen == ["http://api.test/auth/jwt/"]
    assert "abc.def.ghi" not in repr(token)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={}),
        httpx.Response(200, json={"token": ""}),
        httpx.Response(200, json={"token": None}),
        httpx.Response(200, text="<html>login</html>"),
        httpx.Response(200, json={"token": 123}),
        httpx.Response(401, json={"detail": "not logged in"}),
        httpx.Response(500, text="boom"),
    ],
)
async def test_fetch_rejects_bad_responses(response: httpx.Response) -> None:
    provider = _provider(lambda request: response)
    with pytest.raises(AuthError):
        await provider.fetch()
    assert provider.token is None


@pytest.mark.asyncio
async def test_fetch_unreachable_endpoint() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectError("connection refused", request=request)

    provider = _provider(handler)
    with pytest.raises(AuthError):
        await provider.fetch()
    assert calls == 1


@pytest.mark.asyncio
async def test_failed_refresh_keeps_nothing_after_invalidate() -> None:
    responses = [httpx.Response(200, json={"token": "first"}), httpx.Response(503)]
    provider = _provider(lambda request: responses.pop(0))

    await provider.fetch()
    provider.invalidate()
    assert provider.token is None

    with pytest.raises(AuthError):
        await provider.fetch()
    assert provider.token is None
