from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from adapters.oracle_transport import HttpOracleTransport
from core.errors import MalformedOracleResponse, OracleUnavailable

URL = "http://oracle.local/v1/chat/completions"


def _transport(handler) -> HttpOracleTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpOracleTransport(URL, temperature=0.2, max_tokens=10, client=client)


def test_posts_chat_completion_payload() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"choices": [{"message": {"content": "ДА"}}]})

    payload = asyncio.run(_transport(handler).complete("Is it spam?", "buy now", "qwen3:30b"))

    assert payload["choices"][0]["message"]["content"] == "ДА"
    body = seen[0]
    assert body["model"] == "qwen3:30b"
    assert body["messages"][0] == {"role": "system", "content": "Is it spam?"}
    assert body["messages"][1]["content"] == 'Message to analyze: "buy now"'
    assert body["temperature"] == 0.2
    assert body["max_tokens"] == 10


def test_http_errors_become_oracle_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="model loading")

    with pytest.raises(OracleUnavailable):
        asyncio.run(_transport(handler).complete("p", "t", "m"))


def test_network_errors_become_oracle_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(OracleUnavailable):
        asyncio.run(_transport(handler).complete("p", "t", "m"))


def test_non_json_body_is_malformed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy error</html>")

    with pytest.raises(MalformedOracleResponse):
        asyncio.run(_transport(handler).complete("p", "t", "m"))
