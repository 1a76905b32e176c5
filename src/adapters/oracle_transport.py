"""OpenAI-compatible chat-completion transport for the oracle.

Talks to a local Ollama (or any /v1/chat/completions endpoint) over httpx.
The request runs inside whatever task awaits it, so cancelling that task
aborts the underlying connection.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from core.errors import MalformedOracleResponse, OracleUnavailable

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


class HttpOracleTransport:
    """Oracle transport adapter backed by a shared httpx.AsyncClient."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        temperature: float = 0.1,
        max_tokens: int = 50,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._url = url
        self._temperature = temperature
        self._max_tokens = max_tokens
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds, headers=headers)

    def build_payload(self, system_prompt: str, text: str, model: str) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": f'Message to analyze: "{text}"'},
            ],
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }

    async def complete(self, system_prompt: str, text: str, model: str) -> dict[str, Any]:
        """POST one completion request and return the decoded JSON body."""

        payload = self.build_payload(system_prompt, text, model)
        try:
            response = await self._client.post(self._url, json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise OracleUnavailable(f"Oracle timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:200]
            raise OracleUnavailable(f"Oracle HTTP {exc.response.status_code}: {body}") from exc
        except httpx.HTTPError as exc:
            raise OracleUnavailable(f"Oracle request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedOracleResponse("Oracle returned non-JSON body") from exc
        LOGGER.debug("Oracle raw response: %s", data)
        return data

    async def aclose(self) -> None:
        await self._client.aclose()
