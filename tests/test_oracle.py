from __future__ import annotations

import asyncio

import pytest

from core.cancellation import CancelToken
from core.config import ModerationConfig, OracleConfig
from core.errors import Cancelled, MalformedOracleResponse
from core.models import Topic
from core.oracle import OracleGateway, extract_content, parse_verdict


class FakeTransport:
    def __init__(self, payload) -> None:
        self.payload = payload
        self.calls: list[tuple[str, str, str]] = []

    async def complete(self, system_prompt: str, text: str, model: str):
        self.calls.append((system_prompt, text, model))
        return self.payload


class HangingTransport:
    async def complete(self, system_prompt: str, text: str, model: str):
        await asyncio.sleep(10)
        return {}


def test_extract_content_shapes() -> None:
    assert extract_content({"choices": [{"message": {"content": " ДА "}}]}) == "ДА"
    assert extract_content({"response": "NO"}) == "NO"
    assert extract_content({"content": "85"}) == "85"


@pytest.mark.parametrize(
    "payload",
    [[], {"foo": 1}, {"choices": [{"message": {"content": "  "}}]}, {"choices": [{"message": {}}]}],
)
def test_extract_content_rejects_malformed(payload) -> None:
    with pytest.raises(MalformedOracleResponse):
        extract_content(payload)


def test_auto_mode_prefers_tokens_then_numbers() -> None:
    config = OracleConfig()
    assert parse_verdict("ДА", config).detected is True
    assert parse_verdict("нет.", config).detected is False
    verdict = parse_verdict("Confidence: 85", config)
    assert verdict.detected is True
    assert verdict.confidence == 85.0


def test_threshold_is_strictly_greater() -> None:
    config = OracleConfig(mode="confidence", confidence_threshold=70)
    assert parse_verdict("70", config).detected is False
    assert parse_verdict("70.5", config).detected is True


def test_tokens_match_whole_words_only() -> None:
    config = OracleConfig()
    # "NOTHING" contains "NO" but is not the token.
    with pytest.raises(MalformedOracleResponse):
        parse_verdict("NOTHING", config)


def test_verdict_mode_requires_token() -> None:
    with pytest.raises(MalformedOracleResponse):
        parse_verdict("85", OracleConfig(mode="verdict"))


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        OracleConfig(mode="maybe")


def test_gateway_sends_topic_prompt_and_current_model() -> None:
    transport = FakeTransport({"choices": [{"message": {"content": "YES"}}]})
    settings = ModerationConfig(current_model="qwen3:30b")
    gateway = OracleGateway(transport, settings)
    topic = Topic(name="spam", prompt="Is it spam?", priority=1)

    verdict = asyncio.run(gateway.classify("buy now", topic, CancelToken()))

    assert verdict.detected is True
    assert transport.calls == [("Is it spam?", "buy now", "qwen3:30b")]


def test_gateway_call_is_cancellable() -> None:
    async def _scenario() -> None:
        token = CancelToken()
        gateway = OracleGateway(HangingTransport(), ModerationConfig())
        topic = Topic(name="spam", prompt="p", priority=1)
        asyncio.get_running_loop().call_later(0.01, token.cancel)
        with pytest.raises(Cancelled):
            await gateway.classify("text", topic, token)

    asyncio.run(_scenario())
