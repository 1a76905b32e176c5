"""Oracle gateway: one classification call per (message, topic) pair.

The oracle has answered in two shapes over time: a yes/no token and a 0-100
confidence number. Shape sniffing lives here and nowhere else; callers only
ever see an OracleVerdict.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from core.cancellation import CancelToken
from core.config import ModerationConfig, OracleConfig
from core.errors import MalformedOracleResponse
from core.models import OracleVerdict, Topic
from core.ports import OracleTransportPort

LOGGER = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"-?\d+(?:[.,]\d+)?")


def extract_content(payload: Any) -> str:
    """Pull the answer text out of a chat-completion style payload."""

    if not isinstance(payload, dict):
        raise MalformedOracleResponse(f"Unexpected payload type: {type(payload).__name__}")

    content: Any = None
    choices = payload.get("choices")
    if isinstance(choices, list) and choices:
        first = choices[0] or {}
        message = first.get("message") or {}
        content = message.get("content")
    elif payload.get("response"):
        content = payload["response"]
    elif payload.get("content"):
        content = payload["content"]
    else:
        raise MalformedOracleResponse("Unknown oracle response structure")

    if not isinstance(content, str) or not content.strip():
        raise MalformedOracleResponse("Oracle returned an empty answer")
    return content.strip()


def _token_verdict(answer: str, config: OracleConfig) -> Optional[bool]:
    upper = answer.upper()
    for token in config.yes_tokens:
        if re.search(rf"\b{re.escape(token.upper())}\b", upper):
            return True
    for token in config.no_tokens:
        if re.search(rf"\b{re.escape(token.upper())}\b", upper):
            return False
    return None


def _confidence(answer: str) -> Optional[float]:
    match = _NUMBER_RE.search(answer)
    if not match:
        return None
    return float(match.group(0).replace(",", "."))


def parse_verdict(answer: str, config: OracleConfig) -> OracleVerdict:
    """Turn raw oracle text into a verdict according to the configured mode."""

    if config.mode in ("verdict", "auto"):
        detected = _token_verdict(answer, config)
        if detected is not None:
            return OracleVerdict(detected=detected, confidence=None, raw=answer)
        if config.mode == "verdict":
            raise MalformedOracleResponse(f"No yes/no token in answer: {answer[:80]!r}")

    confidence = _confidence(answer)
    if confidence is None:
        raise MalformedOracleResponse(f"No verdict in answer: {answer[:80]!r}")
    return OracleVerdict(
        detected=confidence > config.confidence_threshold,
        confidence=confidence,
        raw=answer,
    )


class OracleGateway:
    """Classify one text against one topic through the oracle transport."""

    def __init__(
        self,
        transport: OracleTransportPort,
        settings: ModerationConfig,
        config: Optional[OracleConfig] = None,
    ) -> None:
        self._transport = transport
        self._settings = settings
        self._config = config or OracleConfig()

    async def classify(self, text: str, topic: Topic, token: CancelToken) -> OracleVerdict:
        """Return the verdict for ``text`` under ``topic``.

        Raises Cancelled when the token aborts the request, and
        OracleUnavailable (or MalformedOracleResponse) on any other failure.
        """

        payload = await token.guard(
            self._transport.complete(topic.prompt, text, self._settings.current_model)
        )
        verdict = parse_verdict(extract_content(payload), self._config)
        LOGGER.debug(
            "Oracle verdict for topic %s: detected=%s confidence=%s",
            topic.name,
            verdict.detected,
            verdict.confidence,
        )
        return verdict
