"""Sequential oracle classification with first-match-wins."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from core.cancellation import CancelToken
from core.errors import Cancelled
from core.models import Classification, OracleVerdict, Topic
from core.topics import TopicRegistry

LOGGER = logging.getLogger(__name__)


class OracleGatewayPort(Protocol):
    async def classify(self, text: str, topic: Topic, token: CancelToken) -> OracleVerdict:
        ...


class SequentialClassifier:
    """Walk enabled topics in priority order and stop at the first detection.

    Oracle calls are the expensive step, so a message costs at most the
    position of its first true positive; only clean messages pay for every
    enabled topic. A failing topic counts as "not detected" and the walk
    continues with the next one.
    """

    def __init__(self, registry: TopicRegistry, oracle: OracleGatewayPort) -> None:
        self._registry = registry
        self._oracle = oracle

    async def classify(self, text: str, token: CancelToken) -> Optional[Classification]:
        for topic in self._registry.enabled_sorted_by_priority():
            token.raise_if_cancelled()
            verdict = await self._ask(text, topic, token)
            if verdict is not None and verdict.detected:
                LOGGER.info("Topic %s detected, skipping remaining topics", topic.name)
                return Classification(topic=topic.name, verdict=verdict)
        return None

    async def evaluate_all(self, text: str, token: CancelToken) -> list[tuple[str, Optional[OracleVerdict]]]:
        """Ask every enabled topic without early exit (admin check mode).

        A ``None`` verdict means the call for that topic failed.
        """

        results: list[tuple[str, Optional[OracleVerdict]]] = []
        for topic in self._registry.enabled_sorted_by_priority():
            token.raise_if_cancelled()
            results.append((topic.name, await self._ask(text, topic, token)))
        return results

    async def _ask(self, text: str, topic: Topic, token: CancelToken) -> Optional[OracleVerdict]:
        try:
            return await self._oracle.classify(text, topic, token)
        except Cancelled:
            raise
        except Exception as exc:
            LOGGER.warning("Oracle call failed for topic %s: %s", topic.name, exc)
            return None
