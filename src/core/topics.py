"""Topic registry (core domain)."""

from __future__ import annotations

import logging
from typing import Optional

from core.errors import DuplicateTopic, NotFound
from core.models import Topic
from core.ports import TopicStorePort

LOGGER = logging.getLogger(__name__)


class TopicRegistry:
    """Ordered collection of oracle topics.

    Registration order is kept so equal priorities are checked in the order
    topics were added. Every read returns a snapshot list, never the live one.
    """

    def __init__(self, store: Optional[TopicStorePort] = None) -> None:
        self._store = store
        self._topics: list[Topic] = []

    def load(self) -> int:
        """Replace in-memory topics with the stored ones and return the count."""

        if self._store is None:
            return 0
        self._topics = list(self._store.list_topics())
        LOGGER.info("Loaded %s topics", len(self._topics))
        return len(self._topics)

    def get(self, name: str) -> Topic:
        for topic in self._topics:
            if topic.name == name:
                return topic
        raise NotFound(f"Topic not found: {name}")

    def __contains__(self, name: str) -> bool:
        return any(topic.name == name for topic in self._topics)

    def __len__(self) -> int:
        return len(self._topics)

    def add(self, topic: Topic) -> None:
        if topic.name in self:
            raise DuplicateTopic(f"Topic already exists: {topic.name}")
        if self._store is not None:
            self._store.upsert_topic(topic)
        self._topics = [*self._topics, topic]

    def remove(self, name: str) -> Topic:
        topic = self.get(name)
        if self._store is not None:
            self._store.delete_topic(name)
        self._topics = [item for item in self._topics if item.name != name]
        return topic

    def set_enabled(self, name: str, enabled: bool) -> Topic:
        """Flip the flag in memory first, then persist best-effort."""

        topic = self.get(name)
        topic.enabled = enabled
        if self._store is not None:
            try:
                self._store.set_enabled(name, enabled)
            except Exception:
                LOGGER.exception("Failed to persist enabled=%s for topic %s", enabled, name)
        return topic

    def sorted_by_priority(self) -> list[Topic]:
        # sorted() is stable, so ties keep registration order.
        return sorted(self._topics, key=lambda topic: topic.priority)

    def enabled_sorted_by_priority(self) -> list[Topic]:
        return [topic for topic in self.sorted_by_priority() if topic.enabled]
