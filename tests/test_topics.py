from __future__ import annotations

import pytest

from core.errors import DuplicateTopic, NotFound
from core.models import Topic
from core.topics import TopicRegistry
from fakes import FakeTopicStore


def _topic(name: str, priority: int, enabled: bool = True) -> Topic:
    return Topic(name=name, prompt=f"Is this {name}?", priority=priority, enabled=enabled)


def test_sorted_by_priority_keeps_registration_order_for_ties() -> None:
    registry = TopicRegistry()
    registry.add(_topic("b", 5))
    registry.add(_topic("a", 1))
    registry.add(_topic("c", 5))
    assert [topic.name for topic in registry.sorted_by_priority()] == ["a", "b", "c"]


def test_enabled_view_skips_disabled_topics() -> None:
    registry = TopicRegistry()
    registry.add(_topic("spam", 1))
    registry.add(_topic("scam", 2, enabled=False))
    assert [topic.name for topic in registry.enabled_sorted_by_priority()] == ["spam"]


def test_duplicate_and_missing_names() -> None:
    store = FakeTopicStore()
    registry = TopicRegistry(store)
    registry.add(_topic("spam", 1))
    with pytest.raises(DuplicateTopic):
        registry.add(_topic("spam", 3))
    with pytest.raises(NotFound):
        registry.get("nope")
    with pytest.raises(NotFound):
        registry.remove("nope")
    assert list(store.topics) == ["spam"]


def test_remove_persists_and_drops_topic() -> None:
    store = FakeTopicStore()
    registry = TopicRegistry(store)
    registry.add(_topic("spam", 1))
    registry.remove("spam")
    assert "spam" not in registry
    assert store.topics == {}


def test_load_replaces_memory_with_store_contents() -> None:
    store = FakeTopicStore([_topic("spam", 2), _topic("scam", 1)])
    registry = TopicRegistry(store)
    assert registry.load() == 2
    assert [topic.name for topic in registry.sorted_by_priority()] == ["scam", "spam"]


def test_set_enabled_survives_store_failure() -> None:
    store = FakeTopicStore([_topic("spam", 1)], fail_set_enabled=True)
    registry = TopicRegistry(store)
    registry.load()
    registry.set_enabled("spam", False)
    assert registry.get("spam").enabled is False
    assert store.enabled_calls == [("spam", False)]


def test_snapshot_is_not_affected_by_later_additions() -> None:
    registry = TopicRegistry()
    registry.add(_topic("spam", 1))
    snapshot = registry.enabled_sorted_by_priority()
    registry.add(_topic("scam", 0))
    assert [topic.name for topic in snapshot] == ["spam"]
