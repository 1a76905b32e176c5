from __future__ import annotations

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.models import Topic
from core.topics import TopicRegistry


@pytest.fixture()
def storage(tmp_path) -> SQLiteStorage:
    store = SQLiteStorage(str(tmp_path / "teleguard.db"))
    store.init_db()
    return store


def test_words_are_normalized_and_deduplicated(storage: SQLiteStorage) -> None:
    storage.add_word("profanity", "  DARN ")
    storage.add_word("profanity", "darn")
    assert storage.get_words("profanity") == {"darn"}
    assert storage.add_words("advertising", ["Sale", "sale", "", "promo"]) == 2
    assert storage.delete_word("advertising", "SALE") is True
    assert storage.delete_word("advertising", "sale") is False
    assert storage.all_words() == {"profanity": {"darn"}, "advertising": {"promo"}, "custom": set()}


def test_bad_words_and_categories_are_rejected(storage: SQLiteStorage) -> None:
    with pytest.raises(ValueError):
        storage.add_word("custom", "   ")
    with pytest.raises(ValueError):
        storage.get_words("spam")


def test_seed_only_fills_empty_lists(storage: SQLiteStorage) -> None:
    assert storage.seed_words("custom", ["a1", "b2"]) == 2
    assert storage.seed_words("custom", ["c3"]) == 0
    assert storage.get_words("custom") == {"a1", "b2"}


def test_topics_round_trip_through_registry(storage: SQLiteStorage) -> None:
    registry = TopicRegistry(storage)
    registry.add(Topic("spam", "Is it spam?", priority=2, description="ads"))
    registry.add(Topic("scam", "Is it a scam?", priority=1))
    registry.set_enabled("spam", False)

    reloaded = TopicRegistry(storage)
    assert reloaded.load() == 2
    spam = reloaded.get("spam")
    assert (spam.prompt, spam.priority, spam.enabled, spam.description) == ("Is it spam?", 2, False, "ads")
    assert [topic.name for topic in reloaded.sorted_by_priority()] == ["scam", "spam"]

    reloaded.remove("scam")
    assert [topic.name for topic in storage.list_topics()] == ["spam"]


def test_event_counts(storage: SQLiteStorage) -> None:
    storage.record_event("message_ok", 100)
    storage.record_event("violation_profanity", 200)
    storage.record_event("neural_spam", 300)
    storage.record_event("neural_scam", 400)
    # "neural%" must not match the literal prefix "neuralX".
    storage.record_event("neuralX", 500)

    assert storage.count_events() == 5
    assert storage.count_events(since=200) == 3
    assert storage.count_events(types=["violation_profanity", "violation_ad"]) == 1
    assert storage.count_events(types=[]) == 0
    assert storage.count_events(type_prefix="neural_") == 2
    assert storage.count_events(since=300, type_prefix="neural_") == 1
