from __future__ import annotations

import pytest

from core.errors import AlreadyRunning
from core.models import Message
from core.sessions import PendingBatchStore, SessionStore


def test_one_session_per_channel() -> None:
    store = SessionStore()
    session = store.open(1, total=10, started_at=0.0)
    with pytest.raises(AlreadyRunning):
        store.open(1, total=5, started_at=1.0)
    store.open(2, total=5, started_at=1.0)
    store.close(session)
    assert not store.is_running(1)
    assert store.is_running(2)


def test_close_ignores_stale_session() -> None:
    store = SessionStore()
    first = store.open(1, total=1, started_at=0.0)
    store.close(first)
    second = store.open(1, total=1, started_at=1.0)
    store.close(first)
    assert store.get(1) is second


def test_request_cancel_only_flips_flag() -> None:
    store = SessionStore()
    assert store.request_cancel(1) is False
    session = store.open(1, total=3, started_at=0.0)
    assert store.request_cancel(1) is True
    assert session.cancel_requested
    assert store.request_cancel(1) is False
    assert store.is_running(1)


def test_pending_batches_supersede_and_take() -> None:
    pending = PendingBatchStore()
    pending.put(1, [Message("a", "one")], "first")
    pending.put(1, [Message("b", "two")], "second")
    assert pending.peek(1).display_name == "second"
    batch = pending.take(1)
    assert batch.messages == (Message("b", "two"),)
    assert pending.take(1) is None
