"""Per-channel session and pending-batch registries.

A session's presence in the store is the "one batch per channel" lock.
Only the code that opened a session may close it; the cancel path can only
flip the session's cancellation flag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from core.cancellation import CancelToken
from core.errors import AlreadyRunning
from core.models import Message


@dataclass
class AnalysisSession:
    """Live state of the batch running for one channel."""

    channel_id: int
    total: int
    started_at: float
    processed: int = 0
    token: CancelToken = field(default_factory=CancelToken)

    @property
    def cancel_requested(self) -> bool:
        return self.token.cancelled


class SessionStore:
    def __init__(self) -> None:
        self._sessions: dict[int, AnalysisSession] = {}

    def open(self, channel_id: int, total: int, started_at: float) -> AnalysisSession:
        # Check and insert run without a suspension point in between.
        if channel_id in self._sessions:
            raise AlreadyRunning(channel_id)
        session = AnalysisSession(channel_id=channel_id, total=total, started_at=started_at)
        self._sessions[channel_id] = session
        return session

    def close(self, session: AnalysisSession) -> None:
        """Remove ``session`` if it is still the one registered for its channel."""

        if self._sessions.get(session.channel_id) is session:
            del self._sessions[session.channel_id]

    def get(self, channel_id: int) -> Optional[AnalysisSession]:
        return self._sessions.get(channel_id)

    def is_running(self, channel_id: int) -> bool:
        return channel_id in self._sessions

    def request_cancel(self, channel_id: int) -> bool:
        """Flag the channel's session for cancellation.

        Returns False when nothing is running or cancel was already requested.
        """

        session = self._sessions.get(channel_id)
        if session is None or session.cancel_requested:
            return False
        session.token.cancel()
        return True


@dataclass(frozen=True)
class PendingBatch:
    """Messages waiting for the caller to choose how many to analyze."""

    messages: tuple[Message, ...]
    display_name: str


class PendingBatchStore:
    def __init__(self) -> None:
        self._pending: dict[int, PendingBatch] = {}

    def put(self, channel_id: int, messages: Sequence[Message], display_name: str) -> PendingBatch:
        # A newer submission supersedes whatever was waiting.
        batch = PendingBatch(messages=tuple(messages), display_name=display_name)
        self._pending[channel_id] = batch
        return batch

    def peek(self, channel_id: int) -> Optional[PendingBatch]:
        return self._pending.get(channel_id)

    def take(self, channel_id: int) -> Optional[PendingBatch]:
        return self._pending.pop(channel_id, None)

    def discard(self, channel_id: int) -> None:
        self._pending.pop(channel_id, None)
