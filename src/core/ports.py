"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, oracle, audit and chat
platform adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol, Sequence

from core.models import BatchProgress, BatchSummary, Topic

WORD_CATEGORIES = ("profanity", "advertising", "custom")


class WordStorePort(Protocol):
    """Persistent word lists, one per filter category."""

    def get_words(self, category: str) -> set[str]:
        ...

    def add_word(self, category: str, word: str) -> None:
        ...

    def delete_word(self, category: str, word: str) -> bool:
        ...


class TopicStorePort(Protocol):
    """Persistent topic configuration."""

    def list_topics(self) -> list[Topic]:
        ...

    def upsert_topic(self, topic: Topic) -> None:
        ...

    def delete_topic(self, name: str) -> None:
        ...

    def set_enabled(self, name: str, enabled: bool) -> None:
        ...


class AuditPort(Protocol):
    """Append-only event counter."""

    def record_event(self, event_type: str, timestamp: Optional[int] = None) -> None:
        ...

    def count_events(
        self,
        since: Optional[int] = None,
        types: Optional[Iterable[str]] = None,
        type_prefix: Optional[str] = None,
    ) -> int:
        ...


class OracleTransportPort(Protocol):
    """One chat-completion round trip; returns the decoded JSON payload."""

    async def complete(self, system_prompt: str, text: str, model: str) -> dict[str, Any]:
        ...


class ChatTransportPort(Protocol):
    """Chat platform operations. Every call may raise PlatformSendFailure."""

    async def send_text(
        self,
        chat_id: int,
        text: str,
        buttons: Any = None,
        html: bool = False,
        reply_to: Optional[int] = None,
    ) -> int:
        ...

    async def edit_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        buttons: Any = None,
        html: bool = False,
    ) -> None:
        ...

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        ...

    async def forward_message(self, to_chat_id: int, from_chat_id: int, message_id: int) -> None:
        ...

    async def can_delete(self, chat_id: int) -> bool:
        ...


class BatchReporterPort(Protocol):
    """Output sink for one batch run (progress message plus final report)."""

    async def started(self, channel_id: int, total: int, available: int) -> None:
        ...

    async def progress(self, channel_id: int, progress: BatchProgress) -> None:
        ...

    async def completed(self, channel_id: int, summary: BatchSummary) -> None:
        ...

    async def interrupted(self, channel_id: int, summary: BatchSummary) -> None:
        ...

    async def report(self, channel_id: int, chunks: Sequence[str]) -> None:
        ...
