"""Batch reporter that renders progress into one editable chat message."""

from __future__ import annotations

import logging
from typing import Sequence

from adapters.report_formatting import completed_text, interrupted_text, progress_text, started_text
from core.errors import PlatformSendFailure
from core.models import BatchProgress, BatchSummary
from core.ports import ChatTransportPort

LOGGER = logging.getLogger(__name__)

CANCEL_PREFIX = "cancel_"


def cancel_keyboard(channel_id: int) -> list[list[tuple[str, str]]]:
    return [[("🛑 Cancel analysis", f"{CANCEL_PREFIX}{channel_id}")]]


class ChatBatchReporter:
    """Keeps one progress message per channel and edits it in place."""

    def __init__(self, transport: ChatTransportPort) -> None:
        self._transport = transport
        self._progress_ids: dict[int, int] = {}

    async def started(self, channel_id: int, total: int, available: int) -> None:
        message_id = await self._transport.send_text(
            channel_id,
            started_text(total, available),
            buttons=cancel_keyboard(channel_id),
        )
        self._progress_ids[channel_id] = message_id

    async def progress(self, channel_id: int, progress: BatchProgress) -> None:
        message_id = self._progress_ids.get(channel_id)
        if message_id is None:
            return
        await self._transport.edit_text(
            channel_id,
            message_id,
            progress_text(progress),
            buttons=cancel_keyboard(channel_id),
        )

    async def completed(self, channel_id: int, summary: BatchSummary) -> None:
        await self._finish(channel_id, completed_text(summary))

    async def interrupted(self, channel_id: int, summary: BatchSummary) -> None:
        await self._finish(channel_id, interrupted_text(summary))

    async def report(self, channel_id: int, chunks: Sequence[str]) -> None:
        for index, chunk in enumerate(chunks, start=1):
            try:
                await self._transport.send_text(channel_id, chunk, html=True)
            except PlatformSendFailure as exc:
                LOGGER.warning("Report chunk %s/%s to %s failed: %s", index, len(chunks), channel_id, exc)

    async def _finish(self, channel_id: int, text: str) -> None:
        message_id = self._progress_ids.pop(channel_id, None)
        if message_id is not None:
            try:
                await self._transport.edit_text(channel_id, message_id, text)
                return
            except PlatformSendFailure as exc:
                LOGGER.warning("Final edit in %s failed, sending instead: %s", channel_id, exc)
        await self._transport.send_text(channel_id, text)
