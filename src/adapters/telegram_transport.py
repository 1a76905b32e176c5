"""Telethon chat transport adapter.

Wraps the bot client calls the core and bot service need and turns every
Telegram-side failure into PlatformSendFailure so callers can log and go on.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from telethon import Button, TelegramClient
from telethon.errors import RPCError

from core.errors import PlatformSendFailure

LOGGER = logging.getLogger(__name__)

# Keyboards are passed around as rows of (label, callback data) pairs.
KeyboardRows = Sequence[Sequence[tuple[str, str]]]


def build_buttons(rows: Optional[KeyboardRows]) -> Any:
    if not rows:
        return None
    return [[Button.inline(label, data=data.encode("utf-8")) for label, data in row] for row in rows]


class TelethonTransport:
    """Chat transport backed by a bot-authorized TelegramClient."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def send_text(
        self,
        chat_id: int,
        text: str,
        buttons: Optional[KeyboardRows] = None,
        html: bool = False,
        reply_to: Optional[int] = None,
    ) -> int:
        try:
            message = await self._client.send_message(
                chat_id,
                text,
                buttons=build_buttons(buttons),
                parse_mode="html" if html else None,
                reply_to=reply_to,
                link_preview=False,
            )
        except (RPCError, ValueError) as exc:
            raise PlatformSendFailure(f"send to {chat_id} failed: {exc}") from exc
        return message.id

    async def edit_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        buttons: Optional[KeyboardRows] = None,
        html: bool = False,
    ) -> None:
        try:
            await self._client.edit_message(
                chat_id,
                message_id,
                text,
                buttons=build_buttons(buttons),
                parse_mode="html" if html else None,
                link_preview=False,
            )
        except (RPCError, ValueError) as exc:
            raise PlatformSendFailure(f"edit of {chat_id}/{message_id} failed: {exc}") from exc

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        try:
            await self._client.delete_messages(chat_id, [message_id])
        except (RPCError, ValueError) as exc:
            raise PlatformSendFailure(f"delete of {chat_id}/{message_id} failed: {exc}") from exc

    async def forward_message(self, to_chat_id: int, from_chat_id: int, message_id: int) -> None:
        try:
            await self._client.forward_messages(to_chat_id, message_id, from_peer=from_chat_id)
        except (RPCError, ValueError) as exc:
            raise PlatformSendFailure(f"forward of {from_chat_id}/{message_id} failed: {exc}") from exc

    async def can_delete(self, chat_id: int) -> bool:
        """True when the bot is an admin allowed to delete messages."""

        try:
            permissions = await self._client.get_permissions(chat_id, "me")
        except (RPCError, ValueError) as exc:
            LOGGER.info("Bot is not an admin in chat %s: %s", chat_id, exc)
            return False
        return bool(permissions.is_admin and permissions.delete_messages)
