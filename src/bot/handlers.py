"""Telethon event wiring.

Handlers only pull fields out of Telethon events and hand them to the
BotService, which keeps Telegram specifics out of the moderation logic.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from telethon import TelegramClient, events

from bot.service import BotService, sender_display_name, split_command
from core.live import IncomingMessage

LOGGER = logging.getLogger(__name__)


async def _sender_name(event: Any) -> str:
    sender = await event.get_sender()
    return sender_display_name(
        getattr(sender, "username", None),
        getattr(sender, "first_name", None),
        event.sender_id,
    )


async def _chat_title(event: Any) -> Optional[str]:
    if event.is_private:
        return None
    chat = await event.get_chat()
    return getattr(chat, "title", None)


def register_handlers(client: TelegramClient, service: BotService) -> None:
    @client.on(events.NewMessage(incoming=True))
    async def on_new_message(event) -> None:
        try:
            sender = await event.get_sender()
            # Never react to other bots, including our own echoes.
            if sender is not None and getattr(sender, "bot", False):
                return

            message = event.message
            if message.document is not None and message.file is not None and message.file.name:
                await service.on_document(
                    event.chat_id,
                    event.sender_id,
                    event.is_private,
                    message.file.name,
                    lambda: client.download_media(message, file=bytes),
                )
                return

            text = event.raw_text or ""
            command = split_command(text)
            if command is not None:
                name, args = command
                await service.on_command(event.chat_id, event.sender_id, event.is_private, name, args)
                return

            await service.on_message(
                IncomingMessage(
                    chat_id=event.chat_id,
                    message_id=message.id,
                    sender_id=event.sender_id,
                    sender_name=await _sender_name(event),
                    text=text,
                    is_private=event.is_private,
                    chat_title=await _chat_title(event),
                )
            )
        except Exception:
            LOGGER.exception("Error while processing message")

    @client.on(events.CallbackQuery())
    async def on_callback(event) -> None:
        try:
            data = event.data.decode("utf-8")
            answer = await service.on_callback(event.chat_id, event.message_id, event.sender_id, data)
            await event.answer(answer.text or None, alert=answer.alert)
        except Exception:
            LOGGER.exception("Error while processing callback")
