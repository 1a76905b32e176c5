"""Live moderation of ordinary chat messages.

Each incoming message runs through the same detection chain as a batch.
Clean messages only bump the audit counter. Violations are counted, logged
to the moderator chat, and, depending on the chat type and the bot's rights,
either deleted with a short-lived warning or answered directly.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from core.cancellation import CancelToken
from core.config import ModerationConfig
from core.detector import ViolationDetector
from core.errors import Cancelled, PlatformSendFailure
from core.models import reason_label
from core.ports import AuditPort, ChatTransportPort
from core.scheduling import OneShotScheduler

LOGGER = logging.getLogger(__name__)

EVENT_MESSAGE_OK = "message_ok"


@dataclass(frozen=True)
class IncomingMessage:
    """Platform-neutral view of a live chat message."""

    chat_id: int
    message_id: int
    sender_id: int
    sender_name: str
    text: str
    is_private: bool
    chat_title: Optional[str] = None


class LiveModerator:
    def __init__(
        self,
        detector: ViolationDetector,
        transport: ChatTransportPort,
        audit: AuditPort,
        settings: ModerationConfig,
        scheduler: OneShotScheduler,
        log_chat_id: Optional[int] = None,
        warning_delete_seconds: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._detector = detector
        self._transport = transport
        self._audit = audit
        self._settings = settings
        self._scheduler = scheduler
        self._log_chat_id = log_chat_id
        self._warning_delete_seconds = warning_delete_seconds
        self._clock = clock

    async def handle(self, message: IncomingMessage) -> Optional[str]:
        """Moderate one message and return its reason code, if any."""

        if not message.text.strip():
            return None

        try:
            reason = await self._detector.detect(message.text, CancelToken())
        except Cancelled:
            return None

        if reason is None:
            self._record(EVENT_MESSAGE_OK)
            return None

        self._record(reason)
        LOGGER.info(
            "Violation %s from %s in chat %s",
            reason,
            message.sender_id,
            message.chat_id,
        )
        await self._log_violation(message, reason)
        await self._enforce(message, reason)
        return reason

    def _record(self, event_type: str) -> None:
        try:
            self._audit.record_event(event_type, int(self._clock()))
        except Exception:
            LOGGER.exception("Failed to record audit event %s", event_type)

    async def _log_violation(self, message: IncomingMessage, reason: str) -> None:
        if not self._log_chat_id:
            return
        text = (
            "🚨 Violation!\n"
            f"📌 Chat: {message.chat_id} ({message.chat_title or 'private'})\n"
            f"👤 User: {message.sender_name} ({message.sender_id})\n"
            f"Type: {reason}\n"
            f"Text: {message.text}"
        )
        try:
            await self._transport.send_text(self._log_chat_id, text)
            await self._transport.forward_message(self._log_chat_id, message.chat_id, message.message_id)
        except PlatformSendFailure as exc:
            LOGGER.warning("Failed to log violation to %s: %s", self._log_chat_id, exc)

    async def _enforce(self, message: IncomingMessage, reason: str) -> None:
        label = reason_label(reason)
        try:
            if message.is_private:
                await self._transport.send_text(
                    message.chat_id,
                    f"❌ Your message contains forbidden content. Reason: {label}",
                    reply_to=message.message_id,
                )
                return

            if not await self._transport.can_delete(message.chat_id):
                LOGGER.info("No delete rights in chat %s, leaving message", message.chat_id)
                return
            if not self._settings.delete_messages:
                LOGGER.info(
                    "Violation by %s left in place, auto-delete is off (%s)",
                    message.sender_name,
                    label,
                )
                return

            warning_id = await self._transport.send_text(
                message.chat_id,
                f"⚠️ Message from {message.sender_name} removed.\nReason: {label}",
            )
            await self._transport.delete_message(message.chat_id, message.message_id)
            self._schedule_warning_removal(message.chat_id, warning_id)
        except PlatformSendFailure as exc:
            LOGGER.warning("Failed to enforce violation in chat %s: %s", message.chat_id, exc)

    def _schedule_warning_removal(self, chat_id: int, warning_id: int) -> None:
        async def _remove() -> None:
            try:
                await self._transport.delete_message(chat_id, warning_id)
            except PlatformSendFailure as exc:
                LOGGER.debug("Warning %s in chat %s already gone: %s", warning_id, chat_id, exc)

        self._scheduler.schedule(chat_id, warning_id, self._warning_delete_seconds, _remove)
