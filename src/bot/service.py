"""Bot command, callback and upload logic.

This module is integration-agnostic: it talks to Telegram only through the
chat transport port and receives already-extracted event fields, so every
flow can be exercised with fakes.
"""

from __future__ import annotations

import asyncio
import html
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from adapters.archive_parser import SUPPORTED_EXTENSIONS, parse_export
from adapters.telegram_reporter import CANCEL_PREFIX
from bot.keyboards import (
    BACK_TO_ADMIN,
    LIMIT_PREFIX,
    MODEL_PREFIX,
    TOPIC_PREFIX,
    Rows,
    admin_keyboard,
    back_keyboard,
    limit_keyboard,
    models_keyboard,
    topics_keyboard,
)
from core.cancellation import CancelToken
from core.classifier import SequentialClassifier
from core.config import ModerationConfig
from core.controller import BatchAnalysisController
from core.detector import ViolationDetector
from core.errors import AlreadyRunning, DuplicateTopic, NotFound, PlatformSendFailure
from core.filters import CATEGORY_REASONS, RuleFilterSet
from core.live import IncomingMessage, LiveModerator
from core.models import Message, Topic, oracle_reason, reason_label
from core.ports import AuditPort, ChatTransportPort, WordStorePort
from core.sessions import PendingBatch
from core.statistics import collect_stats
from core.topics import TopicRegistry

LOGGER = logging.getLogger(__name__)

WORD_COMMANDS = {
    "add_profanity": ("add", "profanity"),
    "del_profanity": ("del", "profanity"),
    "add_ad": ("add", "advertising"),
    "del_ad": ("del", "advertising"),
    "add_custom": ("add", "custom"),
    "del_custom": ("del", "custom"),
}

TOGGLES = {
    "toggle_delete": ("delete_messages", "Auto-delete"),
    "toggle_profanity": ("filter_profanity", "Profanity filter"),
    "toggle_ad": ("filter_advertising", "Advertising filter"),
    "toggle_neural": ("use_oracle", "Oracle"),
}

COMMANDS_HELP = (
    "📜 Admin commands:\n\n"
    "/admin - control panel\n"
    "/check_chat - check private messages against every topic\n"
    "/stop_check_chat - leave check mode\n"
    "/check_permissions - verify delete rights in this chat\n"
    "/test_oracle <text> - run the oracle on a text\n"
    "/analyze - analyze uploaded exports\n\n"
    "📝 Word lists:\n"
    "/add_profanity <word>, /del_profanity <word>\n"
    "/add_ad <word>, /del_ad <word>\n"
    "/add_custom <word>, /del_custom <word>\n\n"
    "🗂️ Topics:\n"
    "/add_topic <name> | <description> | <priority> [| <prompt>]\n"
    "/del_topic <name>\n"
    "/models - available oracle models\n"
    "/neural_stats - oracle state and topics"
)

DEFAULT_TOPIC_PROMPT = (
    'You classify messages for the topic "{name}".\n'
    "Decide whether the message matches this description:\n"
    "{description}\n\n"
    'Answer "YES" if it does and "NO" if it does not.'
)


def default_topic_prompt(name: str, description: str) -> str:
    """System prompt for a topic added without one."""

    return DEFAULT_TOPIC_PROMPT.format(name=name, description=description)


@dataclass(frozen=True)
class BotConfig:
    admins: frozenset[int] = frozenset()
    allowed_chats: frozenset[int] = frozenset()
    available_models: tuple[str, ...] = ()
    limit_choices: tuple[int, ...] = (500, 1000, 2000, 5000, 10000)


@dataclass(frozen=True)
class CallbackAnswer:
    """What to show on the button press spinner."""

    text: str = ""
    alert: bool = False


@dataclass
class _Uploads:
    messages: list[Message] = field(default_factory=list)
    files: int = 0


def parse_limit(choice: str, available: int) -> Optional[int]:
    """Map a limit choice to a message count; ``None`` means all.

    Raises ValueError for anything that is not "all" or a positive integer.
    """

    if choice == "all":
        return None
    limit = int(choice)
    if limit < 1:
        raise ValueError(f"Limit must be positive: {choice}")
    return min(limit, available)


class BotService:
    def __init__(
        self,
        transport: ChatTransportPort,
        controller: BatchAnalysisController,
        registry: TopicRegistry,
        filters: RuleFilterSet,
        words: WordStorePort,
        audit: AuditPort,
        classifier: SequentialClassifier,
        detector: ViolationDetector,
        live: LiveModerator,
        settings: ModerationConfig,
        config: Optional[BotConfig] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._transport = transport
        self._controller = controller
        self._registry = registry
        self._filters = filters
        self._words = words
        self._audit = audit
        self._classifier = classifier
        self._detector = detector
        self._live = live
        self._settings = settings
        self._config = config or BotConfig()
        self._clock = clock
        self._uploads: dict[int, _Uploads] = {}
        self._awaiting_limit: set[int] = set()
        self._check_mode: set[int] = set()
        self._tasks: set[asyncio.Future] = set()

    # Access

    def is_admin(self, user_id: Optional[int]) -> bool:
        return user_id is not None and user_id in self._config.admins

    def can_upload(self, user_id: Optional[int], chat_id: int, is_private: bool) -> bool:
        if self.is_admin(user_id):
            return True
        if is_private:
            return False
        return not self._config.allowed_chats or chat_id in self._config.allowed_chats

    def reload_words(self) -> None:
        for category, _ in CATEGORY_REASONS:
            self._filters.replace(category, self._words.get_words(category))

    # Uploads and batch analysis

    def uploaded_count(self, chat_id: int) -> int:
        uploads = self._uploads.get(chat_id)
        return len(uploads.messages) if uploads else 0

    async def on_document(
        self,
        chat_id: int,
        user_id: Optional[int],
        is_private: bool,
        file_name: str,
        load_body: Callable[[], Awaitable[bytes]],
    ) -> None:
        """Accept a chat export and add its messages to the chat's upload pile."""

        if chat_id in self._awaiting_limit:
            self._awaiting_limit.discard(chat_id)
            self._controller.discard_pending(chat_id)

        if not self.can_upload(user_id, chat_id, is_private):
            await self._reply(chat_id, "❌ File analysis is available to admins only.")
            return
        if not file_name.lower().endswith(SUPPORTED_EXTENSIONS):
            await self._reply(
                chat_id,
                f"⚠️ File {file_name} is not supported. Allowed formats: .html, .json",
            )
            return

        try:
            messages = parse_export(file_name, await load_body())
        except (ValueError, PlatformSendFailure) as exc:
            LOGGER.warning("Failed to read export %s in chat %s: %s", file_name, chat_id, exc)
            await self._reply(chat_id, f"❌ Could not read the file: {exc}")
            return

        if not messages:
            await self._reply(chat_id, "⚠️ No messages could be extracted from the file.")
            return

        uploads = self._uploads.setdefault(chat_id, _Uploads())
        uploads.messages.extend(messages)
        uploads.files += 1
        LOGGER.info("Loaded %s messages from %s in chat %s", len(messages), file_name, chat_id)
        await self._reply(
            chat_id,
            f"✅ File {file_name} loaded!\n"
            f"📨 Messages in file: {len(messages)}\n"
            f"📊 Total messages: {len(uploads.messages)}\n"
            f"📁 Files processed: {uploads.files}\n\n"
            "Use /analyze to analyze them.",
        )

    async def on_analyze(self, chat_id: int) -> None:
        uploads = self._uploads.get(chat_id)
        if not uploads or not uploads.messages:
            await self._reply(chat_id, "📭 Nothing to analyze. Upload export files first.")
            return
        try:
            self._controller.submit(chat_id, uploads.messages, f"all_files_({uploads.files})")
        except AlreadyRunning:
            await self._reply(chat_id, "⚠️ Analysis is already running. Cancel it or wait for it to finish.")
            return
        await self._reply(
            chat_id,
            "📊 Ready to analyze!\n"
            f"📁 Files processed: {uploads.files}\n"
            f"📨 Total messages: {len(uploads.messages)}\n\n"
            "Choose how many messages to analyze:",
            buttons=limit_keyboard(chat_id, self._config.limit_choices),
        )

    async def on_limit_choice(self, chat_id: int, message_id: int, payload: str) -> CallbackAnswer:
        target, _, choice = payload.partition("_")
        try:
            target_chat = int(target)
        except ValueError:
            return CallbackAnswer("❌ Bad callback format", alert=True)
        if target_chat != chat_id or not choice:
            return CallbackAnswer("❌ Bad callback format", alert=True)

        pending = self._controller.pending(chat_id)
        if pending is None:
            return CallbackAnswer("⚠️ File data not found. Upload the file again.", alert=True)

        if choice == "custom":
            self._awaiting_limit.add(chat_id)
            await self._edit(
                chat_id,
                message_id,
                f"✏️ Enter how many messages to analyze (1 to {len(pending.messages)}):",
            )
            return CallbackAnswer()

        try:
            limit = parse_limit(choice, len(pending.messages))
        except ValueError:
            await self._reply(chat_id, "❌ Invalid message count.")
            return CallbackAnswer()

        self._controller.take_pending(chat_id)
        await self._edit(chat_id, message_id, "✅ Starting analysis...")
        self._start_batch(chat_id, pending, limit)
        return CallbackAnswer()

    async def on_custom_limit(self, chat_id: int, text: str) -> bool:
        """Consume a typed limit; returns False when none was awaited."""

        if chat_id not in self._awaiting_limit:
            return False
        pending = self._controller.pending(chat_id)
        if pending is None:
            self._awaiting_limit.discard(chat_id)
            return False

        try:
            limit = parse_limit(text.strip(), len(pending.messages))
        except ValueError:
            limit = None
        if limit is None:
            await self._reply(
                chat_id,
                f"❌ Invalid number. Enter a number from 1 to {len(pending.messages)}:",
            )
            return True

        self._awaiting_limit.discard(chat_id)
        self._controller.take_pending(chat_id)
        await self._reply(chat_id, f"✅ Analyzing {limit} messages...")
        self._start_batch(chat_id, pending, limit)
        return True

    def on_cancel(self, chat_id: int, payload: str) -> CallbackAnswer:
        try:
            target = int(payload)
        except ValueError:
            return CallbackAnswer("❌ Bad callback format", alert=True)
        if target != chat_id:
            return CallbackAnswer("⚠️ Analysis is not running.")
        if self._controller.cancel(chat_id):
            return CallbackAnswer("⏹ Analysis stopped.")
        return CallbackAnswer("⚠️ Analysis is not running.")

    def _start_batch(self, chat_id: int, pending: PendingBatch, limit: Optional[int]) -> None:
        # The batch runs in its own task so the cancel callback can be served.
        task = asyncio.ensure_future(self._run_batch(chat_id, pending, limit))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_batch(self, chat_id: int, pending: PendingBatch, limit: Optional[int]) -> None:
        try:
            result = await self._controller.run(chat_id, pending.messages, limit, pending.display_name)
        except AlreadyRunning:
            await self._reply(chat_id, "⚠️ Analysis is already running. Cancel it or wait for it to finish.")
            return
        except Exception:
            LOGGER.exception("Batch analysis failed in chat %s", chat_id)
            await self._reply(chat_id, "❌ Analysis failed.")
            return
        if not result.summary.interrupted:
            self._uploads.pop(chat_id, None)

    async def wait_for_batches(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    # Live messages

    async def on_message(self, message: IncomingMessage) -> None:
        if await self.on_custom_limit(message.chat_id, message.text):
            return

        await self._live.handle(message)

        if message.is_private and message.sender_id in self._check_mode and self.is_admin(message.sender_id):
            await self._check_text(message.chat_id, message.text)

    async def _check_text(self, chat_id: int, text: str) -> None:
        if not text.strip():
            await self._reply(chat_id, "⚠️ Empty message, nothing to check.")
            return

        lowered = text.lower()
        reason: Optional[str] = None
        results = await self._classifier.evaluate_all(lowered, CancelToken())
        for topic_name, verdict in results:
            if verdict is not None and verdict.detected:
                reason = oracle_reason(topic_name)
                break
        if reason is None:
            reason = self._detector.check_rules(lowered)

        if reason:
            await self._reply(chat_id, f"🚨 Violation detected: {reason_label(reason)}")
        else:
            await self._reply(chat_id, "✅ No violations detected")

    # Commands

    async def on_command(
        self,
        chat_id: int,
        user_id: Optional[int],
        is_private: bool,
        command: str,
        args: str,
    ) -> None:
        if command == "start":
            await self._reply(chat_id, "Bot is running, open the admin panel with /admin")
            return
        if command == "analyze":
            await self.on_analyze(chat_id)
            return

        if not self.is_admin(user_id):
            await self._reply(chat_id, "❌ You do not have access to this command")
            return

        if command == "admin":
            if not is_private:
                await self._reply(chat_id, "⚠️ The admin panel works only in a private chat with the bot")
                return
            await self._reply(chat_id, "Admin panel:", buttons=admin_keyboard(self._settings))
        elif command in WORD_COMMANDS:
            await self._word_command(chat_id, command, args)
        elif command == "add_topic":
            await self._add_topic(chat_id, args)
        elif command == "del_topic":
            await self._del_topic(chat_id, args)
        elif command == "check_chat":
            self._check_mode.add(user_id)
            await self._reply(chat_id, "✅ Ready to analyze every message you send me in private.")
        elif command == "stop_check_chat":
            self._check_mode.discard(user_id)
            await self._reply(chat_id, "🛑 Check mode disabled.")
        elif command == "check_permissions":
            await self._check_permissions(chat_id, is_private)
        elif command == "test_oracle":
            await self._test_oracle(chat_id, args)
        elif command == "models":
            await self._reply(chat_id, self.models_text())
        elif command == "neural_stats":
            await self._reply(chat_id, self.oracle_state_text())
        else:
            LOGGER.debug("Ignoring unknown command /%s", command)

    async def _word_command(self, chat_id: int, command: str, args: str) -> None:
        action, category = WORD_COMMANDS[command]
        word = args.strip().lower()
        if not word:
            await self._reply(chat_id, f"⚠️ Usage: /{command} <word>")
            return
        if action == "add":
            self._words.add_word(category, word)
            notice = f"✅ Added to {category}: {word}"
        elif self._words.delete_word(category, word):
            notice = f"🗑 Removed from {category}: {word}"
        else:
            notice = f"⚠️ Not in {category}: {word}"
        self._filters.replace(category, self._words.get_words(category))
        await self._reply(chat_id, notice)

    async def _add_topic(self, chat_id: int, args: str) -> None:
        parts = [part.strip() for part in args.split("|")]
        if len(parts) < 3 or not parts[0] or not parts[1]:
            await self._reply(chat_id, "⚠️ Usage: /add_topic <name> | <description> | <priority> [| <prompt>]")
            return
        name, description, raw_priority = parts[0].lower(), parts[1], parts[2]
        try:
            priority = int(raw_priority)
        except ValueError:
            await self._reply(chat_id, "⚠️ Priority must be an integer")
            return
        prompt = "|".join(parts[3:]).strip() or default_topic_prompt(name, description)
        try:
            self._registry.add(
                Topic(name=name, prompt=prompt, priority=priority, enabled=True, description=description)
            )
        except DuplicateTopic:
            await self._reply(chat_id, f"⚠️ Topic {name} already exists")
            return
        await self._reply(chat_id, f"✅ Topic {name} added with priority {priority}")

    async def _del_topic(self, chat_id: int, args: str) -> None:
        name = args.strip().lower()
        if not name:
            await self._reply(chat_id, "⚠️ Usage: /del_topic <name>")
            return
        try:
            self._registry.remove(name)
        except NotFound:
            await self._reply(chat_id, f"⚠️ Topic {name} not found")
            return
        await self._reply(chat_id, f"🗑 Topic {name} removed")

    async def _check_permissions(self, chat_id: int, is_private: bool) -> None:
        if is_private:
            await self._reply(chat_id, "ℹ️ This command only works in groups and channels")
            return
        if await self._transport.can_delete(chat_id):
            await self._reply(chat_id, "✅ The bot has the admin rights it needs")
        else:
            await self._reply(
                chat_id,
                "❌ The bot is not an admin or lacks rights. It needs permission to delete messages.",
            )

    async def _test_oracle(self, chat_id: int, args: str) -> None:
        text = args.strip()
        if not text:
            await self._reply(chat_id, "⚠️ Usage: /test_oracle <text>")
            return
        results = await self._classifier.evaluate_all(text.lower(), CancelToken())
        if not results:
            await self._reply(chat_id, "🧠 No enabled topics.")
            return
        lines = ["🧠 Oracle results:"]
        for topic_name, verdict in results:
            if verdict is None:
                lines.append(f"• {topic_name}: error")
            else:
                mark = "🚨" if verdict.detected else "✅"
                lines.append(f"• {topic_name}: {mark} {verdict.raw[:80]}")
        await self._reply(chat_id, "\n".join(lines))

    # Admin panel callbacks

    async def on_callback(self, chat_id: int, message_id: int, user_id: Optional[int], data: str) -> CallbackAnswer:
        if data.startswith(CANCEL_PREFIX):
            return self.on_cancel(chat_id, data[len(CANCEL_PREFIX):])
        if data.startswith(LIMIT_PREFIX):
            return await self.on_limit_choice(chat_id, message_id, data[len(LIMIT_PREFIX):])

        if not self.is_admin(user_id):
            return CallbackAnswer("No access", alert=True)

        if data in TOGGLES:
            attribute, label = TOGGLES[data]
            state = self._settings.toggle(attribute)
            LOGGER.info("%s switched %s", label, "on" if state else "off")
            await self._edit(chat_id, message_id, f"{label}: {'✅ On' if state else '❌ Off'}", back_keyboard())
        elif data == BACK_TO_ADMIN:
            await self._edit(chat_id, message_id, "Admin panel:", admin_keyboard(self._settings))
        elif data == "neural_models":
            await self._edit(
                chat_id,
                message_id,
                f"🤖 Oracle model\n\nCurrent model: {self._settings.current_model or 'none'}\n\nChoose a model:",
                models_keyboard(self._config.available_models, self._settings.current_model),
            )
        elif data.startswith(MODEL_PREFIX):
            return await self._select_model(chat_id, message_id, data[len(MODEL_PREFIX):])
        elif data == "neural_topics":
            await self._show_topics(chat_id, message_id)
        elif data.startswith(TOPIC_PREFIX):
            return await self._toggle_topic(chat_id, message_id, data[len(TOPIC_PREFIX):])
        elif data == "show_statistics":
            await self._edit(chat_id, message_id, self.statistics_text(), back_keyboard())
        elif data == "list_words":
            await self._edit(chat_id, message_id, self.words_text(), back_keyboard())
        elif data == "show_commands":
            await self._edit(chat_id, message_id, COMMANDS_HELP, back_keyboard())
        else:
            return CallbackAnswer("Unknown action")
        return CallbackAnswer()

    async def _select_model(self, chat_id: int, message_id: int, raw_index: str) -> CallbackAnswer:
        try:
            model = self._config.available_models[int(raw_index)]
        except (ValueError, IndexError):
            return CallbackAnswer("Unknown model", alert=True)
        self._settings.current_model = model
        LOGGER.info("Oracle model switched to %s", model)
        await self._edit(
            chat_id,
            message_id,
            f"✅ Model set: {model}",
            models_keyboard(self._config.available_models, model),
        )
        return CallbackAnswer()

    async def _toggle_topic(self, chat_id: int, message_id: int, raw_index: str) -> CallbackAnswer:
        try:
            topic = self._registry.sorted_by_priority()[int(raw_index)]
        except (ValueError, IndexError):
            return CallbackAnswer("Topic not found", alert=True)
        updated = self._registry.set_enabled(topic.name, not topic.enabled)
        await self._show_topics(chat_id, message_id)
        return CallbackAnswer(f"{updated.name}: {'on' if updated.enabled else 'off'}")

    async def _show_topics(self, chat_id: int, message_id: int) -> None:
        topics = self._registry.sorted_by_priority()
        if not topics:
            await self._edit(chat_id, message_id, "🧠 No topics yet. Add one with /add_topic.", back_keyboard())
            return
        lines = ["🧠 Oracle topics:", ""]
        for topic in topics:
            prompt = topic.prompt if len(topic.prompt) <= 120 else topic.prompt[:120] + "…"
            lines.append(f"• <b>{html.escape(topic.name)}</b> ({topic.priority})")
            lines.append(f"   {'✅ Enabled' if topic.enabled else '❌ Disabled'}")
            lines.append(f"   <i>{html.escape(prompt)}</i>")
            lines.append("")
        await self._edit(chat_id, message_id, "\n".join(lines), topics_keyboard(topics), html=True)

    def statistics_text(self) -> str:
        stats = collect_stats(self._audit, int(self._clock()))
        return (
            "📊 Statistics:\n"
            f"Last hour: {stats.last_hour}\n"
            f"Last week: {stats.last_week}\n"
            f"All time: {stats.total} (violations: {stats.violations})\n"
            f"🧠 Oracle violations: {stats.oracle_violations}"
        )

    def models_text(self) -> str:
        current = self._settings.current_model
        lines = ["🤖 Available models:", ""]
        lines.extend(
            f"{'✅' if model == current else '🔘'} {model}" for model in self._config.available_models
        )
        lines.append("")
        lines.append(f"Current: {current or 'none'}")
        lines.append("Change it from the /admin panel")
        return "\n".join(lines)

    def oracle_state_text(self) -> str:
        topics = self._registry.sorted_by_priority()
        active = "\n".join(
            f"• {topic.name}: ✅ (priority: {topic.priority})" for topic in topics if topic.enabled
        )
        inactive = "\n".join(f"• {topic.name}: ❌" for topic in topics if not topic.enabled)
        return (
            "🧠 Oracle state:\n\n"
            f"Model: {self._settings.current_model or 'none'}\n"
            f"State: {'✅ On' if self._settings.use_oracle else '❌ Off'}\n\n"
            f"Active topics:\n{active or 'none'}\n\n"
            f"Inactive topics:\n{inactive or 'none'}"
        )

    def words_text(self) -> str:
        def _join(category: str) -> str:
            return ", ".join(sorted(self._filters.words(category))) or "none"

        active = self._registry.enabled_sorted_by_priority()
        topics = "\n".join(f"{topic.name} (priority: {topic.priority})" for topic in active)
        return (
            "📝 Word lists:\n"
            f"🚫 Profanity: {_join('profanity')}\n"
            f"📢 Advertising: {_join('advertising')}\n"
            f"🧩 Custom: {_join('custom')}\n\n"
            f"🧠 Oracle topics:\n{topics or 'no active topics'}"
        )

    # Output helpers

    async def _reply(self, chat_id: int, text: str, buttons: Optional[Rows] = None) -> None:
        try:
            await self._transport.send_text(chat_id, text, buttons=buttons)
        except PlatformSendFailure as exc:
            LOGGER.warning("Reply to %s failed: %s", chat_id, exc)

    async def _edit(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        buttons: Optional[Rows] = None,
        html: bool = False,
    ) -> None:
        try:
            await self._transport.edit_text(chat_id, message_id, text, buttons=buttons, html=html)
        except PlatformSendFailure as exc:
            LOGGER.warning("Edit of %s/%s failed: %s", chat_id, message_id, exc)


def split_command(text: str) -> Optional[tuple[str, str]]:
    """Split "/cmd@bot args" into ("cmd", "args"); None for plain text."""

    if not text.startswith("/"):
        return None
    head, _, args = text.partition(" ")
    command = head[1:].split("@", 1)[0].lower()
    if not command:
        return None
    return command, args.strip()


def sender_display_name(username: Optional[str], first_name: Optional[str], user_id: Optional[int]) -> str:
    if username:
        return f"@{username}"
    if first_name:
        return first_name
    return f"ID: {user_id}"


