from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass

import pytest

from adapters.report_formatting import HtmlReportFormatter
from adapters.telegram_reporter import ChatBatchReporter
from bot.service import BotConfig, BotService, parse_limit, sender_display_name, split_command
from core.classifier import SequentialClassifier
from core.config import AnalysisConfig, ModerationConfig
from core.controller import BatchAnalysisController
from core.detector import ViolationDetector
from core.filters import RuleFilterSet
from core.live import IncomingMessage, LiveModerator
from core.models import Topic
from core.scheduling import OneShotScheduler
from core.topics import TopicRegistry
from fakes import FakeAudit, FakeClock, FakeOracle, FakeTransport, FakeWordStore

ADMIN = 1
USER = 2
GROUP = -100


@dataclass
class Harness:
    service: BotService
    transport: FakeTransport
    words: FakeWordStore
    filters: RuleFilterSet
    registry: TopicRegistry
    settings: ModerationConfig
    controller: BatchAnalysisController
    audit: FakeAudit


def _harness(allowed_chats: frozenset = frozenset()) -> Harness:
    transport = FakeTransport()
    words = FakeWordStore({"profanity": {"darn"}})
    filters = RuleFilterSet(words.words)
    registry = TopicRegistry()
    classifier = SequentialClassifier(registry, FakeOracle({"spam": True}))
    settings = ModerationConfig(use_oracle=False, current_model="qwen3:30b")
    detector = ViolationDetector(classifier, filters, settings)
    audit = FakeAudit()
    controller = BatchAnalysisController(
        detector,
        ChatBatchReporter(transport),
        HtmlReportFormatter(),
        AnalysisConfig(),
        clock=FakeClock(),
    )
    live = LiveModerator(detector, transport, audit, settings, OneShotScheduler())
    service = BotService(
        transport,
        controller,
        registry,
        filters,
        words,
        audit,
        classifier,
        detector,
        live,
        settings,
        BotConfig(
            admins=frozenset({ADMIN}),
            allowed_chats=allowed_chats,
            available_models=("qwen3:30b", "qwen2.5-coder:7b"),
            limit_choices=(2,),
        ),
        clock=FakeClock(10_000),
    )
    return Harness(service, transport, words, filters, registry, settings, controller, audit)


def _export(*texts: str) -> bytes:
    return json.dumps({"messages": [{"from": "Alice", "text": text} for text in texts]}).encode("utf-8")


def _loader(body: bytes):
    async def _load() -> bytes:
        return body

    return _load


def _private(text: str, sender_id: int = ADMIN) -> IncomingMessage:
    return IncomingMessage(
        chat_id=sender_id,
        message_id=7,
        sender_id=sender_id,
        sender_name="@admin",
        text=text,
        is_private=True,
    )


def test_upload_analyze_and_report_flow() -> None:
    h = _harness()

    async def _scenario() -> None:
        await h.service.on_document(GROUP, USER, False, "result.json", _loader(_export("hi", "darn you", "ok")))
        assert h.service.uploaded_count(GROUP) == 3
        await h.service.on_command(GROUP, USER, False, "analyze", "")
        keyboard = h.transport.sent[-1]["buttons"]
        assert keyboard[0][0][1] == f"analyze_limit_{GROUP}_all"
        answer = await h.service.on_callback(GROUP, 500, USER, f"analyze_limit_{GROUP}_all")
        assert answer.alert is False
        await h.service.wait_for_batches()

    asyncio.run(_scenario())

    report = [item for item in h.transport.sent if item["html"]]
    assert len(report) == 1
    assert "2. " in report[0]["text"]
    assert "profanity" in report[0]["text"]
    assert h.service.uploaded_count(GROUP) == 0
    assert not h.controller.is_running(GROUP)


def test_upload_access_rules() -> None:
    h = _harness(allowed_chats=frozenset({-200}))

    async def _scenario() -> None:
        await h.service.on_document(USER, USER, True, "result.json", _loader(_export("hi")))
        await h.service.on_document(GROUP, USER, False, "result.json", _loader(_export("hi")))
        await h.service.on_document(GROUP, ADMIN, False, "result.json", _loader(_export("hi")))

    asyncio.run(_scenario())
    assert h.transport.texts(USER)[0].startswith("❌")
    assert h.transport.texts(GROUP)[0].startswith("❌")
    assert h.service.uploaded_count(GROUP) == 1


def test_unsupported_and_unreadable_files() -> None:
    h = _harness()

    async def _scenario() -> None:
        await h.service.on_document(GROUP, ADMIN, False, "notes.txt", _loader(b"hello"))
        await h.service.on_document(GROUP, ADMIN, False, "broken.json", _loader(b"{oops"))
        await h.service.on_command(GROUP, ADMIN, False, "analyze", "")

    asyncio.run(_scenario())
    texts = h.transport.texts(GROUP)
    assert "not supported" in texts[0]
    assert texts[1].startswith("❌ Could not read the file")
    assert texts[2].startswith("📭")


def test_custom_limit_is_typed_in_chat() -> None:
    h = _harness()

    async def _scenario() -> None:
        await h.service.on_document(GROUP, ADMIN, False, "result.json", _loader(_export("darn", "darn", "darn")))
        await h.service.on_command(GROUP, ADMIN, False, "analyze", "")
        await h.service.on_callback(GROUP, 500, ADMIN, f"analyze_limit_{GROUP}_custom")
        await h.service.on_message(_group_message("lots"))
        await h.service.on_message(_group_message("2"))
        await h.service.wait_for_batches()

    asyncio.run(_scenario())
    texts = h.transport.texts(GROUP)
    assert any(text.startswith("❌ Invalid number") for text in texts)
    assert "✅ Analyzing 2 messages..." in texts
    assert h.transport.edits[0]["text"].startswith("✏️ Enter how many messages")
    finished = [edit["text"] for edit in h.transport.edits if edit["text"].startswith("✅ Analysis finished")]
    assert "📊 Analyzed: 2 of 2" in finished[0]


def _group_message(text: str) -> IncomingMessage:
    return IncomingMessage(
        chat_id=GROUP,
        message_id=8,
        sender_id=ADMIN,
        sender_name="@admin",
        text=text,
        is_private=False,
    )


def test_limit_callback_without_pending_batch() -> None:
    h = _harness()
    answer = asyncio.run(h.service.on_callback(GROUP, 500, ADMIN, f"analyze_limit_{GROUP}_2"))
    assert answer.alert is True


def test_cancel_callback_flags_running_session() -> None:
    h = _harness()
    session = h.controller.sessions.open(GROUP, total=10, started_at=0.0)

    answer = asyncio.run(h.service.on_callback(GROUP, 500, USER, f"cancel_{GROUP}"))
    assert answer.text == "⏹ Analysis stopped."
    assert session.cancel_requested

    again = asyncio.run(h.service.on_callback(GROUP, 500, USER, f"cancel_{GROUP}"))
    assert again.text == "⚠️ Analysis is not running."


def test_analyze_while_running_is_refused() -> None:
    h = _harness()

    async def _scenario() -> None:
        await h.service.on_document(GROUP, ADMIN, False, "result.json", _loader(_export("hi")))
        h.controller.sessions.open(GROUP, total=1, started_at=0.0)
        await h.service.on_command(GROUP, ADMIN, False, "analyze", "")

    asyncio.run(_scenario())
    assert "already running" in h.transport.texts(GROUP)[-1]
    assert h.controller.pending(GROUP) is None


def test_word_commands_update_store_and_filters() -> None:
    h = _harness()

    async def _scenario() -> None:
        await h.service.on_command(ADMIN, ADMIN, True, "add_ad", "Promo")
        await h.service.on_command(ADMIN, ADMIN, True, "del_profanity", "darn")
        await h.service.on_command(ADMIN, ADMIN, True, "del_profanity", "darn")
        await h.service.on_command(USER, USER, True, "add_custom", "x")

    asyncio.run(_scenario())
    assert h.filters.words("advertising") == frozenset({"promo"})
    assert h.filters.words("profanity") == frozenset()
    assert h.transport.texts(ADMIN)[2].startswith("⚠️ Not in")
    assert h.transport.texts(USER) == ["❌ You do not have access to this command"]
    assert h.words.words["custom"] == set()


def test_topic_commands() -> None:
    h = _harness()

    async def _scenario() -> None:
        await h.service.on_command(ADMIN, ADMIN, True, "add_topic", "spam | ads | 5 | Is it spam? Answer YES|NO")
        await h.service.on_command(ADMIN, ADMIN, True, "add_topic", "spam | again | 1 | prompt")
        await h.service.on_command(ADMIN, ADMIN, True, "add_topic", "scam | x | high | prompt")
        await h.service.on_command(ADMIN, ADMIN, True, "del_topic", "nope")

    asyncio.run(_scenario())
    topic = h.registry.get("spam")
    assert (topic.description, topic.priority, topic.prompt) == ("ads", 5, "Is it spam? Answer YES|NO")
    texts = h.transport.texts(ADMIN)
    assert texts[1] == "⚠️ Topic spam already exists"
    assert texts[2] == "⚠️ Priority must be an integer"
    assert texts[3] == "⚠️ Topic nope not found"


def test_admin_panel_callbacks() -> None:
    h = _harness()
    h.registry.add(Topic("spam", "p", priority=1))

    async def _scenario() -> None:
        await h.service.on_callback(ADMIN, 500, ADMIN, "toggle_profanity")
        await h.service.on_callback(ADMIN, 500, ADMIN, "model_1")
        await h.service.on_callback(ADMIN, 500, ADMIN, "topic_0")
        denied = await h.service.on_callback(USER, 501, USER, "toggle_neural")
        assert denied.alert is True
        bad_model = await h.service.on_callback(ADMIN, 500, ADMIN, "model_9")
        assert bad_model.alert is True

    asyncio.run(_scenario())
    assert h.settings.filter_profanity is False
    assert h.settings.use_oracle is False
    assert h.settings.current_model == "qwen2.5-coder:7b"
    assert h.registry.get("spam").enabled is False
    assert h.transport.edits[0]["text"] == "Profanity filter: ❌ Off"


def test_admin_panel_only_in_private_chat() -> None:
    h = _harness()

    async def _scenario() -> None:
        await h.service.on_command(GROUP, ADMIN, False, "admin", "")
        await h.service.on_command(ADMIN, ADMIN, True, "admin", "")

    asyncio.run(_scenario())
    assert h.transport.texts(GROUP)[0].startswith("⚠️")
    assert h.transport.sent[-1]["buttons"][0][0][1] == "toggle_delete"


def test_check_mode_reports_verdicts() -> None:
    h = _harness()
    h.registry.add(Topic("spam", "p", priority=1))

    async def _scenario() -> None:
        await h.service.on_command(ADMIN, ADMIN, True, "check_chat", "")
        await h.service.on_message(_private("buy cheap stuff"))
        await h.service.on_command(ADMIN, ADMIN, True, "stop_check_chat", "")
        await h.service.on_message(_private("buy cheap stuff again"))

    asyncio.run(_scenario())
    verdicts = [text for text in h.transport.texts(ADMIN) if text.startswith("🚨 Violation detected")]
    assert verdicts == ["🚨 Violation detected: spam (oracle)"]


def test_statistics_text() -> None:
    h = _harness()
    h.audit.record_event("message_ok", 9_990)
    h.audit.record_event("neural_spam", 9_995)
    text = h.service.statistics_text()
    assert "Last hour: 2" in text
    assert "violations: 1" in text
    assert "Oracle violations: 1" in text


def test_split_command() -> None:
    assert split_command("/add_ad@teleguard_bot promo code") == ("add_ad", "promo code")
    assert split_command("/START") == ("start", "")
    assert split_command("hello") is None
    assert split_command("/") is None


def test_parse_limit() -> None:
    assert parse_limit("all", 10) is None
    assert parse_limit("500", 10) == 10
    assert parse_limit("3", 10) == 3
    with pytest.raises(ValueError):
        parse_limit("0", 10)
    with pytest.raises(ValueError):
        parse_limit("many", 10)


def test_sender_display_name() -> None:
    assert sender_display_name("alice", "Alice", 1) == "@alice"
    assert sender_display_name(None, "Alice", 1) == "Alice"
    assert sender_display_name(None, None, 1) == "ID: 1"


def test_add_topic_without_prompt_builds_one_from_description() -> None:
    h = _harness()

    async def _scenario() -> None:
        await h.service.on_command(ADMIN, ADMIN, True, "add_topic", "Scam | money fraud | 1")
        await h.service.on_command(ADMIN, ADMIN, True, "add_topic", "bait | clickbait links | 2 |")
        await h.service.on_command(ADMIN, ADMIN, True, "add_topic", "empty |  | 3")

    asyncio.run(_scenario())
    topic = h.registry.get("scam")
    assert topic.description == "money fraud"
    assert topic.priority == 1
    assert "money fraud" in topic.prompt and '"scam"' in topic.prompt
    assert "clickbait links" in h.registry.get("bait").prompt
    assert "empty" not in h.registry
    assert h.transport.texts(ADMIN)[2].startswith("⚠️ Usage: /add_topic")


def test_topic_buttons_fit_callback_limit_and_toggle_by_position() -> None:
    h = _harness()
    long_name = "мошенничество_и_финансовые_пирамиды"
    h.registry.add(Topic(long_name, "p", priority=2))
    h.registry.add(Topic("spam", "p", priority=1))

    async def _scenario():
        await h.service.on_callback(ADMIN, 500, ADMIN, "neural_topics")
        toggled = await h.service.on_callback(ADMIN, 500, ADMIN, "topic_1")
        missing = await h.service.on_callback(ADMIN, 500, ADMIN, "topic_7")
        return toggled, missing

    toggled, missing = asyncio.run(_scenario())
    buttons = [button for row in h.transport.edits[0]["buttons"] for button in row]
    assert all(len(data.encode("utf-8")) <= 64 for _, data in buttons)
    assert h.registry.get(long_name).enabled is False
    assert h.registry.get("spam").enabled is True
    assert toggled.text == f"{long_name}: off"
    assert missing.alert is True


def test_models_and_oracle_state_commands() -> None:
    h = _harness()
    h.registry.add(Topic("spam", "p", priority=1))
    h.registry.add(Topic("scam", "p", priority=2, enabled=False))

    async def _scenario() -> None:
        await h.service.on_command(ADMIN, ADMIN, True, "models", "")
        await h.service.on_command(ADMIN, ADMIN, True, "neural_stats", "")
        await h.service.on_command(USER, USER, True, "models", "")

    asyncio.run(_scenario())
    models, state = h.transport.texts(ADMIN)
    assert "✅ qwen3:30b" in models
    assert "🔘 qwen2.5-coder:7b" in models
    assert "State: ❌ Off" in state
    assert "• spam: ✅ (priority: 1)" in state
    assert "• scam: ❌" in state
    assert h.transport.texts(USER) == ["❌ You do not have access to this command"]
