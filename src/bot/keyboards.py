"""Inline keyboards as rows of (label, callback data) pairs."""

from __future__ import annotations

from typing import Sequence

from core.config import ModerationConfig
from core.models import Topic

Rows = list[list[tuple[str, str]]]

LIMIT_PREFIX = "analyze_limit_"
MODEL_PREFIX = "model_"
TOPIC_PREFIX = "topic_"
BACK_TO_ADMIN = "back_to_admin"


def _mark(flag: bool) -> str:
    return "✅" if flag else "❌"


def short_model_name(model: str) -> str:
    return model.split(":")[0]


def limit_keyboard(chat_id: int, choices: Sequence[int]) -> Rows:
    rows: Rows = [[("📊 All messages", f"{LIMIT_PREFIX}{chat_id}_all")]]
    row: list[tuple[str, str]] = []
    for choice in choices:
        row.append((str(choice), f"{LIMIT_PREFIX}{chat_id}_{choice}"))
        if len(row) == 2:
            rows.append(row)
            row = []
    if row:
        rows.append(row)
    rows.append([("✏️ Enter a number", f"{LIMIT_PREFIX}{chat_id}_custom")])
    return rows


def admin_keyboard(settings: ModerationConfig) -> Rows:
    return [
        [(f"{_mark(settings.delete_messages)} Auto-delete", "toggle_delete")],
        [(f"{_mark(settings.filter_profanity)} Profanity", "toggle_profanity")],
        [(f"{_mark(settings.filter_advertising)} Advertising", "toggle_ad")],
        [(f"{_mark(settings.use_oracle)} Oracle", "toggle_neural")],
        [(f"🤖 {short_model_name(settings.current_model) or 'no model'}", "neural_models")],
        [("🧠 Oracle topics", "neural_topics")],
        [("📊 Statistics", "show_statistics")],
        [("📝 Word lists", "list_words")],
        [("📜 Commands", "show_commands")],
    ]


def back_keyboard() -> Rows:
    return [[("⬅️ Back to panel", BACK_TO_ADMIN)]]


def _pairs(buttons: list[tuple[str, str]]) -> Rows:
    rows: Rows = [buttons[index:index + 2] for index in range(0, len(buttons), 2)]
    rows.append([("⬅️ Back", BACK_TO_ADMIN)])
    return rows


def models_keyboard(models: Sequence[str], current: str) -> Rows:
    buttons = [
        (f"{'✅' if model == current else '🔘'} {short_model_name(model)}", f"{MODEL_PREFIX}{index}")
        for index, model in enumerate(models)
    ]
    return _pairs(buttons)


def topics_keyboard(topics: Sequence[Topic]) -> Rows:
    # Callback data is capped at 64 bytes, so buttons carry the position in
    # the priority-sorted list rather than the topic name.
    buttons = [
        (f"{_mark(topic.enabled)} {topic.name} ({topic.priority})", f"{TOPIC_PREFIX}{index}")
        for index, topic in enumerate(topics)
    ]
    return _pairs(buttons)
